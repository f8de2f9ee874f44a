import argparse
from pathlib import Path

from src.data.synthetic import generate_cohort


def main(argv=None) -> Path:
    parser = argparse.ArgumentParser(description="Write a labelled synthetic cohort to CSV")
    parser.add_argument("output", type=str, help="destination CSV path")
    parser.add_argument("--samples", type=int, default=500)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    df = generate_cohort(args.samples, seed=args.seed).to_frame()
    df.to_csv(output, index=False)

    print(f"Wrote {len(df)} records to {output}")
    return output


if __name__ == "__main__":
    main()
