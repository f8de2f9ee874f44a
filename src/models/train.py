"""
Model training and evaluation on the synthetic febrile-illness cohort.

Trains both classifier types on a stratified split, prints a comparison table
and, with --evaluate, scores a labelled CSV/XLSX file with the best model.
"""

import argparse
import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from src.data.synthetic import generate_cohort
from src.models import normalizer
from src.models.calibration import decide_batch
from src.models.classifier import MODEL_TYPES, EpochClassifier, ModelArtifact
from src.models.evaluation import (
    EvaluationMetrics,
    compute_metrics,
    confusion_matrix,
    per_class_report,
)
from src.models.model_utils import load_labeled_dataset, split_cohort
from src.models.session import ModelSession


# ------------------------------------------------------------------
# Progress helper
# ------------------------------------------------------------------
def log_step(message: str) -> None:
    print(f"[{time.strftime('%H:%M:%S')}] {message}", flush=True)


@dataclass
class ModelEvaluation:
    model_type: str
    artifact: ModelArtifact
    matrix: np.ndarray
    metrics: EvaluationMetrics


# ------------------------------------------------------------------
# Train one model type and score it on the held-out split
# ------------------------------------------------------------------
def evaluate_model(
    model_type: str,
    X_train: np.ndarray,
    X_test: np.ndarray,
    y_train: np.ndarray,
    y_test: np.ndarray,
    epochs: Optional[int] = None,
    seed: Optional[int] = 42,
) -> ModelEvaluation:
    params = normalizer.fit(X_train)
    classifier = EpochClassifier(model_type=model_type, epochs=epochs, seed=seed)
    artifact = classifier.fit(normalizer.apply(X_train, params), y_train)

    raw = classifier.predict(artifact, normalizer.apply(X_test, params))
    predicted = [d.label for d in decide_batch(raw)]

    matrix = confusion_matrix(predicted, list(y_test))
    return ModelEvaluation(
        model_type=model_type,
        artifact=artifact,
        matrix=matrix,
        metrics=compute_metrics(matrix),
    )


def compare_models(evaluations: List[ModelEvaluation]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Model": ev.model_type,
                "Train accuracy": ev.artifact.accuracy,
                "Train loss": ev.artifact.loss,
                **{f"Test {k}": v for k, v in ev.metrics.to_dict().items()},
            }
            for ev in evaluations
        ]
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--samples", type=int, default=500)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--evaluate", type=str, default=None, help="labelled CSV/XLSX to score")
    return parser.parse_args(argv)


# ------------------------------------------------------------------
# Main execution
# ------------------------------------------------------------------
def main(argv=None) -> pd.DataFrame:
    args = parse_args(argv)

    log_step(f"Generating synthetic cohort of {args.samples} records")
    cohort = generate_cohort(args.samples, seed=args.seed)

    X_train, X_test, y_train, y_test = split_cohort(
        cohort.features, cohort.labels, seed=args.seed
    )

    evaluations = []
    for model_type in MODEL_TYPES:
        log_step(f"Training {model_type} model")
        evaluation = evaluate_model(
            model_type, X_train, X_test, y_train, y_test,
            epochs=args.epochs, seed=args.seed,
        )
        evaluations.append(evaluation)
        log_step(f"{model_type} test accuracy: {evaluation.metrics.accuracy:.4f}")

    comparison_df = compare_models(evaluations)
    log_step("Model comparison:")
    log_step(comparison_df.to_string(index=False))

    if args.evaluate:
        best = max(evaluations, key=lambda ev: ev.metrics.f1)
        log_step(f"Scoring {args.evaluate} with a fresh {best.model_type} model")

        session = ModelSession()
        session.train(
            model_type=best.model_type,
            samples=args.samples,
            epochs=args.epochs,
            seed=args.seed,
        )
        result = session.predict_dataset(load_labeled_dataset(args.evaluate))

        log_step(f"Records scored: {result.total_records}")
        if result.metrics is not None:
            for key, value in result.metrics.to_dict().items():
                log_step(f"{key}: {value:.4f}")
            log_step(per_class_report(result.confusion_matrix).to_string(index=False))
        else:
            log_step("No resolvable diagnosis labels; metrics skipped")

    log_step("Training completed successfully")
    return comparison_df


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------
if __name__ == "__main__":
    main()
