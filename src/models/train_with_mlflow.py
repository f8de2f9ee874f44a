import argparse
from pathlib import Path

import matplotlib.pyplot as plt
import mlflow
from sklearn.metrics import ConfusionMatrixDisplay

from src.config import MLFLOW_DIR
from src.data.schema import DISEASE_LABELS
from src.data.synthetic import generate_cohort
from src.models.classifier import MODEL_TYPES
from src.models.model_utils import split_cohort
from src.models.train import ModelEvaluation, evaluate_model


EXPERIMENT_NAME = "Febrile Illness Classification"


# ---------------------------------------------------
# Confusion matrix figure
# ---------------------------------------------------
def plot_confusion_matrix(evaluation: ModelEvaluation):
    disp_cm = ConfusionMatrixDisplay(evaluation.matrix, display_labels=DISEASE_LABELS)

    fig_cm, ax_cm = plt.subplots(figsize=(5, 5))
    disp_cm.plot(ax=ax_cm, colorbar=False)
    ax_cm.set_title(f"{evaluation.model_type} - Confusion Matrix")
    return fig_cm


# ---------------------------------------------------
# Main function
# ---------------------------------------------------
def main(argv=None, tracking_dir: Path = MLFLOW_DIR, artifact_dir: Path = Path(".")) -> None:
    parser = argparse.ArgumentParser(description="Track febrile-illness training runs with MLflow")
    parser.add_argument("--samples", type=int, default=500)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args(argv)

    mlflow.set_tracking_uri(Path(tracking_dir).resolve().as_uri())
    mlflow.set_experiment(EXPERIMENT_NAME)

    # ---------------------------------------------------
    # Synthetic cohort + split
    # ---------------------------------------------------
    cohort = generate_cohort(args.samples, seed=args.seed)
    X_train, X_test, y_train, y_test = split_cohort(
        cohort.features, cohort.labels, seed=args.seed
    )

    # ---------------------------------------------------
    # Training + MLflow logging
    # ---------------------------------------------------
    for model_type in MODEL_TYPES:

        with mlflow.start_run(run_name=model_type):

            evaluation = evaluate_model(
                model_type, X_train, X_test, y_train, y_test,
                epochs=args.epochs, seed=args.seed,
            )

            mlflow.log_params(
                {
                    "model_type": model_type,
                    "samples": args.samples,
                    "epochs": evaluation.artifact.epochs,
                    "seed": args.seed,
                }
            )
            mlflow.log_metrics(evaluation.metrics.to_dict())
            mlflow.log_metrics(
                {
                    "train_accuracy": evaluation.artifact.accuracy,
                    "train_loss": evaluation.artifact.loss,
                }
            )

            # Per-epoch curves
            for epoch, logs in enumerate(evaluation.artifact.history):
                mlflow.log_metrics(
                    {"epoch_loss": logs["loss"], "epoch_accuracy": logs["accuracy"]},
                    step=epoch,
                )

            # -----------------------------
            # Confusion Matrix Plot
            # -----------------------------
            fig_cm = plot_confusion_matrix(evaluation)
            cm_path = Path(artifact_dir) / f"confusion_matrix_{model_type}.png"
            fig_cm.savefig(cm_path, bbox_inches="tight")
            mlflow.log_artifact(str(cm_path))
            plt.close(fig_cm)

            # Trained models are session-scoped; no model artifact is logged.
            print(f"\n{model_type} logged successfully")
            print("Metrics:", evaluation.metrics.to_dict())


# ---------------------------------------------------
# Entry point
# ---------------------------------------------------
if __name__ == "__main__":
    main()
