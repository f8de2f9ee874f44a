import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from sklearn.linear_model import SGDClassifier
from sklearn.metrics import accuracy_score, log_loss
from sklearn.neural_network import MLPClassifier

from src.data.schema import N_CLASSES


CLASSES = np.arange(N_CLASSES)

MODEL_TYPES = ("logistic", "neural")

DEFAULT_EPOCHS = {
    "logistic": 50,
    "neural": 75,
}

EpochCallback = Callable[[int, Dict[str, float]], None]


@dataclass
class ModelArtifact:
    """Fitted estimator plus its training history. Never persisted."""

    model_type: str
    estimator: Any
    epochs: int
    history: List[Dict[str, float]] = field(default_factory=list)
    training_time: float = 0.0

    @property
    def accuracy(self) -> float:
        return self.history[-1]["accuracy"] if self.history else 0.0

    @property
    def loss(self) -> float:
        return self.history[-1]["loss"] if self.history else 0.0


# ------------------------------------------------------------------
# Estimators
# ------------------------------------------------------------------
def build_logistic_estimator(seed: Optional[int] = None) -> SGDClassifier:
    # One-vs-rest logistic regression, one epoch per partial_fit call.
    return SGDClassifier(
        loss="log_loss",
        learning_rate="constant",
        eta0=0.01,
        alpha=1e-4,
        random_state=seed,
    )


def build_neural_estimator(seed: Optional[int] = None) -> MLPClassifier:
    return MLPClassifier(
        hidden_layer_sizes=(128, 64, 32),
        activation="relu",
        solver="adam",
        learning_rate_init=0.001,
        alpha=1e-4,
        batch_size=16,
        shuffle=True,
        random_state=seed,
    )


ESTIMATOR_BUILDERS = {
    "logistic": build_logistic_estimator,
    "neural": build_neural_estimator,
}


class EpochClassifier:
    """
    Trainable classifier with the fit/predict contract used by the session.

    ``fit`` runs ``epochs`` passes of ``partial_fit`` and calls
    ``on_epoch_end(epoch, {"loss", "accuracy"})`` after each one.
    """

    def __init__(
        self,
        model_type: str = "neural",
        epochs: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        if model_type not in ESTIMATOR_BUILDERS:
            raise ValueError(
                f"Unknown model type '{model_type}', expected one of {MODEL_TYPES}"
            )
        self.model_type = model_type
        self.epochs = epochs or DEFAULT_EPOCHS[model_type]
        self.seed = seed

    def fit(
        self,
        features: np.ndarray,
        labels: np.ndarray,
        on_epoch_end: Optional[EpochCallback] = None,
    ) -> ModelArtifact:
        X = np.asarray(features, dtype=float)
        y = np.asarray(labels, dtype=int)

        estimator = ESTIMATOR_BUILDERS[self.model_type](self.seed)
        rng = np.random.default_rng(self.seed)
        history: List[Dict[str, float]] = []
        start_time = time.time()

        for epoch in range(self.epochs):
            order = rng.permutation(len(X))
            estimator.partial_fit(X[order], y[order], classes=CLASSES)

            proba = estimator.predict_proba(X)
            logs = {
                "loss": float(log_loss(y, proba, labels=CLASSES)),
                "accuracy": float(accuracy_score(y, proba.argmax(axis=1))),
            }
            history.append(logs)

            if on_epoch_end is not None:
                on_epoch_end(epoch, logs)

        return ModelArtifact(
            model_type=self.model_type,
            estimator=estimator,
            epochs=self.epochs,
            history=history,
            training_time=time.time() - start_time,
        )

    @staticmethod
    def predict(artifact: ModelArtifact, rows: np.ndarray) -> np.ndarray:
        """Raw per-class probabilities, shape (n, 3)."""
        X = np.asarray(rows, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        return artifact.estimator.predict_proba(X)
