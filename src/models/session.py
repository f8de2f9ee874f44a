import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np

from src.data.encoder import EncodedDataset, encode, encode_record
from src.data.parser import TabularParser
from src.data.schema import resolve_label
from src.data.synthetic import generate_cohort
from src.errors import EmptyDataset, ModelUnavailable, TrainingFailure
from src.log import get_logger
from src.models import normalizer
from src.models.calibration import (
    DEFAULT_TEMPERATURE,
    CalibrationStrategy,
    Decision,
    decide,
    decide_batch,
)
from src.models.classifier import EpochCallback, EpochClassifier, ModelArtifact
from src.models.evaluation import EvaluationMetrics, compute_metrics, confusion_matrix
from src.models.normalizer import NormalizationParams


logger = get_logger("session")

ClassifierFactory = Callable[..., EpochClassifier]


@dataclass(frozen=True)
class TrainingSummary:
    model_type: str
    samples: int
    epochs: int
    accuracy: float
    loss: float
    training_time: float


@dataclass(frozen=True)
class BatchPrediction:
    id: int
    predicted_label: int
    disease: str
    confidence: float
    actual_label: Optional[int] = None


@dataclass
class BatchResult:
    total_records: int
    predictions: List[BatchPrediction]
    confusion_matrix: Optional[np.ndarray] = None
    metrics: Optional[EvaluationMetrics] = None


@dataclass(frozen=True)
class TrainedModel:
    """Classifier, fitted artifact and normalization params from one run."""

    classifier: EpochClassifier
    artifact: ModelArtifact
    params: NormalizationParams


@dataclass
class TrainingProgress:
    running: bool = False
    model_type: Optional[str] = None
    epoch: int = 0
    total_epochs: int = 0
    logs: Dict[str, float] = field(default_factory=dict)


class ModelSession:
    """
    Owns the single active (model, normalization) pair for one caller.

    A new pair replaces the old one only after a training run finishes; a
    failed run leaves the previous model in place. Callers must serialise
    ``train`` calls themselves.
    """

    def __init__(
        self,
        parser: Optional[TabularParser] = None,
        classifier_factory: ClassifierFactory = EpochClassifier,
        temperature: float = DEFAULT_TEMPERATURE,
        strategy: CalibrationStrategy = CalibrationStrategy.HONEST,
    ):
        self.parser = parser or TabularParser()
        self.classifier_factory = classifier_factory
        self.temperature = temperature
        self.strategy = CalibrationStrategy(strategy)

        # Replaced as a whole so readers never mix params from different runs.
        self.model: Optional[TrainedModel] = None
        self.progress = TrainingProgress()

    @property
    def is_trained(self) -> bool:
        return self.model is not None

    @property
    def classifier(self) -> Optional[EpochClassifier]:
        return self.model.classifier if self.model else None

    @property
    def artifact(self) -> Optional[ModelArtifact]:
        return self.model.artifact if self.model else None

    @property
    def params(self) -> Optional[NormalizationParams]:
        return self.model.params if self.model else None

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def train(
        self,
        model_type: str = "neural",
        samples: int = 500,
        epochs: Optional[int] = None,
        seed: Optional[int] = None,
        on_epoch_end: Optional[EpochCallback] = None,
    ) -> TrainingSummary:
        """Fit a fresh model on a synthetic cohort of ``samples`` records."""
        cohort = generate_cohort(samples, seed=seed)
        if len(cohort.labels) == 0:
            raise EmptyDataset("Synthetic cohort is empty; nothing to train on")

        classifier = self.classifier_factory(model_type=model_type, epochs=epochs, seed=seed)
        params = normalizer.fit(cohort.features)
        X = normalizer.apply(cohort.features, params)

        self.progress = TrainingProgress(
            running=True,
            model_type=model_type,
            total_epochs=classifier.epochs,
        )

        def report(epoch: int, logs: Dict[str, float]) -> None:
            self.progress.epoch = epoch + 1
            self.progress.logs = dict(logs)
            if (epoch + 1) % 10 == 0 or epoch + 1 == classifier.epochs:
                logger.info(
                    "epoch %d/%d loss=%.4f accuracy=%.4f",
                    epoch + 1,
                    classifier.epochs,
                    logs.get("loss", 0.0),
                    logs.get("accuracy", 0.0),
                )
            if on_epoch_end is not None:
                on_epoch_end(epoch, logs)

        logger.info(
            "Training %s model on %d synthetic records (%d epochs)",
            model_type,
            samples,
            classifier.epochs,
        )
        try:
            artifact = classifier.fit(X, cohort.labels, on_epoch_end=report)
        except Exception as exc:
            logger.exception("Training failed")
            raise TrainingFailure(f"{model_type} training failed: {exc}") from exc
        finally:
            self.progress.running = False

        self.model = TrainedModel(classifier=classifier, artifact=artifact, params=params)

        summary = TrainingSummary(
            model_type=model_type,
            samples=samples,
            epochs=artifact.epochs,
            accuracy=artifact.accuracy,
            loss=artifact.loss,
            training_time=artifact.training_time,
        )
        logger.info(
            "Training finished: accuracy=%.4f loss=%.4f time=%.2fs",
            summary.accuracy,
            summary.loss,
            summary.training_time,
        )
        return summary

    async def train_async(self, **kwargs: Any) -> TrainingSummary:
        return await asyncio.to_thread(self.train, **kwargs)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------
    def _require_model(self) -> TrainedModel:
        model = self.model
        if model is None:
            raise ModelUnavailable("No model has been trained in this session")
        return model

    def predict_proba(self, features) -> np.ndarray:
        model = self._require_model()
        X = normalizer.apply(features, model.params)
        return model.classifier.predict(model.artifact, X)

    def predict_record(self, record: Mapping[str, Any]) -> Decision:
        raw = self.predict_proba(encode_record(record))[0]
        return decide(raw, self.temperature, self.strategy)

    def predict_features(self, features, seed: Optional[int] = None) -> List[Decision]:
        raw_rows = self.predict_proba(features)
        return decide_batch(raw_rows, self.temperature, self.strategy, seed=seed)

    def predict_dataset(self, dataset: EncodedDataset, seed: Optional[int] = None) -> BatchResult:
        self._require_model()
        if dataset.row_count == 0:
            raise EmptyDataset("No valid rows found in the file")

        decisions = self.predict_features(dataset.features, seed=seed)

        actual: List[Optional[int]] = [None] * len(decisions)
        if dataset.has_labels:
            actual = [resolve_label(text) for text in dataset.diagnoses]

        predictions = [
            BatchPrediction(
                id=idx + 1,
                predicted_label=decision.label,
                disease=decision.disease,
                confidence=decision.confidence,
                actual_label=actual[idx],
            )
            for idx, decision in enumerate(decisions)
        ]

        result = BatchResult(total_records=dataset.row_count, predictions=predictions)

        if any(label is not None for label in actual):
            if self.strategy is CalibrationStrategy.BALANCED_DEMO:
                logger.warning("Metrics computed on balanced_demo predictions do not reflect the model")
            matrix = confusion_matrix([d.label for d in decisions], actual)
            result.confusion_matrix = matrix
            result.metrics = compute_metrics(matrix)

        return result

    def predict_file(self, filename: str, data: bytes, seed: Optional[int] = None) -> BatchResult:
        self._require_model()
        table = self.parser.parse_file(filename, data)
        dataset = encode(table.headers, table.rows)
        return self.predict_dataset(dataset, seed=seed)
