import dataclasses                             # FrozenInstanceError for the model snapshot
from collections import Counter                # Counting forced labels

import numpy as np                             # NumPy for probability checks
import pytest                                  # Pytest framework for testing and assertions

from src.data.encoder import encode            # Encoder to build batch inputs
from src.data.parser import parse_text         # Parser for CSV fixtures
from src.data.synthetic import generate_cohort # Synthetic cohort for fitting
from src.errors import EmptyDataset, ModelUnavailable, TrainingFailure
from src.log import logger as service_logger   # Service logger the session writes to
from src.models import normalizer              # Min/max scaling before fit
from src.models.classifier import EpochClassifier   # Trainable classifier under test
from src.models.calibration import DEMO_CONFIDENCE_FLOOR, CalibrationStrategy
from src.models.session import ModelSession, TrainedModel   # Session wiring the pipeline together


@pytest.mark.parametrize("model_type", ["logistic", "neural"])
def test_classifier_fit_reports_each_epoch(model_type):
    """Ensure both classifier types train and report progress per epoch"""
    cohort = generate_cohort(60, seed=1)       # Small balanced training set
    X = normalizer.apply(cohort.features, normalizer.fit(cohort.features))
    seen = []                                  # Epoch indices received by the callback

    classifier = EpochClassifier(model_type=model_type, epochs=3, seed=1)
    artifact = classifier.fit(X, cohort.labels, on_epoch_end=lambda e, logs: seen.append(e))

    assert seen == [0, 1, 2]                   # One callback per epoch
    assert len(artifact.history) == 3
    assert set(artifact.history[-1]) == {"loss", "accuracy"}

    proba = classifier.predict(artifact, X[:5])
    assert proba.shape == (5, 3)               # One probability per disease
    assert np.allclose(proba.sum(axis=1), 1.0) # Rows sum to one


def test_classifier_rejects_unknown_type():
    with pytest.raises(ValueError):
        EpochClassifier(model_type="forest")


def test_session_requires_training_before_inference():
    session = ModelSession()

    assert session.is_trained is False
    with pytest.raises(ModelUnavailable):      # No model in this session yet
        session.predict_record({"age": 30})


def test_session_train_and_predict_record(trained_session):
    decision = trained_session.predict_record({"age": 35, "fever": 1, "jaundice": 1, "AST": 120})

    assert decision.label in (0, 1, 2)
    assert 0.0 <= decision.confidence <= 1.0
    assert sum(decision.probabilities.values()) == pytest.approx(1.0)
    assert trained_session.params.n_features == 53   # Params kept from training


def test_session_learns_synthetic_profiles(trained_session):
    holdout = generate_cohort(150, seed=99)    # Fresh records from the same generator

    decisions = trained_session.predict_features(holdout.features)

    predicted = np.array([d.label for d in decisions])
    assert (predicted == holdout.labels).mean() > 0.45  # Better than chance (1/3)


def test_session_predict_dataset_with_labels(trained_session, labelled_csv):
    table = parse_text(labelled_csv + "29,M,rural,1,0,0,300,20,20,0.5,typhoid\n")
    dataset = encode(table.headers, table.rows)

    result = trained_session.predict_dataset(dataset)

    assert result.total_records == 5           # Every valid row predicted
    assert [p.id for p in result.predictions] == [1, 2, 3, 4, 5]
    assert result.predictions[4].actual_label is None      # Unknown diagnosis not resolved
    assert result.confusion_matrix.sum() == 4  # Only resolvable labels evaluated
    assert 0.0 <= result.metrics.accuracy <= 1.0


def test_session_predict_dataset_without_labels(trained_session):
    dataset = encode(["age", "fever"], [["30", "1"], ["41", "0"]])

    result = trained_session.predict_dataset(dataset)

    assert result.confusion_matrix is None     # No ground truth -> no evaluation
    assert result.metrics is None


def test_session_predict_empty_dataset(trained_session):
    dataset = encode(["age", "gender"], [["", ""]])

    with pytest.raises(EmptyDataset):
        trained_session.predict_dataset(dataset)


def test_session_predict_file(trained_session, labelled_csv):
    result = trained_session.predict_file("batch.csv", labelled_csv.encode("utf-8"))

    assert result.total_records == 4
    assert result.metrics is not None


class ExplodingClassifier(EpochClassifier):
    def fit(self, features, labels, on_epoch_end=None):
        raise RuntimeError("diverged")


def test_training_failure_keeps_previous_model():
    session = ModelSession()
    session.train(model_type="logistic", samples=30, epochs=2, seed=0)
    previous = session.model

    session.classifier_factory = ExplodingClassifier
    with pytest.raises(TrainingFailure):       # Collaborator error surfaced
        session.train(model_type="logistic", samples=30, epochs=2, seed=0)

    assert session.model is previous           # No partial model stored
    assert session.progress.running is False


@pytest.mark.asyncio
async def test_train_async_reports_progress():
    session = ModelSession()
    epochs_seen = []

    summary = await session.train_async(
        model_type="logistic",
        samples=30,
        epochs=4,
        seed=2,
        on_epoch_end=lambda epoch, logs: epochs_seen.append(epoch),
    )

    assert summary.epochs == 4
    assert epochs_seen == [0, 1, 2, 3]
    assert session.progress.epoch == 4         # Last completed epoch recorded
    assert session.is_trained


def test_training_publishes_model_as_one_snapshot():
    session = ModelSession()
    session.train(model_type="logistic", samples=30, epochs=2, seed=0)
    first = session.model

    assert isinstance(first, TrainedModel)
    with pytest.raises(dataclasses.FrozenInstanceError):   # Parts cannot be swapped one by one
        first.params = None

    session.train(model_type="logistic", samples=60, epochs=2, seed=1)

    assert session.model is not first          # Whole bundle replaced together
    assert session.params is session.model.params
    assert session.artifact is session.model.artifact
    assert first.params.n_features == 53       # Earlier snapshot left intact


def test_balanced_demo_session_forces_batch_labels(trained_session, labelled_csv, caplog):
    demo = ModelSession(strategy=CalibrationStrategy.BALANCED_DEMO)
    demo.model = trained_session.model         # Same model, demo calibration
    table = parse_text(labelled_csv)

    service_logger.addHandler(caplog.handler)  # Service logger does not propagate to root
    try:
        result = demo.predict_dataset(encode(table.headers, table.rows), seed=3)
    finally:
        service_logger.removeHandler(caplog.handler)

    counts = Counter(p.predicted_label for p in result.predictions)
    assert [counts[c] for c in range(3)] == [2, 1, 1]   # Balanced assignment over 4 rows
    assert all(p.confidence >= DEMO_CONFIDENCE_FLOOR for p in result.predictions)
    assert result.metrics is not None          # Labels present, metrics still computed

    warnings = [r.getMessage() for r in caplog.records if r.levelname == "WARNING"]
    assert any("do not reflect the model" in message for message in warnings)
