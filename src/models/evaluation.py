"""
Confusion-matrix based evaluation for the three-class problem.

Rows of the matrix are actual classes, columns are predicted classes.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix as sk_confusion_matrix

from src.data.schema import DISEASE_LABELS, N_CLASSES


CLASS_IDS = list(range(N_CLASSES))


@dataclass(frozen=True)
class EvaluationMetrics:
    accuracy: float
    precision: float
    recall: float
    f1: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _is_known(label: Optional[int]) -> bool:
    return label is not None and int(label) in CLASS_IDS


def confusion_matrix(
    predicted: Sequence[int],
    actual: Sequence[Optional[int]],
) -> np.ndarray:
    """
    3x3 count matrix; pairs whose actual label is None or outside 0..2 are
    left out rather than treated as errors.
    """
    if len(predicted) != len(actual):
        raise ValueError(
            f"predicted ({len(predicted)}) and actual ({len(actual)}) lengths differ"
        )

    pairs = [
        (int(a), int(p))
        for p, a in zip(predicted, actual)
        if _is_known(a) and _is_known(p)
    ]
    if not pairs:
        return np.zeros((N_CLASSES, N_CLASSES), dtype=int)

    y_true, y_pred = zip(*pairs)
    return sk_confusion_matrix(y_true, y_pred, labels=CLASS_IDS)


def _per_class(matrix: np.ndarray):
    m = np.asarray(matrix, dtype=float)
    tp = np.diag(m)
    fp = m.sum(axis=0) - tp
    fn = m.sum(axis=1) - tp

    with np.errstate(divide="ignore", invalid="ignore"):
        precision = np.where(tp + fp > 0, tp / (tp + fp), 0.0)
        recall = np.where(tp + fn > 0, tp / (tp + fn), 0.0)
        f1 = np.where(
            precision + recall > 0,
            2 * precision * recall / (precision + recall),
            0.0,
        )
    return precision, recall, f1


def compute_metrics(matrix: np.ndarray) -> EvaluationMetrics:
    """Accuracy plus macro-averaged precision and recall; F1 from the macro pair."""
    m = np.asarray(matrix, dtype=float)
    total = m.sum()
    accuracy = float(np.trace(m) / total) if total > 0 else 0.0

    precision, recall, _ = _per_class(m)
    macro_precision = float(precision.mean())
    macro_recall = float(recall.mean())

    denom = macro_precision + macro_recall
    f1 = 2 * macro_precision * macro_recall / denom if denom > 0 else 0.0

    return EvaluationMetrics(
        accuracy=accuracy,
        precision=macro_precision,
        recall=macro_recall,
        f1=float(f1),
    )


def per_class_report(matrix: np.ndarray) -> pd.DataFrame:
    m = np.asarray(matrix, dtype=float)
    precision, recall, f1 = _per_class(m)
    return pd.DataFrame(
        {
            "disease": DISEASE_LABELS,
            "precision": precision,
            "recall": recall,
            "f1": f1,
            "support": m.sum(axis=1).astype(int),
        }
    )
