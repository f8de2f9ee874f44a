from dataclasses import dataclass

import numpy as np

from src.errors import EmptyDataset


@dataclass(frozen=True)
class NormalizationParams:
    min: np.ndarray
    max: np.ndarray

    @property
    def n_features(self) -> int:
        return len(self.min)


def fit(features) -> NormalizationParams:
    """Per-column min/max of the training set."""
    X = np.asarray(features, dtype=float)
    if X.ndim != 2 or X.shape[0] == 0:
        raise EmptyDataset("Cannot fit normalization on an empty training set")

    return NormalizationParams(min=X.min(axis=0), max=X.max(axis=0))


def apply(features, params: NormalizationParams) -> np.ndarray:
    """
    Rescale with (v - min) / (max - min). Degenerate columns map to 0.
    Values outside the fitted range are not clipped.
    """
    X = np.asarray(features, dtype=float)
    if X.ndim == 1:
        X = X.reshape(1, -1)

    if X.shape[1] != params.n_features:
        raise ValueError(
            f"Expected {params.n_features} features, got {X.shape[1]}"
        )

    span = params.max - params.min
    degenerate = span == 0
    safe_span = np.where(degenerate, 1.0, span)

    scaled = (X - params.min) / safe_span
    scaled[:, degenerate] = 0.0
    return scaled
