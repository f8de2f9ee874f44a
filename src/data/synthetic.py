"""
Synthetic training cohort.

Every "train" action fits on a cohort drawn here; uploaded files are only used
for inference and evaluation. The per-disease profiles are design choices that
make the three classes separable, not validated clinical distributions.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from src.data.schema import (
    DISEASE_LABELS,
    FEATURE_COLUMNS,
    LABEL_COLUMN,
    N_CLASSES,
    SYMPTOM_COLUMNS,
)


# P(flag == 1), independent of disease.
OCCUPATION_RATES: Dict[str, float] = {
    "homemaker": 0.20,
    "student": 0.30,
    "professional": 0.40,
    "merchant": 0.20,
    "agriculture_livestock": 0.15,
    "various_jobs": 0.25,
    "unemployed": 0.10,
}

# P(symptom == 1) per disease; symptoms not listed stay 0.
SYMPTOM_RATES: Dict[int, Dict[str, float]] = {
    0: {  # Dengue
        "fever": 0.95,
        "headache": 0.90,
        "weakness": 0.85,
        "rash": 0.70,
        "arthralgias": 0.80,
        "myalgias": 0.85,
        "eye_pain": 0.75,
        "hemorrhages": 0.50,
        "petechiae": 0.60,
        "loss_of_appetite": 0.70,
    },
    1: {  # Malaria
        "fever": 0.98,
        "chills": 0.90,
        "headache": 0.85,
        "weakness": 0.90,
        "vomiting": 0.60,
        "myalgias": 0.70,
        "dizziness": 0.65,
        "abdominal_pain": 0.55,
    },
    2: {  # Leptospirosis
        "fever": 0.95,
        "headache": 0.90,
        "myalgias": 0.90,
        "chills": 0.80,
        "vomiting": 0.65,
        "jaundice": 0.60,
        "weakness": 0.80,
        "abdominal_pain": 0.70,
    },
}

# (low, high) uniform ranges that depend on the disease. Anything missing for a
# class falls back to BASELINE_LAB_RANGES.
BASELINE_LAB_RANGES: Dict[str, Tuple[float, float]] = {
    "platelets": (150.0, 400.0),
    "AST": (10.0, 50.0),
    "ALT": (10.0, 50.0),
    "total_bilirubin": (0.3, 1.8),
}

DISEASE_LAB_RANGES: Dict[int, Dict[str, Tuple[float, float]]] = {
    0: {"platelets": (50.0, 200.0)},
    1: {"platelets": (80.0, 200.0), "total_bilirubin": (0.5, 2.5)},
    2: {"AST": (30.0, 130.0), "ALT": (30.0, 130.0), "total_bilirubin": (1.0, 4.0)},
}

# Class-independent laboratory ranges.
LAB_RANGES: Dict[str, Tuple[float, float]] = {
    "hematocrit": (35.0, 50.0),
    "hemoglobin": (11.0, 17.0),
    "red_blood_cells": (3.5, 5.5),
    "white_blood_cells": (4.0, 12.0),
    "neutrophils": (40.0, 70.0),
    "eosinophils": (0.0, 5.0),
    "basophils": (0.0, 2.0),
    "monocytes": (2.0, 10.0),
    "lymphocytes": (20.0, 45.0),
    "ALP": (30.0, 130.0),
    "direct_bilirubin": (0.1, 0.5),
    "total_proteins": (6.0, 8.0),
    "albumin": (3.5, 5.0),
    "creatinine": (0.6, 1.4),
    "urea": (10.0, 40.0),
}


@dataclass
class SyntheticCohort:
    features: np.ndarray    # (count, 53)
    labels: np.ndarray      # (count,)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.features, columns=FEATURE_COLUMNS)
        # Text codes so the CSV re-encodes to the same vectors
        df["gender"] = np.where(df["gender"] == 1.0, "M", "F")
        df["residence"] = np.where(df["residence"] == 1.0, "urban", "rural")
        df[LABEL_COLUMN] = [DISEASE_LABELS[label] for label in self.labels]
        return df


def balanced_labels(count: int, rng: np.random.Generator) -> np.ndarray:
    """count // 3 per class, remainder to the lowest classes, then shuffled."""
    per_class, remainder = divmod(count, N_CLASSES)
    labels = np.concatenate([
        np.full(per_class + (1 if cls < remainder else 0), cls, dtype=int)
        for cls in range(N_CLASSES)
    ])
    rng.shuffle(labels)
    return labels


def _flags(rng: np.random.Generator, n: int, rate: float) -> np.ndarray:
    return (rng.random(n) < rate).astype(float)


def generate_cohort(count: int = 500, seed: Optional[int] = None) -> SyntheticCohort:
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")

    rng = np.random.default_rng(seed)
    labels = balanced_labels(count, rng)

    df = pd.DataFrame(0.0, index=range(count), columns=FEATURE_COLUMNS)

    # Demographics, occupation and admission data ignore the disease.
    df["age"] = rng.integers(20, 70, size=count)
    df["gender"] = _flags(rng, count, 0.5)
    df["residence"] = _flags(rng, count, 0.5)
    for column, rate in OCCUPATION_RATES.items():
        df[column] = _flags(rng, count, rate)
    df["hospitalization_days"] = rng.integers(1, 11, size=count)
    df["body_temperature"] = rng.uniform(36.0, 41.0, size=count)

    for column, (low, high) in BASELINE_LAB_RANGES.items():
        df[column] = rng.uniform(low, high, size=count)

    for cls in range(N_CLASSES):
        mask = labels == cls
        n_cls = int(mask.sum())
        if n_cls == 0:
            continue

        for column in SYMPTOM_COLUMNS:
            rate = SYMPTOM_RATES[cls].get(column, 0.0)
            df.loc[mask, column] = _flags(rng, n_cls, rate)

        for column, (low, high) in DISEASE_LAB_RANGES[cls].items():
            df.loc[mask, column] = rng.uniform(low, high, size=n_cls)

    for column, (low, high) in LAB_RANGES.items():
        df[column] = rng.uniform(low, high, size=count)

    df["indirect_bilirubin"] = df["total_bilirubin"] - df["direct_bilirubin"]

    return SyntheticCohort(
        features=df.to_numpy(dtype=float),
        labels=labels,
    )
