from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pandas as pd

from src.data.schema import (
    FEATURE_COLUMNS,
    FLAG_COLUMNS,
    LABEL_COLUMN,
    N_FEATURES,
    URBAN_VALUES,
    label_from_diagnosis,
)


_FLAG_SET = {c.lower() for c in FLAG_COLUMNS}


@dataclass
class EncodedDataset:
    features: np.ndarray                  # (row_count, 53) float
    labels: np.ndarray                    # (row_count,) int, empty when has_labels is False
    has_labels: bool
    row_count: int
    diagnoses: List[str] = field(default_factory=list)


def _find_column(headers: Sequence[str], name: str) -> int:
    target = name.lower()
    for idx, header in enumerate(headers):
        if str(header).strip().lower() == target:
            return idx
    return -1


def _is_usable_row(row: Sequence[str], n_headers: int) -> bool:
    if len(row) == 0:
        return False
    if all(cell == "" for cell in row):
        return False
    return len(row) >= n_headers


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and np.isnan(value):
        return ""
    return str(value).strip()


def _encode_column(name: str, values: pd.Series) -> np.ndarray:
    lowered = name.lower()
    text = values.map(_cell_text)

    if lowered == "gender":
        return text.str.lower().eq("m").to_numpy(dtype=float)

    if lowered == "residence":
        return text.str.lower().isin(URBAN_VALUES).to_numpy(dtype=float)

    numbers = np.array(pd.to_numeric(text, errors="coerce"), dtype=float)
    numbers[~np.isfinite(numbers)] = 0.0

    if lowered in _FLAG_SET:
        return (numbers > 0).astype(float)
    return numbers


def _encode_frame(frame: pd.DataFrame, column_positions: List[int]) -> np.ndarray:
    n_rows = len(frame)
    features = np.zeros((n_rows, N_FEATURES), dtype=float)

    for feature_idx, (name, position) in enumerate(zip(FEATURE_COLUMNS, column_positions)):
        if position == -1:
            continue
        features[:, feature_idx] = _encode_column(name, frame.iloc[:, position])

    return features


def encode(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> EncodedDataset:
    """
    Map parsed rows onto the fixed 53-column feature layout.

    Rows with no cells, only empty cells, or fewer cells than headers are
    skipped entirely. Schema columns missing from ``headers`` encode as 0.
    """
    n_headers = len(headers)
    kept = [list(row[:n_headers]) for row in rows if _is_usable_row(row, n_headers)]

    column_positions = [_find_column(headers, name) for name in FEATURE_COLUMNS]
    label_position = _find_column(headers, LABEL_COLUMN)
    has_labels = label_position != -1

    if not kept:
        return EncodedDataset(
            features=np.zeros((0, N_FEATURES), dtype=float),
            labels=np.zeros(0, dtype=int),
            has_labels=has_labels,
            row_count=0,
        )

    frame = pd.DataFrame(kept, columns=range(n_headers), dtype=object)
    features = _encode_frame(frame, column_positions)

    diagnoses: List[str] = []
    labels = np.zeros(0, dtype=int)
    if has_labels:
        diagnoses = [_cell_text(v) for v in frame.iloc[:, label_position]]
        labels = np.array([label_from_diagnosis(d) for d in diagnoses], dtype=int)

    return EncodedDataset(
        features=features,
        labels=labels,
        has_labels=has_labels,
        row_count=len(features),
        diagnoses=diagnoses,
    )


def encode_record(record: Mapping[str, Any]) -> np.ndarray:
    """Encode one record (field name -> raw value) into a 53-float vector."""
    by_name: Dict[str, Any] = {}
    for key, value in record.items():
        by_name.setdefault(str(key).strip().lower(), value)

    frame = pd.DataFrame(
        [[by_name.get(name.lower()) for name in FEATURE_COLUMNS]],
        dtype=object,
    )
    return _encode_frame(frame, list(range(N_FEATURES)))[0]

