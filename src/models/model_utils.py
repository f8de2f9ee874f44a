from pathlib import Path
from typing import Union

import numpy as np
from sklearn.model_selection import train_test_split

from src.data.encoder import EncodedDataset, encode
from src.data.parser import TabularParser


def load_labeled_dataset(path: Union[str, Path], parser: TabularParser = None) -> EncodedDataset:
    path = Path(path)
    parser = parser or TabularParser()

    table = parser.parse_file(path.name, path.read_bytes())
    dataset = encode(table.headers, table.rows)
    if not dataset.has_labels:
        raise ValueError("Diagnosis column missing")
    return dataset


def split_cohort(features: np.ndarray, labels: np.ndarray, test_size: float = 0.2, seed: int = 42):
    return train_test_split(
        features, labels, test_size=test_size, random_state=seed, stratify=labels
    )
