from collections import Counter                # Counting forced labels

import numpy as np                             # NumPy for probability sums
import pytest                                  # Pytest framework for approx and raises

from src.models.calibration import (           # Calibration layer under test
    DEMO_CONFIDENCE_FLOOR,
    CalibrationStrategy,
    decide,
    decide_batch,
    temperature_scale,
)


def test_temperature_scale_sharpens_and_normalises():
    scaled = temperature_scale([0.4, 0.35, 0.25], temperature=0.4)

    assert scaled.sum() == pytest.approx(1.0)  # Still a distribution
    assert scaled[0] > 0.4                     # Peak sharper than the raw 0.4
    assert scaled[2] < 0.25                    # Tail pushed down


def test_low_temperature_decision_scenario():
    decision = decide([0.4, 0.35, 0.25], temperature=0.4)

    assert decision.label == 0                 # Dominant class unchanged
    assert decision.disease == "Dengue"
    assert decision.confidence == pytest.approx(0.4938, abs=1e-3)  # 0.4^2.5 renormalised
    assert sum(decision.probabilities.values()) == pytest.approx(1.0)


def test_temperature_one_is_identity():
    scaled = temperature_scale([0.2, 0.5, 0.3], temperature=1.0)

    assert np.allclose(scaled, [0.2, 0.5, 0.3])


def test_ties_break_to_lowest_index():
    decision = decide([0.45, 0.45, 0.10])

    assert decision.label == 0


def test_all_zero_row_falls_back_to_uniform():
    scaled = temperature_scale([0.0, 0.0, 0.0])

    assert np.allclose(scaled, [1 / 3, 1 / 3, 1 / 3])


def test_invalid_temperature():
    with pytest.raises(ValueError):
        temperature_scale([0.5, 0.5, 0.0], temperature=0)


def test_honest_batch_preserves_order():
    rows = [[0.8, 0.1, 0.1], [0.1, 0.8, 0.1], [0.1, 0.1, 0.8]]

    decisions = decide_batch(rows)

    assert [d.label for d in decisions] == [0, 1, 2]   # One decision per row, same order


def test_balanced_demo_rotates_single_decision():
    decision = decide([0.7, 0.2, 0.1], strategy=CalibrationStrategy.BALANCED_DEMO)

    assert decision.label == 1                 # Rotated by one class before argmax


def test_balanced_demo_batch_forces_balanced_labels():
    rows = [[0.9, 0.05, 0.05]] * 7             # Model says Dengue for everything

    decisions = decide_batch(rows, strategy="balanced_demo", seed=11)

    counts = Counter(d.label for d in decisions)
    assert [counts[c] for c in range(3)] == [3, 2, 2]  # Labels ignore the model output
    assert all(d.confidence >= DEMO_CONFIDENCE_FLOOR for d in decisions)
