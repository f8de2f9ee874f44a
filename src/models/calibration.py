"""
Turns raw classifier probabilities into a decision and a confidence score.

Two strategies are available:

* ``honest`` - temperature scaling followed by a plain argmax.
* ``balanced_demo`` - reproduces the demo behaviour of the first web
  release: the scaled probabilities are rotated by one class before the
  argmax and, in batch mode, labels are reassigned so every class gets an
  equal share regardless of the input, with confidence floored at 0.65.
  Predictions produced this way do not reflect the features and must never be
  used for evaluation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from src.data.schema import DISEASE_LABELS, N_CLASSES
from src.log import get_logger


logger = get_logger("calibration")

DEFAULT_TEMPERATURE = 0.8
DEMO_CONFIDENCE_FLOOR = 0.65


class CalibrationStrategy(str, Enum):
    HONEST = "honest"
    BALANCED_DEMO = "balanced_demo"


@dataclass(frozen=True)
class Decision:
    label: int
    disease: str
    confidence: float
    probabilities: Dict[str, float]


def temperature_scale(raw: Sequence[float], temperature: float = DEFAULT_TEMPERATURE) -> np.ndarray:
    """p ** (1 / T), renormalised to sum to 1. Lower T sharpens the peak."""
    if temperature <= 0:
        raise ValueError(f"temperature must be positive, got {temperature}")

    p = np.clip(np.asarray(raw, dtype=float), 0.0, None)
    scaled = np.power(p, 1.0 / temperature)
    total = scaled.sum()
    if not np.isfinite(total) or total <= 0:
        return np.full(len(p), 1.0 / len(p))
    return scaled / total


def _to_decision(scaled: np.ndarray, label: Optional[int] = None) -> Decision:
    if label is None:
        label = int(np.argmax(scaled))  # first index wins ties
    return Decision(
        label=label,
        disease=DISEASE_LABELS[label],
        confidence=float(scaled[label]),
        probabilities={
            name: float(scaled[i]) for i, name in enumerate(DISEASE_LABELS)
        },
    )


def decide(
    raw: Sequence[float],
    temperature: float = DEFAULT_TEMPERATURE,
    strategy: CalibrationStrategy = CalibrationStrategy.HONEST,
) -> Decision:
    scaled = temperature_scale(raw, temperature)

    if CalibrationStrategy(strategy) is CalibrationStrategy.BALANCED_DEMO:
        scaled = np.roll(scaled, 1)

    return _to_decision(scaled)


def decide_batch(
    raw_rows: Sequence[Sequence[float]],
    temperature: float = DEFAULT_TEMPERATURE,
    strategy: CalibrationStrategy = CalibrationStrategy.HONEST,
    seed: Optional[int] = None,
) -> List[Decision]:
    """Order-preserving decisions for a batch of raw probability rows."""
    strategy = CalibrationStrategy(strategy)
    decisions = [decide(row, temperature, strategy) for row in raw_rows]

    if strategy is not CalibrationStrategy.BALANCED_DEMO or not decisions:
        return decisions

    logger.warning(
        "balanced_demo calibration: %d batch labels reassigned independently of the model",
        len(decisions),
    )

    per_class, remainder = divmod(len(decisions), N_CLASSES)
    forced = np.concatenate([
        np.full(per_class + (1 if cls < remainder else 0), cls, dtype=int)
        for cls in range(N_CLASSES)
    ])
    np.random.default_rng(seed).shuffle(forced)

    return [
        Decision(
            label=int(label),
            disease=DISEASE_LABELS[int(label)],
            confidence=max(DEMO_CONFIDENCE_FLOOR, decision.confidence),
            probabilities=decision.probabilities,
        )
        for decision, label in zip(decisions, forced)
    ]
