from __future__ import annotations

import math
from dataclasses import dataclass
from typing import AbstractSet

POINTS_PER_LEVEL = 100


@dataclass(frozen=True)
class RoundScore:
    """Outcome of comparing a submitted selection against the target shape."""

    accuracy: float
    correct: int
    incorrect: int
    missed: int
    passed: bool
    points: int


def evaluate(target: AbstractSet, selections: AbstractSet) -> float:
    """Overlap of the two cell sets divided by their union.

    Missed target cells and extra picks both lower the result; only an exact
    match scores 1.0.
    """
    union = len(target | selections)
    if union == 0:
        return 1.0
    return len(target & selections) / union


def round_points(level: int, accuracy: float) -> int:
    return math.floor(level * POINTS_PER_LEVEL * accuracy)


def score_round(target: AbstractSet, selections: AbstractSet, level: int) -> RoundScore:
    accuracy = evaluate(target, selections)
    passed = accuracy == 1.0
    return RoundScore(
        accuracy=accuracy,
        correct=len(target & selections),
        incorrect=len(selections - target),
        missed=len(target - selections),
        passed=passed,
        points=round_points(level, accuracy) if passed else 0,
    )
