from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from polymemo.core.shapes import Cell, Shape


class Phase(Enum):
    IDLE = "idle"
    MEMORIZING = "memorizing"
    RECALLING = "recalling"
    FEEDBACK = "feedback"
    GAME_OVER = "game_over"


class Outcome(Enum):
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class RoundResult:
    """One resolved round."""

    level: int
    accuracy: float
    points: int
    outcome: Outcome
    correct: int = 0
    incorrect: int = 0
    missed: int = 0

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.PASSED


@dataclass
class SessionState:
    """Mutable state of one play session, owned by the round engine."""

    level: int = 1
    score: int = 0
    lives: int = 3
    highest_level_reached: int = 1
    level_when_last_died: int = 1
    phase: Phase = Phase.IDLE
    current_shape: Optional[Shape] = None
    selections: Set[Cell] = field(default_factory=set)
    is_paused: bool = False
    history: List[RoundResult] = field(default_factory=list)

    @property
    def accepts_selection(self) -> bool:
        return self.phase is Phase.RECALLING and not self.is_paused

    @property
    def last_result(self) -> Optional[RoundResult]:
        return self.history[-1] if self.history else None

    @property
    def feedback_outcome(self) -> Optional[Outcome]:
        """Outcome being shown while in FEEDBACK, otherwise None."""
        if self.phase is not Phase.FEEDBACK or not self.history:
            return None
        return self.history[-1].outcome


def share_message(score: int, level: int) -> str:
    """Text offered to the player for sharing a finished game."""
    return f"I scored {score} points and reached level {level} in Memory Challenge! Can you beat me?"
