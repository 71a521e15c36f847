from __future__ import annotations

from enum import Enum


class Difficulty(Enum):
    """Chess AI tiers. Chosen once per game."""

    NONE = "none"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def search_depth(self) -> int:
        # Only HARD runs a tree search; the others keep the depth for bookkeeping.
        return {"none": 0, "easy": 1, "medium": 2, "hard": 3}[self.value]

    @property
    def thinking_time(self) -> float:
        """Seconds the AI waits before moving."""
        return {"none": 0.0, "easy": 0.5, "medium": 1.0, "hard": 1.5}[self.value]


class CheckersDifficulty(Enum):
    NONE = "none"
    MEDIUM = "medium"

    @property
    def thinking_time(self) -> float:
        return 0.0 if self is CheckersDifficulty.NONE else 1.0
