"""
Lex - the shared point-value function.

Used by the quest engine to price due/new work and by the review flow to
award points. Base values are per mode and can be overridden at runtime;
overrides are never persisted here.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from lexquest.models import BookMode

logger = logging.getLogger(__name__)


BASE_LEX = {
    BookMode.READ: 30,
    BookMode.SOLVE: 50,
    BookMode.MEMORIZE: 1,
}

DIFFICULTY_MULTIPLIER = 1.5        # D=10 pays 2.5x the base value
RETENTION_BONUS_THRESHOLD = 0.7    # cards recalled below this pay extra


class LexTable:
    """
    Per-mode point values.

    lex(mode) returns the base value. With a difficulty (and optionally the
    card's retrievability at review time) the value is scaled up, never below
    the base.
    """

    def __init__(self, base: Optional[dict[BookMode, int]] = None):
        self._base = dict(BASE_LEX)
        for mode, value in (base or {}).items():
            self.set_base(mode, value)

    def base(self, mode: BookMode) -> int:
        return self._base.get(BookMode(mode), BASE_LEX[BookMode.READ])

    def set_base(self, mode: BookMode, value: int):
        """Runtime override for one mode."""
        value = int(value)
        if value < 0:
            raise ValueError(f"Lex value must be non-negative, got {value}")
        self._base[BookMode(mode)] = value

    def lex(
        self,
        mode: BookMode,
        difficulty: Optional[float] = None,
        retrievability: Optional[float] = None
    ) -> int:
        """
        Point value of one card.

        Formula:
            lex = floor(base * (1 + D/10 * 1.5) * retention_bonus)

        Where retention_bonus is 1 + (0.7 - R) * 2 below R = 0.7, else 1.
        """
        base = self.base(mode)
        if difficulty is None:
            return base

        difficulty = max(0.0, min(10.0, float(difficulty)))
        difficulty_bonus = 1.0 + (difficulty / 10.0) * DIFFICULTY_MULTIPLIER
        retention_bonus = 1.0
        if retrievability is not None and retrievability < RETENTION_BONUS_THRESHOLD:
            retention_bonus = 1.0 + (RETENTION_BONUS_THRESHOLD - retrievability) * 2.0

        # 0.7 - 0.2 is slightly below 0.5 in floating point
        return max(base, math.floor(base * difficulty_bonus * retention_bonus + 1e-9))

    def as_dict(self) -> dict[BookMode, int]:
        return dict(self._base)
