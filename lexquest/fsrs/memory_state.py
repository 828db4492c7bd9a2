"""
Memory State - Retrievability and Intervals

Key concepts:
- Stability (S): days until retrievability decays to 90%
- Difficulty (D): how hard the card is to learn (1-10 scale)
- Retrievability (R): probability of successful recall at time t
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from lexquest.fsrs.constants import DECAY, FACTOR, S_MIN


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_retrievability(stability: float, elapsed_days: float) -> float:
    """
    Power forgetting curve.

    Formula: R = (1 + FACTOR * t / S) ^ DECAY

    Interpretation:
    - Immediately after review: R = 1.0
    - At t = S: R = 0.9
    - R decays smoothly but never reaches zero

    Args:
        stability: Current stability in days
        elapsed_days: Time since last review in days

    Returns:
        Retrievability between 0 and 1
    """
    if elapsed_days <= 0:
        return 1.0
    stability = max(stability, S_MIN)
    return (1.0 + FACTOR * elapsed_days / stability) ** DECAY


def next_interval(stability: float, retention: float, maximum_interval: int) -> int:
    """
    Interval (whole days) at which predicted retrievability equals `retention`.

    Formula: I = S / FACTOR * (retention ^ (1 / DECAY) - 1)
    """
    raw = max(stability, S_MIN) / FACTOR * (retention ** (1.0 / DECAY) - 1.0)
    return int(min(max(round(raw), 1), maximum_interval))


def days_between(start: Optional[datetime], end: datetime) -> float:
    """
    Fractional days from start to end, clamped at zero.

    Early reviews (or clock skew) never produce negative elapsed time.
    """
    if start is None:
        return 0.0
    delta = as_utc(end) - as_utc(start)
    return max(0.0, delta.total_seconds() / 86400.0)
