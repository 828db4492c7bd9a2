"""
FSRS - Free Spaced Repetition Scheduler

Card scheduler for the study tracker.

This package implements the per-card memory model with:
- Power forgetting curve: R = (1 + 19/81 * t/S) ^ -0.5
- Rating-driven stability and difficulty updates (FSRS-4.5 weights)
- Per-mode target retention (Read/Solve 0.90, Memorize 0.85)
- A New -> Learning -> Review <-> Relearning state machine

Quick start:
    from lexquest import fsrs

    scheduler = fsrs.Scheduler(mode=BookMode.MEMORIZE)

    # Pure transition, the caller persists the result
    card = scheduler.review(card, fsrs.Rating.GOOD, now=now)

    # Interval each button would produce
    intervals = scheduler.preview(card, now=now)
"""

# Core scheduler API
from lexquest.fsrs.scheduler import Scheduler, clamp_rating, coerce_rating

# Parameters
from lexquest.fsrs.params import SchedulerParams

# Constants
from lexquest.fsrs.constants import (
    Rating,
    SUCCESS_RATINGS,
    MODEL_VERSION,
    DEFAULT_WEIGHTS,
    DEFAULT_RETENTION,
    S_MIN,
    D_MIN,
    D_MAX,
)

# Memory state (for advanced usage)
from lexquest.fsrs.memory_state import (
    calculate_retrievability,
    days_between,
    next_interval,
)


__all__ = [
    # Core algorithm
    "Scheduler",
    "coerce_rating",
    "clamp_rating",
    "SchedulerParams",

    # Enums
    "Rating",
    "SUCCESS_RATINGS",

    # Memory state
    "calculate_retrievability",
    "days_between",
    "next_interval",

    # Parameters
    "MODEL_VERSION",
    "DEFAULT_WEIGHTS",
    "DEFAULT_RETENTION",
    "S_MIN",
    "D_MIN",
    "D_MAX",
]
