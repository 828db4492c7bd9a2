"""
Scheduler - Card Review State Machine

Pure scheduling logic (no database calls).

Main workflow:
1. Load card (caller's responsibility)
2. Compute elapsed days and retrievability
3. Apply the state transition for the rating
4. Return the updated card (caller persists it)

Transitions:
- New          -> Learning   (any rating)
- Learning     -> Review     (Hard/Good/Easy), stays Learning on Again
- Review       -> Review     (Hard/Good/Easy), Relearning on Again
- Relearning   -> Review     (Hard/Good/Easy), stays Relearning on Again
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from lexquest.errors import InvalidRatingError
from lexquest.fsrs import updates
from lexquest.fsrs.constants import D_MAX, D_MIN, Rating
from lexquest.fsrs.memory_state import (
    as_utc,
    calculate_retrievability,
    days_between,
    next_interval,
)
from lexquest.fsrs.params import SchedulerParams
from lexquest.models import BookMode, Card, CardState, utcnow


def coerce_rating(value) -> Rating:
    """
    Validate a caller-supplied rating.

    Accepts Rating members, ints 1-4 and names ("good", "AGAIN").
    Anything else is a programming error upstream.
    """
    if isinstance(value, Rating):
        return value
    if isinstance(value, bool):
        raise InvalidRatingError(value)
    if isinstance(value, int):
        try:
            return Rating(value)
        except ValueError:
            raise InvalidRatingError(value) from None
    if isinstance(value, str):
        try:
            return Rating[value.strip().upper()]
        except KeyError:
            raise InvalidRatingError(value) from None
    raise InvalidRatingError(value)


def clamp_rating(value: int) -> Rating:
    """Normalise a persisted rating into the valid range."""
    return Rating(max(int(Rating.AGAIN), min(int(Rating.EASY), int(value))))


class Scheduler:
    """
    Card scheduler bound to one book mode.

    The target retention is taken from params for the mode, so Read/Solve
    and Memorize books space their reviews differently.
    """

    def __init__(self, mode: BookMode = BookMode.READ, params: Optional[SchedulerParams] = None):
        self.mode = BookMode(mode)
        self.params = params or SchedulerParams()

    @property
    def retention(self) -> float:
        return self.params.retention_for(self.mode)

    def retrievability(self, card: Card, now: Optional[datetime] = None) -> float:
        if card.state == CardState.NEW:
            return 1.0
        now = now or utcnow()
        return calculate_retrievability(card.stability, days_between(card.last_review, now))

    def review(self, card: Card, rating, now: Optional[datetime] = None) -> Card:
        """
        Apply a rating and return the updated card.

        The input card is not modified.

        Raises:
            InvalidRatingError: rating is not one of Again/Hard/Good/Easy
        """
        rating = coerce_rating(rating)
        now = as_utc(now or utcnow())

        if card.state == CardState.NEW:
            return self._review_new(card, rating, now)
        if rating == Rating.AGAIN:
            return self._review_lapse(card, now)
        return self._review_success(card, rating, now)

    def preview(self, card: Card, now: Optional[datetime] = None) -> dict[Rating, int]:
        """Interval in days each rating would produce, for button labels."""
        now = now or utcnow()
        return {rating: self.review(card, rating, now).scheduled_days for rating in Rating}

    def reset(self, card: Card, now: Optional[datetime] = None) -> Card:
        """Manual reset back to New. Keeps identity, photo and creation time."""
        now = as_utc(now or utcnow())
        return replace(
            card,
            state=CardState.NEW,
            stability=0.0,
            difficulty=0.0,
            elapsed_days=0,
            scheduled_days=0,
            reps=0,
            lapses=0,
            due=now,
            last_review=None,
        )

    # ---- Transitions ----

    def _review_new(self, card: Card, rating: Rating, now: datetime) -> Card:
        w = self.params.weights
        stability = updates.initial_stability(w, rating)
        difficulty = updates.initial_difficulty(w, rating)

        if rating == Rating.AGAIN:
            interval = self.params.relearning_days
        else:
            interval = next_interval(stability, self.retention, self.params.maximum_interval)

        return self._scheduled(
            card, now, interval,
            state=CardState.LEARNING,
            stability=stability,
            difficulty=difficulty,
            elapsed_days=0,
            reps=1,
            lapses=card.lapses,
        )

    def _review_success(self, card: Card, rating: Rating, now: datetime) -> Card:
        w = self.params.weights
        elapsed = days_between(card.last_review, now)
        difficulty = self._current_difficulty(card)
        retrievability = calculate_retrievability(card.stability, elapsed)

        stability = updates.stability_after_success(
            w, difficulty, card.stability, retrievability, rating
        )
        interval = next_interval(stability, self.retention, self.params.maximum_interval)

        return self._scheduled(
            card, now, interval,
            state=CardState.REVIEW,
            stability=stability,
            difficulty=updates.next_difficulty(w, difficulty, rating),
            elapsed_days=int(elapsed),
            reps=card.reps + 1,
            lapses=card.lapses,
        )

    def _review_lapse(self, card: Card, now: datetime) -> Card:
        w = self.params.weights
        elapsed = days_between(card.last_review, now)
        difficulty = self._current_difficulty(card)
        retrievability = calculate_retrievability(card.stability, elapsed)

        stability = updates.stability_after_failure(
            w, difficulty, card.stability, retrievability, self.params.max_lapse_ratio
        )
        # Not yet graduated cards stay in Learning
        state = CardState.LEARNING if card.state == CardState.LEARNING else CardState.RELEARNING

        return self._scheduled(
            card, now, self.params.relearning_days,
            state=state,
            stability=stability,
            difficulty=updates.next_difficulty(w, difficulty, Rating.AGAIN),
            elapsed_days=int(elapsed),
            reps=card.reps + 1,
            lapses=card.lapses + 1,
        )

    @staticmethod
    def _current_difficulty(card: Card) -> float:
        # Rows written before their first review carry difficulty 0
        return max(D_MIN, min(D_MAX, card.difficulty or D_MIN))

    @staticmethod
    def _scheduled(card: Card, now: datetime, interval: int, **changes) -> Card:
        return replace(
            card,
            scheduled_days=interval,
            due=now + timedelta(days=interval),
            last_review=now,
            **changes,
        )
