"""
Stability and Difficulty Updates

Key principles:
- Spaced, effortful success produces the largest stability gains
- Hard success grows stability less than Good
- Failure drops stability sharply and raises difficulty
"""

from __future__ import annotations

import math
from typing import Sequence

from lexquest.fsrs.constants import D_MAX, D_MIN, S_MIN, Rating


def _clamp_difficulty(value: float) -> float:
    return max(D_MIN, min(D_MAX, value))


def initial_stability(w: Sequence[float], rating: Rating) -> float:
    """S0(G) = w[G-1]"""
    return max(S_MIN, w[int(rating) - 1])


def initial_difficulty(w: Sequence[float], rating: Rating) -> float:
    """D0(G) = w4 - (G - 3) * w5, clipped to [1, 10]"""
    return _clamp_difficulty(w[4] - (int(rating) - 3) * w[5])


def next_difficulty(w: Sequence[float], difficulty: float, rating: Rating) -> float:
    """
    Update difficulty after a review.

    Formula:
        D' = D - w6 * (G - 3)
        D'' = w7 * D0(Easy) + (1 - w7) * D'

    Again (G=1) pushes difficulty up, Easy pulls it down; the mean
    reversion keeps it from drifting to the bounds.
    """
    stepped = difficulty - w[6] * (int(rating) - 3)
    reverted = w[7] * initial_difficulty(w, Rating.EASY) + (1.0 - w[7]) * stepped
    return _clamp_difficulty(reverted)


def stability_after_success(
    w: Sequence[float],
    difficulty: float,
    stability: float,
    retrievability: float,
    rating: Rating
) -> float:
    """
    Update stability after a successful recall (Hard/Good/Easy).

    Formula:
        S' = S * (1 + e^w8 * (11 - D) * S^-w9 * (e^(w10 * (1 - R)) - 1) * penalty)

    Where penalty is w15 for Hard, w16 for Easy, 1 for Good.
    """
    if rating == Rating.AGAIN:
        raise ValueError("Use stability_after_failure for AGAIN")

    stability = max(stability, S_MIN)
    hard_penalty = w[15] if rating == Rating.HARD else 1.0
    easy_bonus = w[16] if rating == Rating.EASY else 1.0

    growth = (
        math.exp(w[8])
        * (11.0 - difficulty)
        * stability ** (-w[9])
        * (math.exp(w[10] * (1.0 - retrievability)) - 1.0)
        * hard_penalty
        * easy_bonus
    )
    return max(S_MIN, stability * (1.0 + growth))


def stability_after_failure(
    w: Sequence[float],
    difficulty: float,
    stability: float,
    retrievability: float,
    max_lapse_ratio: float
) -> float:
    """
    Update stability after a lapse (Again).

    Formula:
        S' = w11 * D^-w12 * ((S + 1)^w13 - 1) * e^(w14 * (1 - R))

    Capped at max_lapse_ratio * S so a lapse always costs stability, even
    for a card already below S_MIN. The result stays strictly positive.
    """
    if stability <= 0:
        stability = S_MIN
    forgotten = (
        w[11]
        * difficulty ** (-w[12])
        * ((stability + 1.0) ** w[13] - 1.0)
        * math.exp(w[14] * (1.0 - retrievability))
    )
    return max(math.ulp(0.0), min(forgotten, stability * max_lapse_ratio))
