"""
FSRS Constants and Parameters

Default values for the memory model in one place. Everything here can be
overridden through SchedulerParams; nothing reads these at review time
except as defaults.
"""

from enum import IntEnum

from lexquest.models import BookMode


# ---- Ratings ----

class Rating(IntEnum):
    """User feedback on a review."""
    AGAIN = 1   # Recall failed
    HARD = 2    # Recalled with high effort
    GOOD = 3    # Recalled normally
    EASY = 4    # Recalled fluently (not exposed by the UI, supported by the model)


SUCCESS_RATINGS = frozenset({Rating.HARD, Rating.GOOD, Rating.EASY})


# ---- Forgetting curve ----
# R(t, S) = (1 + FACTOR * t / S) ** DECAY, so that R(S, S) = 0.9

MODEL_VERSION = "fsrs-4.5"
DECAY = -0.5
FACTOR = 19 / 81


# ---- Bounds ----

S_MIN = 0.01     # Stability floor (days)
D_MIN = 1.0      # Minimum difficulty
D_MAX = 10.0     # Maximum difficulty


# ---- Learning Parameters ----
# w0-w3:   initial stability per rating
# w4-w5:   initial difficulty and its rating slope
# w6-w7:   difficulty step and mean reversion
# w8-w10:  stability growth on success
# w11-w14: post-lapse stability
# w15-w16: hard penalty / easy bonus

DEFAULT_WEIGHTS = (
    0.4872, 1.4003, 3.7145, 13.8206,
    5.1618, 1.2298,
    0.8975, 0.031,
    1.6474, 0.1367, 1.0461,
    2.1072, 0.0793, 0.3246, 1.587,
    0.2272, 2.8755,
)


# ---- Scheduling ----

DEFAULT_RETENTION = {
    BookMode.READ: 0.90,
    BookMode.SOLVE: 0.90,
    BookMode.MEMORIZE: 0.85,
}

MAXIMUM_INTERVAL = 36500   # days
RELEARNING_DAYS = 1        # interval after an Again rating
MAX_LAPSE_RATIO = 0.5      # post-lapse stability is at most this share of the old one
