"""
Exceptions raised to callers.

Only caller misuse surfaces as an exception. Anomalies in persisted data are
normalised where they are read.
"""


class LexQuestError(Exception):
    """Base class for errors raised by lexquest."""


class InvalidRatingError(LexQuestError, ValueError):
    def __init__(self, value):
        super().__init__(f"Invalid rating: {value!r} (expected 1-4 / Again, Hard, Good, Easy)")
        self.value = value


class CardNotFoundError(LexQuestError, LookupError):
    def __init__(self, card_id: str):
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id


class InvalidPrerequisiteError(LexQuestError, ValueError):
    """Prerequisite assignment would reference itself, a missing book, or close a cycle."""
