"""
LexQuest - spaced-repetition study tracker core.

Books are sliced into cards, cards are scheduled with an FSRS memory model,
and the day's work is priced in Lex against a daily target recorded in an
append-only ledger.

Subpackages:
    fsrs    card scheduler (memory model + review state machine)
    quest   daily allocation of due and new cards
    ledger  rollover engine, targets, balance analytics
    route   prerequisite graph of books
    db      SQLAlchemy store implementations
"""

from lexquest.errors import (
    CardNotFoundError,
    InvalidPrerequisiteError,
    InvalidRatingError,
    LexQuestError,
)
from lexquest.models import (
    Book,
    BookMode,
    BookPriority,
    BookStatus,
    Card,
    CardState,
    InventoryPreset,
    LedgerEntry,
    ReviewLog,
    TransactionType,
)

__version__ = "0.1.0"
