"""
Domain records for the study tracker.

Plain dataclasses shared by the scheduler, the quest engine, the ledger and
the route resolver. Persistence lives in lexquest.db; these records never
touch a session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum, IntEnum
from typing import Optional


class BookMode(str, Enum):
    """How a book is studied. Drives point value and target retention."""
    READ = "read"
    SOLVE = "solve"
    MEMORIZE = "memorize"


class BookStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FROZEN = "frozen"


class BookPriority(IntEnum):
    """Route priority. MainLine books sort before Branch books."""
    BRANCH = 0
    MAIN_LINE = 1


class CardState(IntEnum):
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class TransactionType(str, Enum):
    DAILY = "daily"
    ADJUSTMENT = "adjustment"
    ITEM_PURCHASE = "item_purchase"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Book:
    id: str
    title: str
    mode: BookMode = BookMode.READ
    total_unit: int = 1
    chunk_size: int = 1
    completed_unit: int = 0
    status: BookStatus = BookStatus.ACTIVE
    previous_book_id: Optional[str] = None
    priority: BookPriority = BookPriority.MAIN_LINE
    target_completion_date: Optional[date] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        # Corrupted rows must not break chunking math
        self.total_unit = max(1, int(self.total_unit))
        self.chunk_size = max(1, int(self.chunk_size))

    @property
    def is_main_line(self) -> bool:
        return self.priority == BookPriority.MAIN_LINE


@dataclass
class Card:
    """
    Memory state for one chunk of a book.

    `due` is always set, even for New cards, so due queries never need a
    null check.
    """
    id: str
    book_id: str
    unit_index: int
    state: CardState = CardState.NEW
    stability: float = 0.0      # S, in days
    difficulty: float = 0.0     # D, range 1-10 once reviewed
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    due: datetime = field(default_factory=utcnow)
    last_review: Optional[datetime] = None
    photo_path: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class LedgerEntry:
    """
    One row of the append-mostly economic record.

    balance = previous balance + earned_lex - target_lex
    """
    date: date
    earned_lex: int
    target_lex: int
    balance: int
    transaction_type: TransactionType = TransactionType.DAILY
    note: str = ""
    id: Optional[int] = None


@dataclass
class InventoryPreset:
    id: int
    label: str
    book_ids: list[str] = field(default_factory=list)
    is_default: bool = False


@dataclass
class ReviewLog:
    """Append-only record of a single applied review."""
    card_id: str
    book_id: str
    rating: int
    state_before: CardState
    state_after: CardState
    stability_after: float
    difficulty_after: float
    scheduled_days: int
    lex_awarded: int
    reviewed_at: datetime
    id: Optional[int] = None
