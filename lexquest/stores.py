"""
Store interfaces.

The engines talk to persistence only through these protocols. lexquest.db
provides SQLAlchemy implementations; tests may use in-memory fakes.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol

from lexquest.models import (
    Book,
    Card,
    CardState,
    InventoryPreset,
    LedgerEntry,
    ReviewLog,
)


class CardStore(Protocol):
    def find_due(self, book_ids: Iterable[str], now: datetime) -> list[Card]: ...

    def find_new(self, book_ids: Iterable[str]) -> list[Card]: ...

    def get(self, card_id: str) -> Optional[Card]: ...

    def find_by_book(self, book_id: str) -> list[Card]: ...

    def update(self, card_id: str, patch: dict) -> None: ...

    def bulk_create(self, cards: Iterable[Card]) -> None: ...

    def count_by_book_and_state(self, book_id: str, state: CardState) -> int: ...


class BookStore(Protocol):
    def find_all(self) -> list[Book]: ...

    def find_active(self) -> list[Book]: ...

    def find_by_id(self, book_id: str) -> Optional[Book]: ...

    def create(self, book: Book) -> None: ...

    def update(self, book_id: str, patch: dict) -> None: ...


class LedgerStore(Protocol):
    def get_recent(self, n: int) -> list[LedgerEntry]: ...

    def find_all(self) -> list[LedgerEntry]: ...

    def get_last_daily(self) -> Optional[LedgerEntry]: ...

    def find_by_date(self, day: date) -> list[LedgerEntry]: ...

    def insert(self, entry: LedgerEntry) -> bool:
        """Insert a row. Returns False (never duplicates) on a daily date collision."""
        ...


class PresetStore(Protocol):
    def find_all(self) -> list[InventoryPreset]: ...

    def find_default(self) -> Optional[InventoryPreset]: ...

    def create(self, preset: InventoryPreset) -> InventoryPreset: ...


class ReviewLogStore(Protocol):
    def add(self, log: ReviewLog) -> None: ...

    def find_between(self, start: datetime, end: datetime) -> list[ReviewLog]: ...


class SettingsStore(Protocol):
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...
