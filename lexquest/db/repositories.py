"""
SQLAlchemy implementations of the store interfaces.

Each method opens its own session and closes it in `finally`. Rows are
converted to the plain records in lexquest.models on the way out; values the
records cannot represent (unknown enum values, naive timestamps, ratings out
of range) are normalised here rather than raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from lexquest.db.models import (
    BookRow,
    CardRow,
    InventoryPresetRow,
    LedgerRow,
    ReviewLogRow,
    SystemSettingRow,
)
from lexquest.errors import CardNotFoundError
from lexquest.fsrs.memory_state import as_utc, days_between
from lexquest.fsrs.scheduler import clamp_rating
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
    utcnow,
)

logger = logging.getLogger(__name__)


# ---- Conversions ----

def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return as_utc(value).astimezone(timezone.utc)


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    return as_utc(value) if value is not None else None


def _enum(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("[DB] Unknown %s value %r, using %s", enum_cls.__name__, value, default)
        return default


def _db_value(value):
    if isinstance(value, datetime):
        return _to_db_time(value)
    if isinstance(value, (BookMode, BookStatus, TransactionType)):
        return value.value
    if isinstance(value, (CardState, BookPriority)):
        return int(value)
    return value


def _book_from_row(row: BookRow) -> Book:
    return Book(
        id=row.id,
        title=row.title,
        mode=_enum(BookMode, row.mode, BookMode.READ),
        total_unit=row.total_unit,
        chunk_size=row.chunk_size,
        completed_unit=row.completed_unit or 0,
        status=_enum(BookStatus, row.status, BookStatus.ACTIVE),
        previous_book_id=row.previous_book_id or None,
        priority=_enum(BookPriority, row.priority, BookPriority.BRANCH),
        target_completion_date=row.target_completion_date,
        created_at=_from_db_time(row.created_at),
        updated_at=_from_db_time(row.updated_at),
    )


def _card_from_row(row: CardRow, now: Optional[datetime] = None) -> Card:
    last_review = _from_db_time(row.last_review)
    return Card(
        id=row.id,
        book_id=row.book_id,
        unit_index=row.unit_index,
        state=_enum(CardState, row.state, CardState.NEW),
        stability=max(0.0, row.stability or 0.0),
        difficulty=row.difficulty or 0.0,
        # Recomputed on every read, never trusted from the row
        elapsed_days=int(days_between(last_review, now or utcnow())),
        scheduled_days=row.scheduled_days or 0,
        reps=max(0, row.reps or 0),
        lapses=max(0, row.lapses or 0),
        due=_from_db_time(row.due),
        last_review=last_review,
        photo_path=row.photo_path,
        created_at=_from_db_time(row.created_at),
    )


def _ledger_from_row(row: LedgerRow) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        date=row.date,
        earned_lex=row.earned_lex,
        target_lex=row.target_lex,
        balance=row.balance,
        transaction_type=_enum(TransactionType, row.transaction_type, TransactionType.ADJUSTMENT),
        note=row.note or "",
    )


def _preset_from_row(row: InventoryPresetRow) -> InventoryPreset:
    return InventoryPreset(
        id=row.id,
        label=row.label,
        book_ids=[str(i) for i in (row.book_ids or []) if i],
        is_default=bool(row.is_default),
    )


def _log_from_row(row: ReviewLogRow) -> ReviewLog:
    return ReviewLog(
        id=row.id,
        card_id=row.card_id,
        book_id=row.book_id,
        rating=int(clamp_rating(row.rating)),
        state_before=_enum(CardState, row.state_before, CardState.NEW),
        state_after=_enum(CardState, row.state_after, CardState.REVIEW),
        stability_after=row.stability_after,
        difficulty_after=row.difficulty_after,
        scheduled_days=row.scheduled_days,
        lex_awarded=row.lex_awarded or 0,
        reviewed_at=_from_db_time(row.reviewed_at),
    )


# ---- Stores ----

class SqlCardStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_due(self, book_ids: Iterable[str], now: datetime) -> list[Card]:
        book_ids = list(book_ids)
        if not book_ids:
            return []
        session = self.session_factory()
        try:
            rows = session.query(CardRow).filter(
                CardRow.book_id.in_(book_ids),
                CardRow.state != int(CardState.NEW),
                CardRow.due <= _to_db_time(now)
            ).order_by(CardRow.due, CardRow.id).all()
            return [_card_from_row(r, now) for r in rows]
        finally:
            session.close()

    def find_new(self, book_ids: Iterable[str]) -> list[Card]:
        book_ids = list(book_ids)
        if not book_ids:
            return []
        session = self.session_factory()
        try:
            rows = session.query(CardRow).filter(
                CardRow.book_id.in_(book_ids),
                CardRow.state == int(CardState.NEW)
            ).order_by(CardRow.book_id, CardRow.unit_index).all()
            return [_card_from_row(r) for r in rows]
        finally:
            session.close()

    def get(self, card_id: str) -> Optional[Card]:
        session = self.session_factory()
        try:
            row = session.get(CardRow, card_id)
            return _card_from_row(row) if row is not None else None
        finally:
            session.close()

    def find_by_book(self, book_id: str) -> list[Card]:
        session = self.session_factory()
        try:
            rows = session.query(CardRow).filter(
                CardRow.book_id == book_id
            ).order_by(CardRow.unit_index).all()
            return [_card_from_row(r) for r in rows]
        finally:
            session.close()

    def update(self, card_id: str, patch: dict) -> None:
        """
        Apply a partial update to one card.

        Raises:
            CardNotFoundError: no card with this id
        """
        session = self.session_factory()
        try:
            row = session.get(CardRow, card_id)
            if row is None:
                raise CardNotFoundError(card_id)
            for key, value in patch.items():
                if key in ("id", "book_id") or not hasattr(CardRow, key):
                    continue
                setattr(row, key, _db_value(value))
            session.commit()
        finally:
            session.close()

    def bulk_create(self, cards: Iterable[Card]) -> None:
        """Insert cards; ids that already exist are left untouched."""
        cards = list(cards)
        if not cards:
            return
        session = self.session_factory()
        try:
            ids = [c.id for c in cards]
            existing = {
                row_id for (row_id,) in session.query(CardRow.id).filter(CardRow.id.in_(ids)).all()
            }
            for card in cards:
                if card.id in existing:
                    continue
                existing.add(card.id)
                session.add(CardRow(
                    id=card.id,
                    book_id=card.book_id,
                    unit_index=card.unit_index,
                    state=int(card.state),
                    stability=card.stability,
                    difficulty=card.difficulty,
                    elapsed_days=card.elapsed_days,
                    scheduled_days=card.scheduled_days,
                    reps=card.reps,
                    lapses=card.lapses,
                    due=_to_db_time(card.due),
                    last_review=_to_db_time(card.last_review),
                    photo_path=card.photo_path,
                    created_at=_to_db_time(card.created_at),
                ))
            session.commit()
        finally:
            session.close()

    def count_by_book_and_state(self, book_id: str, state: CardState) -> int:
        session = self.session_factory()
        try:
            return session.query(func.count(CardRow.id)).filter(
                CardRow.book_id == book_id,
                CardRow.state == int(state)
            ).scalar() or 0
        finally:
            session.close()


class SqlBookStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_all(self) -> list[Book]:
        session = self.session_factory()
        try:
            rows = session.query(BookRow).order_by(BookRow.created_at, BookRow.id).all()
            return [_book_from_row(r) for r in rows]
        finally:
            session.close()

    def find_active(self) -> list[Book]:
        session = self.session_factory()
        try:
            rows = session.query(BookRow).filter(
                BookRow.status == BookStatus.ACTIVE.value
            ).order_by(BookRow.created_at, BookRow.id).all()
            return [_book_from_row(r) for r in rows]
        finally:
            session.close()

    def find_by_id(self, book_id: str) -> Optional[Book]:
        session = self.session_factory()
        try:
            row = session.get(BookRow, book_id)
            return _book_from_row(row) if row is not None else None
        finally:
            session.close()

    def create(self, book: Book) -> None:
        session = self.session_factory()
        try:
            session.add(BookRow(
                id=book.id,
                title=book.title,
                mode=book.mode.value,
                total_unit=book.total_unit,
                chunk_size=book.chunk_size,
                completed_unit=book.completed_unit,
                status=book.status.value,
                previous_book_id=book.previous_book_id,
                priority=int(book.priority),
                target_completion_date=book.target_completion_date,
                created_at=_to_db_time(book.created_at),
                updated_at=_to_db_time(book.updated_at),
            ))
            session.commit()
        finally:
            session.close()

    def update(self, book_id: str, patch: dict) -> None:
        """Partial update; bumps updated_at so cached route resolutions are superseded."""
        session = self.session_factory()
        try:
            row = session.get(BookRow, book_id)
            if row is None:
                raise LookupError(f"Book not found: {book_id}")
            for key, value in patch.items():
                if key == "id" or not hasattr(BookRow, key):
                    continue
                setattr(row, key, _db_value(value))
            if "updated_at" not in patch:
                row.updated_at = _to_db_time(utcnow())
            session.commit()
        finally:
            session.close()


class SqlLedgerStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_recent(self, n: int) -> list[LedgerEntry]:
        """Newest first."""
        session = self.session_factory()
        try:
            rows = session.query(LedgerRow).order_by(
                LedgerRow.date.desc(), LedgerRow.id.desc()
            ).limit(max(0, n)).all()
            return [_ledger_from_row(r) for r in rows]
        finally:
            session.close()

    def find_all(self) -> list[LedgerEntry]:
        """Fold order: date, then insertion id."""
        session = self.session_factory()
        try:
            rows = session.query(LedgerRow).order_by(LedgerRow.date, LedgerRow.id).all()
            return [_ledger_from_row(r) for r in rows]
        finally:
            session.close()

    def get_last_daily(self) -> Optional[LedgerEntry]:
        """Most recent daily row, however many manual rows follow it."""
        session = self.session_factory()
        try:
            row = session.query(LedgerRow).filter(
                LedgerRow.transaction_type == TransactionType.DAILY.value
            ).order_by(LedgerRow.date.desc()).first()
            return _ledger_from_row(row) if row is not None else None
        finally:
            session.close()

    def find_by_date(self, day: date) -> list[LedgerEntry]:
        session = self.session_factory()
        try:
            rows = session.query(LedgerRow).filter(LedgerRow.date == day).order_by(LedgerRow.id).all()
            return [_ledger_from_row(r) for r in rows]
        finally:
            session.close()

    def insert(self, entry: LedgerEntry) -> bool:
        """
        Insert a ledger row.

        Returns:
            False when a daily row for the date already exists
        """
        session = self.session_factory()
        try:
            row = LedgerRow(
                date=entry.date,
                earned_lex=int(entry.earned_lex),
                target_lex=int(entry.target_lex),
                balance=int(entry.balance),
                transaction_type=TransactionType(entry.transaction_type).value,
                note=entry.note or "",
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.warning("[DB] Duplicate daily ledger row for %s ignored", entry.date)
                return False
            entry.id = row.id
            return True
        finally:
            session.close()


class SqlPresetStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_all(self) -> list[InventoryPreset]:
        session = self.session_factory()
        try:
            rows = session.query(InventoryPresetRow).order_by(InventoryPresetRow.id).all()
            return [_preset_from_row(r) for r in rows]
        finally:
            session.close()

    def find_default(self) -> Optional[InventoryPreset]:
        session = self.session_factory()
        try:
            row = session.query(InventoryPresetRow).filter(
                InventoryPresetRow.is_default.is_(True)
            ).order_by(InventoryPresetRow.id).first()
            return _preset_from_row(row) if row is not None else None
        finally:
            session.close()

    def create(self, preset: InventoryPreset) -> InventoryPreset:
        """Insert a preset. A new default replaces the previous one."""
        session = self.session_factory()
        try:
            if preset.is_default:
                session.query(InventoryPresetRow).filter(
                    InventoryPresetRow.is_default.is_(True)
                ).update({InventoryPresetRow.is_default: False})
            row = InventoryPresetRow(
                id=preset.id or None,
                label=preset.label,
                book_ids=list(preset.book_ids),
                is_default=preset.is_default,
            )
            session.add(row)
            session.commit()
            return _preset_from_row(row)
        finally:
            session.close()


class SqlReviewLogStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def add(self, log: ReviewLog) -> None:
        session = self.session_factory()
        try:
            row = ReviewLogRow(
                card_id=log.card_id,
                book_id=log.book_id,
                rating=int(log.rating),
                state_before=int(log.state_before),
                state_after=int(log.state_after),
                stability_after=log.stability_after,
                difficulty_after=log.difficulty_after,
                scheduled_days=log.scheduled_days,
                lex_awarded=log.lex_awarded,
                reviewed_at=_to_db_time(log.reviewed_at),
            )
            session.add(row)
            session.commit()
            log.id = row.id
        finally:
            session.close()

    def find_between(self, start: datetime, end: datetime) -> list[ReviewLog]:
        """Logs with start <= reviewed_at < end."""
        session = self.session_factory()
        try:
            rows = session.query(ReviewLogRow).filter(
                ReviewLogRow.reviewed_at >= _to_db_time(start),
                ReviewLogRow.reviewed_at < _to_db_time(end)
            ).order_by(ReviewLogRow.reviewed_at, ReviewLogRow.id).all()
            return [_log_from_row(r) for r in rows]
        finally:
            session.close()


class SqlSettingsStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        session = self.session_factory()
        try:
            row = session.get(SystemSettingRow, key)
            return row.value if row is not None and row.value is not None else default
        finally:
            session.close()

    def set(self, key: str, value: str) -> None:
        session = self.session_factory()
        try:
            session.merge(SystemSettingRow(key=key, value=value))
            session.commit()
        finally:
            session.close()


@dataclass
class Stores:
    cards: SqlCardStore
    books: SqlBookStore
    ledger: SqlLedgerStore
    presets: SqlPresetStore
    review_logs: SqlReviewLogStore
    settings: SqlSettingsStore


def create_stores(session_factory: sessionmaker) -> Stores:
    return Stores(
        cards=SqlCardStore(session_factory),
        books=SqlBookStore(session_factory),
        ledger=SqlLedgerStore(session_factory),
        presets=SqlPresetStore(session_factory),
        review_logs=SqlReviewLogStore(session_factory),
        settings=SqlSettingsStore(session_factory),
    )
