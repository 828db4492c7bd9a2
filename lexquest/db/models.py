"""
SQLAlchemy ORM Models

Relational schema behind the store interfaces. Timestamps are stored in UTC.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BookRow(Base):
    """
    A registered study material.

    previous_book_id is deliberately not a foreign key: a deleted parent
    leaves a dangling id that the route resolver treats as "no prerequisite".
    """
    __tablename__ = 'books'

    id = Column(String(255), primary_key=True)
    title = Column(String(500), nullable=False)
    mode = Column(String(20), nullable=False, default="read")
    total_unit = Column(Integer, nullable=False, default=1)
    chunk_size = Column(Integer, nullable=False, default=1)
    completed_unit = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    previous_book_id = Column(String(255), nullable=True)
    priority = Column(Integer, nullable=False, default=1)  # 0=Branch, 1=MainLine
    target_completion_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<BookRow({self.id}, {self.title!r})>"


class CardRow(Base):
    """Memory state of one chunk of a book."""
    __tablename__ = 'cards'
    __table_args__ = (
        UniqueConstraint('book_id', 'unit_index', name='uq_cards_book_unit'),
        Index('ix_cards_book_state', 'book_id', 'state'),
    )

    id = Column(String(300), primary_key=True)   # "{book_id}_{unit_index}"
    book_id = Column(String(255), nullable=False)
    unit_index = Column(Integer, nullable=False)

    state = Column(Integer, nullable=False, default=0)  # 0=New, 1=Learning, 2=Review, 3=Relearning
    stability = Column(Float, nullable=False, default=0.0)
    difficulty = Column(Float, nullable=False, default=0.0)
    elapsed_days = Column(Integer, nullable=False, default=0)
    scheduled_days = Column(Integer, nullable=False, default=0)
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)

    due = Column(DateTime(timezone=True), nullable=False, index=True)
    last_review = Column(DateTime(timezone=True), nullable=True)
    photo_path = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<CardRow({self.id}, state={self.state})>"


class LedgerRow(Base):
    """
    Daily economic record plus manual transactions.

    At most one 'daily' row per date; adjustments and purchases may share a date.
    """
    __tablename__ = 'ledger'
    __table_args__ = (
        Index(
            'uq_ledger_daily_date',
            'date',
            unique=True,
            sqlite_where=text("transaction_type = 'daily'"),
            postgresql_where=text("transaction_type = 'daily'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    earned_lex = Column(Integer, nullable=False, default=0)
    target_lex = Column(Integer, nullable=False, default=0)
    balance = Column(Integer, nullable=False, default=0)
    transaction_type = Column(String(20), nullable=False, default="daily")
    note = Column(Text, nullable=False, default="")

    def __repr__(self):
        return f"<LedgerRow({self.date}, {self.transaction_type}, balance={self.balance})>"


class InventoryPresetRow(Base):
    __tablename__ = 'inventory_presets'

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(255), nullable=False)
    book_ids = Column(JSON, nullable=False, default=list)
    is_default = Column(Boolean, nullable=False, default=False)


class ReviewLogRow(Base):
    """Log entry for a single applied review."""
    __tablename__ = 'review_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(String(300), nullable=False, index=True)
    book_id = Column(String(255), nullable=False)

    rating = Column(Integer, nullable=False)  # 1=Again, 2=Hard, 3=Good, 4=Easy
    state_before = Column(Integer, nullable=False)
    state_after = Column(Integer, nullable=False)
    stability_after = Column(Float, nullable=False)
    difficulty_after = Column(Float, nullable=False)
    scheduled_days = Column(Integer, nullable=False)
    lex_awarded = Column(Integer, nullable=False, default=0)

    reviewed_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<ReviewLogRow(id={self.id}, {self.card_id}, rating={self.rating})>"


class SystemSettingRow(Base):
    __tablename__ = 'system_settings'

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=True)
