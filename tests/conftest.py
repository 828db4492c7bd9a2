import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ.setdefault("TEST_MODE", "true")

from lexquest.db import create_db_engine, create_stores, get_session_factory, init_db
from lexquest.models import Book, BookMode, BookPriority, BookStatus, Card, CardState

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def stores(engine):
    return create_stores(get_session_factory(engine))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No LEXQUEST_* overrides leak in from the shell or a .env file."""
    for key in list(os.environ):
        if key.startswith("LEXQUEST_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


def make_book(
    book_id,
    title=None,
    mode=BookMode.READ,
    total_unit=100,
    chunk_size=10,
    status=BookStatus.ACTIVE,
    previous_book_id=None,
    priority=BookPriority.MAIN_LINE,
    created_offset=0,
    **kwargs
):
    """Book with a deterministic creation time; created_offset is in minutes."""
    created = NOW - timedelta(days=30) + timedelta(minutes=created_offset)
    return Book(
        id=book_id,
        title=title or book_id.title(),
        mode=mode,
        total_unit=total_unit,
        chunk_size=chunk_size,
        status=status,
        previous_book_id=previous_book_id,
        priority=priority,
        created_at=created,
        updated_at=created,
        **kwargs
    )


def make_card(book_id, unit_index, state=CardState.NEW, due=None, **kwargs):
    return Card(
        id=f"{book_id}_{unit_index}",
        book_id=book_id,
        unit_index=unit_index,
        state=state,
        due=due or NOW,
        created_at=NOW - timedelta(days=30),
        **kwargs
    )
