# tests/test_repositories.py
from datetime import timedelta

import pytest
from sqlalchemy import text

from conftest import NOW, make_book, make_card
from lexquest.books import build_cards
from lexquest.db import reset_db
from lexquest.errors import CardNotFoundError
from lexquest.models import BookMode, BookStatus, CardState, InventoryPreset


def test_book_round_trip(stores):
    book = make_book("calc", mode=BookMode.SOLVE, previous_book_id="ghost")
    stores.books.create(book)
    loaded = stores.books.find_by_id("calc")
    assert loaded.mode == BookMode.SOLVE
    assert loaded.previous_book_id == "ghost"
    assert loaded.created_at == book.created_at
    assert stores.books.find_by_id("nope") is None


def test_find_active_and_update_bumps_updated_at(stores):
    stores.books.create(make_book("a"))
    stores.books.create(make_book("b", created_offset=1))
    before = stores.books.find_by_id("b").updated_at
    stores.books.update("b", {"status": BookStatus.COMPLETED})
    assert [b.id for b in stores.books.find_active()] == ["a"]
    assert stores.books.find_by_id("b").updated_at > before
    with pytest.raises(LookupError):
        stores.books.update("nope", {"title": "x"})


def test_unknown_enum_values_are_normalised(engine, stores):
    stores.books.create(make_book("a"))
    with engine.begin() as conn:
        conn.execute(text("UPDATE books SET mode = 'dance', status = 'lost' WHERE id = 'a'"))
    book = stores.books.find_by_id("a")
    assert book.mode == BookMode.READ
    assert book.status == BookStatus.ACTIVE


def test_bulk_create_is_idempotent(stores):
    cards = build_cards(make_book("calc"), now=NOW)
    stores.cards.bulk_create(cards)
    stores.cards.bulk_create(cards)
    assert len(stores.cards.find_by_book("calc")) == 10
    assert stores.cards.count_by_book_and_state("calc", CardState.NEW) == 10


def test_find_due_filters_state_scope_and_time(stores):
    stores.cards.bulk_create([
        make_card("a", 1, state=CardState.REVIEW, due=NOW - timedelta(days=1)),
        make_card("a", 2, state=CardState.REVIEW, due=NOW + timedelta(days=1)),
        make_card("a", 3, state=CardState.NEW, due=NOW - timedelta(days=5)),
        make_card("a", 4, state=CardState.RELEARNING, due=NOW - timedelta(days=3)),
        make_card("b", 1, state=CardState.REVIEW, due=NOW - timedelta(days=1)),
    ])
    due = stores.cards.find_due(["a"], NOW)
    assert [c.id for c in due] == ["a_4", "a_1"]
    assert stores.cards.find_due([], NOW) == []
    assert [c.id for c in stores.cards.find_new(["a", "b"])] == ["a_3"]


def test_elapsed_days_recomputed_on_read(stores):
    stores.cards.bulk_create([
        make_card("a", 1, state=CardState.REVIEW, elapsed_days=99, last_review=NOW - timedelta(days=3)),
    ])
    card = stores.cards.find_due(["a"], NOW)[0]
    assert card.elapsed_days == 3


def test_update_card(stores):
    stores.cards.bulk_create([make_card("a", 1)])
    stores.cards.update("a_1", {"state": CardState.LEARNING, "stability": 2.5, "last_review": NOW})
    card = stores.cards.get("a_1")
    assert card.state == CardState.LEARNING
    assert card.stability == 2.5
    assert card.last_review == NOW
    with pytest.raises(CardNotFoundError):
        stores.cards.update("ghost", {"reps": 1})


def test_ledger_recent_is_newest_first(stores):
    from lexquest.models import LedgerEntry
    for offset in range(3):
        stores.ledger.insert(LedgerEntry(
            date=NOW.date() - timedelta(days=offset), earned_lex=0, target_lex=0, balance=offset,
        ))
    recent = stores.ledger.get_recent(2)
    assert [e.balance for e in recent] == [0, 1]
    assert [e.balance for e in stores.ledger.find_all()] == [2, 1, 0]
    assert len(stores.ledger.find_by_date(NOW.date())) == 1


def test_only_one_default_preset(stores):
    first = stores.presets.create(InventoryPreset(id=0, label="One", book_ids=["a"], is_default=True))
    second = stores.presets.create(InventoryPreset(id=0, label="Two", book_ids=["b", "c"], is_default=True))
    assert first.id != second.id
    assert stores.presets.find_default().label == "Two"
    assert [p.book_ids for p in stores.presets.find_all()] == [["a"], ["b", "c"]]


def test_review_log_ratings_are_clamped_on_read(engine, stores, now):
    from lexquest.models import ReviewLog
    stores.review_logs.add(ReviewLog(
        card_id="a_1", book_id="a", rating=3,
        state_before=CardState.NEW, state_after=CardState.LEARNING,
        stability_after=3.7, difficulty_after=5.2, scheduled_days=4,
        lex_awarded=30, reviewed_at=now,
    ))
    with engine.begin() as conn:
        conn.execute(text("UPDATE review_logs SET rating = 9"))
    logs = stores.review_logs.find_between(now - timedelta(hours=1), now + timedelta(hours=1))
    assert logs[0].rating == 4
    assert logs[0].reviewed_at == now


def test_settings(stores):
    assert stores.settings.get("lex_profile") is None
    assert stores.settings.get("lex_profile", "moderate") == "moderate"
    stores.settings.set("lex_profile", "hard")
    stores.settings.set("lex_profile", "light")
    assert stores.settings.get("lex_profile") == "light"


def test_reset_db_clears_everything(engine, stores):
    stores.books.create(make_book("a"))
    reset_db(engine)
    assert stores.books.find_all() == []


def test_last_daily_skips_manual_rows(stores):
    from lexquest.models import LedgerEntry, TransactionType
    assert stores.ledger.get_last_daily() is None
    stores.ledger.insert(LedgerEntry(date=NOW.date() - timedelta(days=1), earned_lex=0, target_lex=100, balance=-100))
    for _ in range(3):
        stores.ledger.insert(LedgerEntry(
            date=NOW.date(), earned_lex=5, target_lex=0, balance=0,
            transaction_type=TransactionType.ADJUSTMENT,
        ))
    last = stores.ledger.get_last_daily()
    assert last.date == NOW.date() - timedelta(days=1)
    assert last.transaction_type == TransactionType.DAILY
