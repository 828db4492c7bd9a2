"""
Books and chunking.

A book of `total_unit` pages/problems is sliced into ceil(total_unit / chunk_size)
cards. Card ids are derived from (book_id, unit_index) so re-creating a card
is idempotent.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, Optional

from lexquest.models import Book, BookMode, Card, CardState, utcnow
from lexquest.stores import BookStore, CardStore

logger = logging.getLogger(__name__)


def card_count(total_unit: int, chunk_size: int) -> int:
    """
    Number of cards a book produces.

    Example: total 300, chunk 10 -> 30 cards; total 95, chunk 10 -> 10 cards.
    """
    if chunk_size <= 0:
        return max(0, total_unit)
    return math.ceil(total_unit / chunk_size)


def make_card_id(book_id: str, unit_index: int) -> str:
    return f"{book_id}_{unit_index}"


def card_label(
    unit_index: int,
    chunk_size: int,
    mode: BookMode,
    total_unit: Optional[int] = None
) -> str:
    """
    Display label for a card, e.g. "p.1-10" or "Q.11-20".

    Solve books count problems (Q.), everything else counts pages (p.).
    """
    chunk_size = max(1, chunk_size)
    start = (unit_index - 1) * chunk_size + 1
    end = start + chunk_size - 1
    if total_unit is not None:
        end = min(end, total_unit)
    prefix = "Q." if BookMode(mode) == BookMode.SOLVE else "p."
    if end <= start:
        return f"{prefix}{start}"
    return f"{prefix}{start}-{end}"


def new_card(book: Book, unit_index: int, now: Optional[datetime] = None) -> Card:
    now = now or utcnow()
    return Card(
        id=make_card_id(book.id, unit_index),
        book_id=book.id,
        unit_index=unit_index,
        state=CardState.NEW,
        due=now,
        created_at=now,
    )


def build_cards(book: Book, now: Optional[datetime] = None) -> list[Card]:
    """Eager generation: one New card per chunk, unit_index 1..N."""
    now = now or utcnow()
    return [new_card(book, i, now) for i in range(1, card_count(book.total_unit, book.chunk_size) + 1)]


def issue_new_cards(
    book: Book,
    existing: Iterable[Card],
    count: int,
    now: Optional[datetime] = None
) -> list[Card]:
    """
    Lazy generation: build up to `count` cards at the lowest missing unit indices.

    Returns only the cards that do not exist yet; an exhausted book returns [].
    """
    if count <= 0:
        return []
    now = now or utcnow()
    taken = {c.unit_index for c in existing}
    total = card_count(book.total_unit, book.chunk_size)

    created: list[Card] = []
    for unit_index in range(1, total + 1):
        if len(created) >= count:
            break
        if unit_index in taken:
            continue
        created.append(new_card(book, unit_index, now))
    return created


def register_book(
    book_store: BookStore,
    card_store: CardStore,
    book: Book,
    eager: bool = True,
    now: Optional[datetime] = None
) -> list[Card]:
    """
    Persist a new book and, when eager, all of its cards.

    Lazy books get their cards later through QuestEngine.issue_new_cards.
    """
    book_store.create(book)
    if not eager:
        return []
    cards = build_cards(book, now)
    card_store.bulk_create(cards)
    logger.info("[BOOKS] Registered %s with %d cards", book.id, len(cards))
    return cards
