"""
New-card allocation.

Closes the gap between the daily target and the Lex already covered by
today's due reviews plus the new cards introduced earlier today.

Walk order is the route order (MainLine before Branch, then creation order),
so the main line is always fed first.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

from lexquest.lex import LexTable
from lexquest.models import Book


@dataclass
class BookAllocation:
    book_id: str
    lex_per_card: int
    capacity: int               # new cards this book can still provide
    recommended: int = 0        # additional cards proposed today
    already_planned: int = 0    # new cards already introduced today

    @property
    def recommended_lex(self) -> int:
        return self.recommended * self.lex_per_card


@dataclass
class Recommendation:
    target_lex: int = 0
    review_lex: int = 0
    new_lex_current: int = 0
    deficit: int = 0
    allocations: list[BookAllocation] = field(default_factory=list)
    additional_available: int = 0      # cards that could be added beyond the target
    additional_lex: int = 0

    @property
    def combined_lex(self) -> int:
        return self.review_lex + self.new_lex_current

    @property
    def recommended_count(self) -> int:
        return sum(a.recommended for a in self.allocations)

    @property
    def recommended_lex(self) -> int:
        return sum(a.recommended_lex for a in self.allocations)

    @property
    def covers_deficit(self) -> bool:
        return self.recommended_lex >= self.deficit

    def as_dict(self) -> dict[str, int]:
        """book_id -> recommended count, books with nothing to add left out."""
        return {a.book_id: a.recommended for a in self.allocations if a.recommended > 0}

    def for_book(self, book_id: str) -> Optional[BookAllocation]:
        return next((a for a in self.allocations if a.book_id == book_id), None)


def compute_deficit(target_lex: int, review_lex: int, new_lex_current: int) -> int:
    """deficit = max(0, target - (review + new already introduced))"""
    return max(0, int(target_lex) - (int(review_lex) + int(new_lex_current)))


def recommend_new_allocation(
    target_lex: int,
    review_lex: int,
    new_lex_current: int,
    eligible_books: Iterable[Book],
    capacity: dict[str, int],
    lex_table: Optional[LexTable] = None,
    already_planned: Optional[dict[str, int]] = None
) -> Recommendation:
    """
    Recommend new cards per book until their Lex covers the deficit.

    Args:
        target_lex: Today's goal
        review_lex: Lex of the remaining due reviews in scope
        new_lex_current: Lex of new cards already introduced today
        eligible_books: Books allowed to emit new cards, in walk order
        capacity: book_id -> number of new cards still available
        lex_table: Point values (defaults to the base table)
        already_planned: book_id -> new cards introduced today

    Returns:
        Recommendation. When the deficit is zero nothing is recommended and
        `additional_available` reports how many cards could still be added.
    """
    lex_table = lex_table or LexTable()
    already_planned = already_planned or {}
    deficit = compute_deficit(target_lex, review_lex, new_lex_current)

    allocations: list[BookAllocation] = []
    remaining = deficit
    for book in eligible_books:
        available = max(0, int(capacity.get(book.id, 0)))
        allocation = BookAllocation(
            book_id=book.id,
            lex_per_card=lex_table.lex(book.mode),
            capacity=available,
            already_planned=int(already_planned.get(book.id, 0)),
        )
        allocations.append(allocation)

        if remaining <= 0 or available == 0 or allocation.lex_per_card <= 0:
            continue
        needed = math.ceil(remaining / allocation.lex_per_card)
        allocation.recommended = min(needed, available)
        remaining -= allocation.recommended_lex

    recommendation = Recommendation(
        target_lex=int(target_lex),
        review_lex=int(review_lex),
        new_lex_current=int(new_lex_current),
        deficit=deficit,
        allocations=allocations,
    )
    if deficit == 0:
        recommendation.additional_available = sum(a.capacity for a in allocations)
        recommendation.additional_lex = sum(a.capacity * a.lex_per_card for a in allocations)
    return recommendation
