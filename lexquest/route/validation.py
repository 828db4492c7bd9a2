"""
Prerequisite validation for book edits.

Unlike the resolver, these helpers are used when the user *assigns* a
prerequisite, so they reject bad input instead of repairing it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from lexquest.errors import InvalidPrerequisiteError
from lexquest.models import Book
from lexquest.route.resolver import resolve


@dataclass
class IntegrityReport:
    cycles: list[str] = field(default_factory=list)
    dangling: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.cycles and not self.dangling


def descendants(books: Iterable[Book], book_id: str) -> set[str]:
    """All books that (transitively) list `book_id` as prerequisite."""
    children: dict[str, list[str]] = {}
    for book in books:
        if book.previous_book_id:
            children.setdefault(book.previous_book_id, []).append(book.id)

    found: set[str] = set()
    stack = list(children.get(book_id, []))
    while stack:
        current = stack.pop()
        if current in found or current == book_id:
            continue
        found.add(current)
        stack.extend(children.get(current, []))
    return found


def available_parents(books: Iterable[Book], book_id: Optional[str] = None) -> list[Book]:
    """
    Books that may be chosen as prerequisite for `book_id`.

    Excludes the book itself and its descendants. A book being created
    (book_id None) may depend on any existing book.
    """
    books = list(books)
    if book_id is None:
        return books
    excluded = descendants(books, book_id) | {book_id}
    return [b for b in books if b.id not in excluded]


def validate_prerequisite(book_id: str, parent_id: Optional[str], books: Iterable[Book]):
    """
    Check that `parent_id` can be assigned as prerequisite of `book_id`.

    Raises:
        InvalidPrerequisiteError: self reference, missing parent, or a cycle
    """
    if not parent_id:
        return
    if parent_id == book_id:
        raise InvalidPrerequisiteError(f"Book {book_id} cannot be its own prerequisite")

    books = list(books)
    by_id = {b.id: b for b in books}
    if parent_id not in by_id:
        raise InvalidPrerequisiteError(f"Prerequisite book not found: {parent_id}")
    if parent_id in descendants(books, book_id):
        raise InvalidPrerequisiteError(
            f"Prerequisite {parent_id} depends on {book_id}; assignment would create a cycle"
        )


def check_integrity(books: Iterable[Book]) -> IntegrityReport:
    """Report cycles and dangling prerequisites in stored data."""
    books = list(books)
    titles = {b.id: b.title for b in books}
    resolution = resolve(books)

    warnings = [
        f"Circular prerequisite at {titles.get(book_id, book_id)}"
        for book_id in resolution.cycles
    ]
    warnings.extend(
        f"Missing prerequisite for {titles.get(book_id, book_id)}"
        for book_id in resolution.dangling
    )
    return IntegrityReport(
        cycles=list(resolution.cycles),
        dangling=list(resolution.dangling),
        warnings=warnings,
    )
