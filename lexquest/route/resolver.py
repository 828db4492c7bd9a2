"""
Route Resolver - Prerequisite Graph

Builds a forest from `previous_book_id` links and derives:
- a stable topological order (parents before children)
- which books have their prerequisite satisfied
- root-to-leaf routes for rendering

The resolver is total over any persisted data: dangling parents become
"no prerequisite", self-references and cycles are broken by turning the
re-encountered book into a root. Nothing here raises.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

from lexquest.models import Book, BookStatus

logger = logging.getLogger(__name__)


@dataclass
class RouteResolution:
    order: list[Book] = field(default_factory=list)
    edges: list[tuple[str, str]] = field(default_factory=list)   # (parent_id, child_id)
    satisfied: dict[str, bool] = field(default_factory=dict)
    routes: list[list[Book]] = field(default_factory=list)
    cycles: list[str] = field(default_factory=list)      # books whose parent link was cut
    dangling: list[str] = field(default_factory=list)    # books pointing at a missing parent
    parents: dict[str, Optional[str]] = field(default_factory=dict)

    def is_satisfied(self, book_id: str) -> bool:
        # Unknown books have no known prerequisite
        return self.satisfied.get(book_id, True)


@dataclass
class RouteProgress:
    total_units: int
    completed_units: int
    percentage: int


def route_sort_key(book: Book):
    """MainLine before Branch, then creation order, then id."""
    return (0 if book.is_main_line else 1, book.created_at, book.id)


def _normalise_parents(books: list[Book], by_id: dict[str, Book]) -> tuple[dict, list[str], list[str]]:
    parents: dict[str, Optional[str]] = {}
    dangling: list[str] = []
    cycles: list[str] = []

    for book in books:
        parent_id = book.previous_book_id
        if not parent_id:
            parents[book.id] = None
        elif parent_id == book.id:
            parents[book.id] = None
            cycles.append(book.id)
        elif parent_id not in by_id:
            parents[book.id] = None
            dangling.append(book.id)
        else:
            parents[book.id] = parent_id

    # Walk each parent chain once; a book seen twice on the same walk closes a cycle
    done: set[str] = set()
    for book in books:
        path: list[str] = []
        on_path: set[str] = set()
        current = book.id
        while current is not None and current not in done:
            if current in on_path:
                parents[current] = None
                cycles.append(current)
                break
            on_path.add(current)
            path.append(current)
            current = parents[current]
        done.update(path)

    return parents, dangling, cycles


def _collect_routes(root: Book, children: dict[str, list[Book]]) -> list[list[Book]]:
    routes: list[list[Book]] = []
    stack: list[tuple[Book, list[Book]]] = [(root, [root])]
    while stack:
        node, path = stack.pop()
        kids = children.get(node.id, [])
        if not kids:
            routes.append(path)
            continue
        # Reversed so the first child's route comes out first
        for child in reversed(kids):
            stack.append((child, path + [child]))
    return routes


def resolve(books: Iterable[Book]) -> RouteResolution:
    """
    Resolve the prerequisite graph.

    Returns:
        RouteResolution with every input book exactly once in `order`
    """
    unique: dict[str, Book] = {}
    for book in books:
        unique.setdefault(book.id, book)
    ordered = sorted(unique.values(), key=route_sort_key)
    if not ordered:
        return RouteResolution()

    parents, dangling, cycles = _normalise_parents(ordered, unique)
    if dangling:
        logger.warning("[ROUTE] Dangling prerequisite on %s, treated as root", dangling)
    if cycles:
        logger.warning("[ROUTE] Cycle broken at %s", cycles)

    children: dict[str, list[Book]] = {}
    roots: list[Book] = []
    for book in ordered:
        parent_id = parents[book.id]
        if parent_id is None:
            roots.append(book)
        else:
            children.setdefault(parent_id, []).append(book)

    # Pre-order DFS: each parent precedes its subtree
    order: list[Book] = []
    visited: set[str] = set()
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        if node.id in visited:
            continue
        visited.add(node.id)
        order.append(node)
        stack.extend(reversed(children.get(node.id, [])))

    edges = [(parents[b.id], b.id) for b in order if parents[b.id] is not None]
    satisfied = {
        b.id: parents[b.id] is None or unique[parents[b.id]].status == BookStatus.COMPLETED
        for b in order
    }

    routes: list[list[Book]] = []
    for root in roots:
        routes.extend(_collect_routes(root, children))

    return RouteResolution(
        order=order,
        edges=edges,
        satisfied=satisfied,
        routes=routes,
        cycles=cycles,
        dangling=dangling,
        parents=parents,
    )


def route_progress(route: Iterable[Book]) -> RouteProgress:
    """Total and completed units along a route, percentage floored."""
    route = list(route)
    total = sum(b.total_unit for b in route)
    completed = sum(min(b.completed_unit or 0, b.total_unit) for b in route)
    percentage = (completed * 100) // total if total > 0 else 0
    return RouteProgress(total_units=total, completed_units=completed, percentage=percentage)


# ---- Cache ----

def cache_key(books: Iterable[Book]) -> str:
    """
    Content hash of the fields the resolution depends on.

    Order of the input does not matter.
    """
    parts = sorted(
        "|".join((
            b.id,
            b.updated_at.isoformat() if b.updated_at else "",
            b.previous_book_id or "",
            b.status.value if isinstance(b.status, BookStatus) else str(b.status),
            str(int(b.priority)),
        ))
        for b in books
    )
    return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()


class RouteCache:
    """Single-entry cache of the last resolution, superseded on any book change."""

    def __init__(self):
        self._lock = threading.Lock()
        self._key: Optional[str] = None
        self._result: Optional[RouteResolution] = None
        self.hits = 0
        self.misses = 0

    def get(self, books: Iterable[Book]) -> RouteResolution:
        books = list(books)
        key = cache_key(books)
        with self._lock:
            if self._key == key and self._result is not None:
                self.hits += 1
                return self._result
        result = resolve(books)
        with self._lock:
            self._key = key
            self._result = result
            self.misses += 1
        return result

    def invalidate(self):
        with self._lock:
            self._key = None
            self._result = None


default_cache = RouteCache()


def resolve_cached(books: Iterable[Book]) -> RouteResolution:
    return default_cache.get(books)
