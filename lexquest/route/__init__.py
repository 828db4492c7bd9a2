"""
Route - prerequisite graph of books.

Quick start:
    from lexquest import route

    resolution = route.resolve_cached(books)
    if resolution.is_satisfied(book.id):
        ...
"""

from lexquest.route.resolver import (
    RouteCache,
    RouteProgress,
    RouteResolution,
    cache_key,
    default_cache,
    resolve,
    resolve_cached,
    route_progress,
    route_sort_key,
)
from lexquest.route.validation import (
    IntegrityReport,
    available_parents,
    check_integrity,
    descendants,
    validate_prerequisite,
)


__all__ = [
    "RouteCache",
    "RouteProgress",
    "RouteResolution",
    "cache_key",
    "default_cache",
    "resolve",
    "resolve_cached",
    "route_progress",
    "route_sort_key",
    "IntegrityReport",
    "available_parents",
    "check_integrity",
    "descendants",
    "validate_prerequisite",
]
