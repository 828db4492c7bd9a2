"""
Scope resolution - which books are "in play" today.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from lexquest.models import Book, BookStatus, InventoryPreset

logger = logging.getLogger(__name__)


def resolve_scope(
    books: Iterable[Book],
    presets: Iterable[InventoryPreset] = (),
    active_preset_id: Optional[int] = None,
    default_preset: Optional[InventoryPreset] = None
) -> list[str]:
    """
    Resolve the book ids the allocator considers.

    Order of preference:
    1. The selected preset (or the default preset when none is selected),
       restricted to books that still exist
    2. All Active books
    3. All books

    Never empty while at least one book exists. Ids keep the order of `books`.
    """
    books = list(books)
    if not books:
        return []

    preset = None
    if active_preset_id is not None:
        preset = next((p for p in presets if p.id == active_preset_id), None)
        if preset is None:
            logger.warning("[QUEST] Preset %s not found, using fallback scope", active_preset_id)
    elif default_preset is not None:
        preset = default_preset
    else:
        preset = next((p for p in presets if p.is_default), None)

    if preset is not None:
        wanted = set(preset.book_ids)
        scoped = [b.id for b in books if b.id in wanted]
        if scoped:
            return scoped
        logger.info("[QUEST] Preset %r has no existing books, using fallback scope", preset.label)

    active = [b.id for b in books if b.status == BookStatus.ACTIVE]
    if active:
        return active
    return [b.id for b in books]
