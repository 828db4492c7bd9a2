"""
Quest - daily allocation of due and new cards.

Quick start:
    from lexquest.quest import QuestEngine

    engine = QuestEngine(card_store, book_store, preset_store, review_log_store)
    plan = engine.build_quest(now=now)

    # Work the earliest due card, then re-plan
    engine.submit_review(plan.next_card.id, Rating.GOOD, now=now)
    plan = engine.build_quest(now=now)
"""

from lexquest.quest.allocation import (
    BookAllocation,
    Recommendation,
    compute_deficit,
    recommend_new_allocation,
)
from lexquest.quest.scope import resolve_scope
from lexquest.quest.service import (
    BookCards,
    BookStatistics,
    BulkReviewResult,
    QuestEngine,
    QuestPlan,
    ReviewOutcome,
    global_next_card,
    group_cards_by_book,
)


__all__ = [
    "BookAllocation",
    "Recommendation",
    "compute_deficit",
    "recommend_new_allocation",
    "resolve_scope",
    "BookCards",
    "BookStatistics",
    "BulkReviewResult",
    "QuestEngine",
    "QuestPlan",
    "ReviewOutcome",
    "global_next_card",
    "group_cards_by_book",
]
