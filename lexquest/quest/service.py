"""
Quest Engine - one day's study session.

Orchestrates the stores, the route resolver and the scheduler:
1. Resolve scope (preset / active / all books)
2. Fetch due cards and eligible new cards
3. Price both sets with the shared Lex table
4. Recommend new cards closing the gap to today's target

Reviews are applied one card at a time; each review is its own store update
and its own review log row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, tzinfo
from typing import Iterable, Optional, Union

from lexquest import books as book_utils
from lexquest.clock import day_bounds, local_date
from lexquest.config import (
    get_default_daily_target,
    get_timezone,
    load_lex_table,
    load_scheduler_params,
)
from lexquest.errors import CardNotFoundError, LexQuestError
from lexquest.fsrs.constants import SUCCESS_RATINGS
from lexquest.fsrs.params import SchedulerParams
from lexquest.fsrs.scheduler import Scheduler, coerce_rating
from lexquest.ledger.targets import TargetProvider
from lexquest.lex import LexTable
from lexquest.models import (
    Book,
    BookMode,
    BookStatus,
    Card,
    CardState,
    ReviewLog,
    utcnow,
)
from lexquest.quest.allocation import Recommendation, recommend_new_allocation
from lexquest.quest.scope import resolve_scope
from lexquest.route.resolver import RouteCache, RouteResolution, default_cache, route_sort_key
from lexquest.stores import BookStore, CardStore, PresetStore, ReviewLogStore

logger = logging.getLogger(__name__)


@dataclass
class BookCards:
    book: Book
    cards: list[Card]


@dataclass
class QuestPlan:
    now: datetime
    book_ids: list[str] = field(default_factory=list)
    due_cards: list[Card] = field(default_factory=list)
    new_cards: list[Card] = field(default_factory=list)
    due_by_book: list[BookCards] = field(default_factory=list)
    new_by_book: list[BookCards] = field(default_factory=list)
    review_lex: int = 0
    new_lex_current: int = 0
    target_lex: int = 0
    recommendation: Recommendation = field(default_factory=Recommendation)
    next_card: Optional[Card] = None

    @property
    def combined_lex(self) -> int:
        return self.review_lex + self.new_lex_current

    @property
    def due_count(self) -> int:
        return len(self.due_cards)


@dataclass
class ReviewOutcome:
    card: Card
    log: ReviewLog
    lex_awarded: int


@dataclass
class BulkReviewResult:
    applied: int = 0
    outcomes: list[ReviewOutcome] = field(default_factory=list)
    failed_card_id: Optional[str] = None
    error: Optional[Exception] = None
    remaining: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BookStatistics:
    book_id: str
    total_cards: int
    new: int
    learning: int
    review: int
    relearning: int

    @property
    def issued(self) -> int:
        return self.new + self.learning + self.review + self.relearning

    @property
    def unissued(self) -> int:
        return max(0, self.total_cards - self.issued)


def group_cards_by_book(cards: Iterable[Card], books: Iterable[Book]) -> list[BookCards]:
    """Group cards under their book, in first-seen order. Orphan cards are dropped."""
    by_id = {b.id: b for b in books}
    grouped: dict[str, BookCards] = {}
    for card in cards:
        book = by_id.get(card.book_id)
        if book is None:
            continue
        grouped.setdefault(card.book_id, BookCards(book=book, cards=[])).cards.append(card)
    return list(grouped.values())


def global_next_card(due_cards: list[Card]) -> Optional[Card]:
    """Earliest due card; ties keep input order."""
    if not due_cards:
        return None
    return min(due_cards, key=lambda c: c.due)


def _card_patch(card: Card) -> dict:
    return {f.name: getattr(card, f.name) for f in fields(Card) if f.name not in ("id", "book_id")}


class QuestEngine:
    """
    Daily quest orchestration over the store interfaces.

    Point values, scheduler parameters and the target provider are injected;
    when omitted they are read from the environment (see lexquest.config).
    """

    def __init__(
        self,
        card_store: CardStore,
        book_store: BookStore,
        preset_store: PresetStore,
        review_log_store: ReviewLogStore,
        lex_table: Optional[LexTable] = None,
        params: Optional[SchedulerParams] = None,
        target_provider: Optional[TargetProvider] = None,
        tz: Optional[tzinfo] = None,
        route_cache: Optional[RouteCache] = None
    ):
        self.cards = card_store
        self.books = book_store
        self.presets = preset_store
        self.review_logs = review_log_store
        self.lex_table = lex_table if lex_table is not None else load_lex_table()
        self.params = params if params is not None else load_scheduler_params()
        self.target_provider = target_provider
        self.tz = tz or get_timezone()
        self.route_cache = route_cache or default_cache

    # ---- Planning ----

    def resolve_routes(self, books: Optional[list[Book]] = None) -> RouteResolution:
        return self.route_cache.get(books if books is not None else self.books.find_all())

    def daily_target(self, now: datetime) -> int:
        if self.target_provider is None:
            return get_default_daily_target()
        try:
            return int(self.target_provider.get_daily_target(local_date(now, self.tz)))
        except Exception as e:
            logger.warning("[QUEST] Target provider failed (%s), using default target", e)
            return get_default_daily_target()

    def build_quest(
        self,
        now: Optional[datetime] = None,
        preset_id: Optional[int] = None,
        target_lex: Optional[int] = None
    ) -> QuestPlan:
        """
        Build today's plan.

        No books is a normal state: the plan is empty and nothing is recommended.
        """
        now = now or utcnow()
        all_books = self.books.find_all()
        if target_lex is None:
            target_lex = self.daily_target(now)

        if not all_books:
            return QuestPlan(
                now=now,
                target_lex=target_lex,
                recommendation=recommend_new_allocation(target_lex, 0, 0, [], {}, self.lex_table),
            )

        book_ids = resolve_scope(
            all_books,
            self.presets.find_all(),
            active_preset_id=preset_id,
            default_preset=self.presets.find_default() if preset_id is None else None,
        )
        by_id = {b.id: b for b in all_books}
        in_scope = [by_id[i] for i in book_ids]

        resolution = self.resolve_routes(all_books)
        eligible = sorted(
            (b for b in in_scope
             if b.status != BookStatus.FROZEN and resolution.is_satisfied(b.id)),
            key=route_sort_key,
        )
        eligible_ids = [b.id for b in eligible]

        due_cards = sorted(self.cards.find_due(book_ids, now), key=lambda c: c.due)
        new_cards = sorted(
            self.cards.find_new(eligible_ids) if eligible_ids else [],
            key=lambda c: (eligible_ids.index(c.book_id), c.unit_index),
        )

        introduced = self._introduced_today(now, set(book_ids))
        review_lex = sum(self._lex_for(by_id.get(c.book_id)) for c in due_cards)
        new_lex_current = sum(
            self._lex_for(by_id.get(book_id)) * count for book_id, count in introduced.items()
        )

        recommendation = recommend_new_allocation(
            target_lex=target_lex,
            review_lex=review_lex,
            new_lex_current=new_lex_current,
            eligible_books=eligible,
            capacity={b.id: self._new_capacity(b, new_cards) for b in eligible},
            lex_table=self.lex_table,
            already_planned=introduced,
        )

        logger.info(
            "[QUEST] %d due (%d Lex), %d new eligible, target %d, deficit %d",
            len(due_cards), review_lex, len(new_cards), target_lex, recommendation.deficit,
        )

        return QuestPlan(
            now=now,
            book_ids=book_ids,
            due_cards=due_cards,
            new_cards=new_cards,
            due_by_book=group_cards_by_book(due_cards, all_books),
            new_by_book=group_cards_by_book(new_cards, all_books),
            review_lex=review_lex,
            new_lex_current=new_lex_current,
            target_lex=target_lex,
            recommendation=recommendation,
            next_card=global_next_card(due_cards),
        )

    def global_next_card(self, now: Optional[datetime] = None, preset_id: Optional[int] = None) -> Optional[Card]:
        return self.build_quest(now, preset_id).next_card

    def _lex_for(self, book: Optional[Book]) -> int:
        return self.lex_table.lex(book.mode if book else BookMode.READ)

    def _introduced_today(self, now: datetime, book_ids: set[str]) -> dict[str, int]:
        start, end = day_bounds(local_date(now, self.tz), self.tz)
        introduced: dict[str, int] = {}
        for log in self.review_logs.find_between(start, end):
            if log.state_before == CardState.NEW and log.book_id in book_ids:
                introduced[log.book_id] = introduced.get(log.book_id, 0) + 1
        return introduced

    def _new_capacity(self, book: Book, new_cards: list[Card]) -> int:
        """Existing New cards plus units not yet issued as cards."""
        existing_new = sum(1 for c in new_cards if c.book_id == book.id)
        issued = sum(self.cards.count_by_book_and_state(book.id, state) for state in CardState)
        unissued = book_utils.card_count(book.total_unit, book.chunk_size) - issued
        return existing_new + max(0, unissued)

    # ---- Reviews ----

    def submit_review(self, card_id: str, rating, now: Optional[datetime] = None) -> ReviewOutcome:
        """
        Apply one rating, persist the card and append a review log row.

        The card is written before the log. If the log write fails the error
        propagates with the card already advanced and no Lex recorded for
        this review; a retry can never award the same review twice.

        Raises:
            InvalidRatingError: rating outside Again..Easy
            CardNotFoundError: no card with this id
        """
        rating = coerce_rating(rating)
        now = now or utcnow()

        card = self.cards.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        book = self.books.find_by_id(card.book_id)
        mode = book.mode if book else BookMode.READ

        updated = Scheduler(mode, self.params).review(card, rating, now)
        self.cards.update(updated.id, _card_patch(updated))

        lex_awarded = self.lex_table.lex(mode) if rating in SUCCESS_RATINGS else 0
        log = ReviewLog(
            card_id=updated.id,
            book_id=updated.book_id,
            rating=int(rating),
            state_before=card.state,
            state_after=updated.state,
            stability_after=updated.stability,
            difficulty_after=updated.difficulty,
            scheduled_days=updated.scheduled_days,
            lex_awarded=lex_awarded,
            reviewed_at=updated.last_review,
        )
        self.review_logs.add(log)

        logger.debug(
            "[QUEST] %s rated %s: %s -> %s, next in %dd",
            card_id, rating.name, card.state.name, updated.state.name, updated.scheduled_days,
        )
        return ReviewOutcome(card=updated, log=log, lex_awarded=lex_awarded)

    def submit_reviews(self, items: Iterable[tuple[str, object]], now: Optional[datetime] = None) -> BulkReviewResult:
        """
        Apply many ratings as independent single-card updates.

        Stops at the first failure; reviews applied before it stay applied.
        """
        items = list(items)
        result = BulkReviewResult()
        for position, (card_id, rating) in enumerate(items):
            try:
                result.outcomes.append(self.submit_review(card_id, rating, now))
            except Exception as e:
                if not isinstance(e, LexQuestError):
                    logger.exception("[QUEST] Bulk review failed at %s", card_id)
                result.failed_card_id = card_id
                result.error = e
                result.remaining = len(items) - position
                break
            result.applied += 1

        logger.info("[QUEST] Bulk review: %d of %d applied", result.applied, len(items))
        return result

    # ---- Cards ----

    def issue_new_cards(
        self,
        allocation: Union[Recommendation, dict[str, int]],
        now: Optional[datetime] = None
    ) -> list[Card]:
        """
        Make sure each book has at least the allocated number of New cards.

        Missing cards are created at the lowest unused unit indices, so calling
        this twice with the same allocation creates nothing the second time.
        """
        if isinstance(allocation, Recommendation):
            allocation = allocation.as_dict()
        now = now or utcnow()

        created: list[Card] = []
        for book_id, count in allocation.items():
            book = self.books.find_by_id(book_id)
            if book is None or book.status == BookStatus.FROZEN or count <= 0:
                continue
            existing = self.cards.find_by_book(book_id)
            have_new = sum(1 for c in existing if c.state == CardState.NEW)
            cards = book_utils.issue_new_cards(book, existing, count - have_new, now)
            if cards:
                self.cards.bulk_create(cards)
                created.extend(cards)
        return created

    def book_statistics(self, book_id: str) -> Optional[BookStatistics]:
        book = self.books.find_by_id(book_id)
        if book is None:
            return None
        counts = {state: self.cards.count_by_book_and_state(book_id, state) for state in CardState}
        return BookStatistics(
            book_id=book_id,
            total_cards=book_utils.card_count(book.total_unit, book.chunk_size),
            new=counts[CardState.NEW],
            learning=counts[CardState.LEARNING],
            review=counts[CardState.REVIEW],
            relearning=counts[CardState.RELEARNING],
        )
