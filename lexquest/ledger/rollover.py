"""
Rollover Engine - day-boundary ledger writes.

A daily ledger row records a *finished* local calendar day:
    balance = previous balance + earned_lex - target_lex

The unique daily date in the ledger store is what makes rollover
idempotent: a second call for the same boundary finds the row (or loses the
insert race) and reports performed=False without touching the balance.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from lexquest.clock import day_bounds, local_date
from lexquest.config import get_default_daily_target, get_timezone
from lexquest.ledger.targets import TargetProvider
from lexquest.models import LedgerEntry, TransactionType, utcnow
from lexquest.stores import LedgerStore, ReviewLogStore

logger = logging.getLogger(__name__)


@dataclass
class RolloverResult:
    performed: bool
    target_lex: int
    new_balance: int
    entries: list[LedgerEntry] = field(default_factory=list)

    @property
    def closed_dates(self) -> list[date]:
        return [e.date for e in self.entries]


class RolloverEngine:
    """
    Closes finished days into the ledger and appends manual transactions.

    Safe to call on every start and resume; only the first call after a
    date boundary writes anything.
    """

    def __init__(
        self,
        ledger_store: LedgerStore,
        review_log_store: ReviewLogStore,
        target_provider: Optional[TargetProvider] = None,
        default_target: Optional[int] = None,
        tz: Optional[tzinfo] = None
    ):
        self.ledger = ledger_store
        self.review_logs = review_log_store
        self.target_provider = target_provider
        self.default_target = default_target if default_target is not None else get_default_daily_target()
        self.tz = tz or get_timezone()
        self._lock = threading.Lock()

    # ---- Queries ----

    def latest_balance(self) -> int:
        """Balance of the most recent row; an empty ledger is balance 0."""
        recent = self.ledger.get_recent(1)
        return recent[0].balance if recent else 0

    def earned_on(self, day: date) -> int:
        """Lex awarded by reviews during one local day."""
        start, end = day_bounds(day, self.tz)
        return sum(log.lex_awarded for log in self.review_logs.find_between(start, end))

    def target_for(self, day: date, last_known: Optional[int] = None) -> int:
        """Target from the provider, else the last known target, else the default."""
        if self.target_provider is not None:
            try:
                return int(self.target_provider.get_daily_target(day))
            except Exception as e:
                logger.warning("[ROLLOVER] Target provider failed for %s: %s", day, e)
        return last_known if last_known is not None else self.default_target

    def pending_dates(self, now: Optional[datetime] = None) -> list[date]:
        """Finished days that have no daily row yet, oldest first."""
        yesterday = local_date(now or utcnow(), self.tz) - timedelta(days=1)
        last = self.ledger.get_last_daily()
        if last is None:
            return [yesterday]
        return [last.date + timedelta(days=i) for i in range(1, (yesterday - last.date).days + 1)]

    # ---- Writes ----

    def check_and_perform_rollover(
        self,
        current_balance: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> RolloverResult:
        """
        Write one daily row per finished day since the last rollover.

        Args:
            current_balance: Caller's view of the balance; defaults to the
                latest ledger balance
            now: Wall clock (UTC); the local day is derived with the engine's tz

        Returns:
            RolloverResult. performed is False when every finished day already
            has its row.
        """
        with self._lock:
            return self._rollover(current_balance, now or utcnow())

    def _rollover(self, current_balance: Optional[int], now: datetime) -> RolloverResult:
        stored_balance = self.latest_balance()
        last = self.ledger.get_last_daily()
        dates = self.pending_dates(now)

        if not dates:
            return RolloverResult(
                performed=False,
                target_lex=last.target_lex if last else 0,
                new_balance=stored_balance,
            )

        if current_balance is None:
            balance = stored_balance
        else:
            balance = int(current_balance)
            if balance != stored_balance:
                logger.warning(
                    "[ROLLOVER] Caller balance %d differs from ledger balance %d",
                    balance, stored_balance,
                )

        last_target = last.target_lex if last else None
        written: list[LedgerEntry] = []
        for day in dates:
            earned = self.earned_on(day)
            target = self.target_for(day, last_target)
            entry = LedgerEntry(
                date=day,
                earned_lex=earned,
                target_lex=target,
                balance=balance + earned - target,
                transaction_type=TransactionType.DAILY,
            )
            if self.ledger.insert(entry):
                written.append(entry)
                balance = entry.balance
            else:
                # Another writer closed this day first; continue from its row
                logger.info("[ROLLOVER] %s already closed", day)
                existing = [
                    e for e in self.ledger.find_by_date(day)
                    if e.transaction_type == TransactionType.DAILY
                ]
                if existing:
                    balance = existing[0].balance
                    target = existing[0].target_lex
            last_target = target

        if written:
            logger.info(
                "[ROLLOVER] Closed %d day(s) through %s, balance %d",
                len(written), dates[-1], balance,
            )
        return RolloverResult(
            performed=bool(written),
            target_lex=last_target if last_target is not None else self.default_target,
            new_balance=balance,
            entries=written,
        )

    def add_adjustment(self, amount: int, note: str = "", now: Optional[datetime] = None) -> LedgerEntry:
        """Signed manual correction; counts as earned Lex in the fold."""
        return self._append(TransactionType.ADJUSTMENT, int(amount), 0, note, now)

    def record_purchase(self, cost: int, note: str = "", now: Optional[datetime] = None) -> LedgerEntry:
        """Spend Lex on an item; counts as target Lex in the fold."""
        cost = int(cost)
        if cost <= 0:
            raise ValueError(f"Purchase cost must be positive, got {cost}")
        return self._append(TransactionType.ITEM_PURCHASE, 0, cost, note, now)

    def _append(
        self,
        kind: TransactionType,
        earned: int,
        target: int,
        note: str,
        now: Optional[datetime]
    ) -> LedgerEntry:
        now = now or utcnow()
        with self._lock:
            # Finished days are closed first so date order stays the fold order
            self._rollover(None, now)
            entry = LedgerEntry(
                date=local_date(now, self.tz),
                earned_lex=earned,
                target_lex=target,
                balance=self.latest_balance() + earned - target,
                transaction_type=kind,
                note=note,
            )
            self.ledger.insert(entry)
            logger.info("[ROLLOVER] %s %+d, balance %d", kind.value, earned - target, entry.balance)
            return entry
