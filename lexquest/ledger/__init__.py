"""
Ledger - daily Lex economy.

Quick start:
    from lexquest.ledger import RolloverEngine, FixedTargetProvider

    engine = RolloverEngine(ledger_store, review_log_store, FixedTargetProvider(600))
    result = engine.check_and_perform_rollover()
"""

from lexquest.ledger.analytics import (
    active_days,
    audit_ledger,
    current_streak,
    ledger_frame,
    max_streak,
    replay_balances,
)
from lexquest.ledger.debt import DebtStatus, debt_status
from lexquest.ledger.rollover import RolloverEngine, RolloverResult
from lexquest.ledger.targets import (
    LEX_PROFILES,
    FixedTargetProvider,
    LexProfile,
    ProfileTargetProvider,
    TargetProvider,
)


__all__ = [
    "active_days",
    "audit_ledger",
    "current_streak",
    "ledger_frame",
    "max_streak",
    "replay_balances",
    "DebtStatus",
    "debt_status",
    "RolloverEngine",
    "RolloverResult",
    "LEX_PROFILES",
    "FixedTargetProvider",
    "LexProfile",
    "ProfileTargetProvider",
    "TargetProvider",
]
