"""
Ledger analytics.

Replay and streak computations over ledger rows, done with pandas so the
same frames can feed charts.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional

import pandas as pd

from lexquest.models import LedgerEntry, TransactionType

LEDGER_COLUMNS = [
    "id",
    "date",
    "earned_lex",
    "target_lex",
    "balance",
    "transaction_type",
    "note",
]


def ledger_frame(entries: Iterable[LedgerEntry]) -> pd.DataFrame:
    """
    Ledger rows as a DataFrame in fold order (date, then insertion id).
    """
    rows = [
        {
            "id": e.id,
            "date": pd.Timestamp(e.date),
            "earned_lex": int(e.earned_lex),
            "target_lex": int(e.target_lex),
            "balance": int(e.balance),
            "transaction_type": TransactionType(e.transaction_type).value,
            "note": e.note,
        }
        for e in entries
    ]
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)

    df = pd.DataFrame(rows, columns=LEDGER_COLUMNS)
    # Rows not yet persisted sort after stored ones of the same date
    df["_order"] = df["id"].fillna(float("inf"))
    df = df.sort_values(["date", "_order"], kind="stable").drop(columns="_order")
    return df.reset_index(drop=True)


def replay_balances(entries: Iterable[LedgerEntry], opening_balance: int = 0) -> pd.Series:
    """
    Recompute every balance from scratch.

    Formula: balance_i = balance_{i-1} + earned_i - target_i
    """
    df = ledger_frame(entries)
    if df.empty:
        return pd.Series(dtype="int64")
    delta = df["earned_lex"] - df["target_lex"]
    return (delta.cumsum() + int(opening_balance)).astype("int64")


def audit_ledger(entries: Iterable[LedgerEntry], opening_balance: int = 0) -> pd.DataFrame:
    """
    Rows whose stored balance differs from the replayed fold.

    An empty result means the ledger is consistent.
    """
    entries = list(entries)
    df = ledger_frame(entries)
    if df.empty:
        return df.assign(expected_balance=pd.Series(dtype="int64"))
    df["expected_balance"] = replay_balances(entries, opening_balance).values
    return df[df["balance"] != df["expected_balance"]].reset_index(drop=True)


def active_days(entries: Iterable[LedgerEntry]) -> pd.DatetimeIndex:
    """Days whose daily rows earned any Lex, ascending."""
    df = ledger_frame(entries)
    if df.empty:
        return pd.DatetimeIndex([])
    daily = df[df["transaction_type"] == TransactionType.DAILY.value]
    earned = daily.groupby("date")["earned_lex"].sum()
    return pd.DatetimeIndex(earned[earned > 0].index).sort_values()


def max_streak(entries: Iterable[LedgerEntry]) -> int:
    """Longest run of consecutive active days."""
    days = active_days(entries)
    if len(days) == 0:
        return 0
    gaps = pd.Series(days).diff() != pd.Timedelta(days=1)
    runs = gaps.cumsum()
    return int(runs.value_counts().max())


def current_streak(entries: Iterable[LedgerEntry], today: Optional[date] = None) -> int:
    """
    Consecutive active days ending today, or yesterday when today has no row yet.
    """
    days = {d.date() for d in active_days(entries)}
    if not days:
        return 0
    today = today or date.today()
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak
