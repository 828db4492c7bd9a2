"""
Local calendar helpers.

Timestamps are stored in UTC; "today" and ledger dates are days in the
user's configured timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

from lexquest.fsrs.memory_state import as_utc


def local_date(now: datetime, tz: Optional[tzinfo] = None) -> date:
    return as_utc(now).astimezone(tz or timezone.utc).date()


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """UTC [start, end) of a local calendar day."""
    tz = tz or timezone.utc
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
