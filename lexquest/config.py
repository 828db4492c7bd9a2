"""
Environment configuration.

Values come from the process environment, optionally seeded from a .env file.
Every getter reads the environment at call time so tests can monkeypatch it.
"""

from __future__ import annotations

import logging
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from lexquest.fsrs.params import SchedulerParams
from lexquest.lex import LexTable
from lexquest.models import BookMode

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///logs/lexquest.db"
DEFAULT_TEST_DATABASE_URL = "sqlite:///:memory:"
DEFAULT_DAILY_TARGET = 600

_MODE_SUFFIX = {
    BookMode.READ: "READ",
    BookMode.SOLVE: "SOLVE",
    BookMode.MEMORIZE: "MEMORIZE",
}


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the database URL from environment variables.

    TEST_MODE=true switches to TEST_DATABASE_URL (in-memory SQLite unless set)
    so test runs never touch the real study history.
    """
    if is_test_mode():
        return os.getenv("TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL)
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def get_timezone() -> ZoneInfo:
    """The user's local calendar. Unknown names fall back to UTC."""
    name = os.getenv("LEXQUEST_TIMEZONE", "UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[CONFIG] Unknown timezone %r, using UTC", name)
        return ZoneInfo("UTC")


def _float_env(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("[CONFIG] Ignoring non-numeric %s=%r", name, raw)
        return None


def _int_env(name: str) -> int | None:
    value = _float_env(name)
    return int(value) if value is not None else None


def load_scheduler_params() -> SchedulerParams:
    """Default scheduler parameters with LEXQUEST_RETENTION_* overrides applied."""
    params = SchedulerParams()
    for mode, suffix in _MODE_SUFFIX.items():
        value = _float_env(f"LEXQUEST_RETENTION_{suffix}")
        if value is None:
            continue
        if not 0.0 < value < 1.0:
            logger.warning("[CONFIG] Retention for %s out of range: %s", mode.value, value)
            continue
        params = params.with_retention(mode, value)
    return params


def load_lex_table() -> LexTable:
    """Default point values with LEXQUEST_LEX_* overrides applied."""
    table = LexTable()
    for mode, suffix in _MODE_SUFFIX.items():
        value = _int_env(f"LEXQUEST_LEX_{suffix}")
        if value is not None:
            table.set_base(mode, value)
    return table


def get_default_daily_target() -> int:
    value = _int_env("LEXQUEST_DAILY_TARGET")
    return value if value is not None and value >= 0 else DEFAULT_DAILY_TARGET


def configure_logging(level: str | None = None):
    """Install a basic stderr handler at LOG_LEVEL (default INFO)."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
