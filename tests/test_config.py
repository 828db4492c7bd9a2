# tests/test_config.py
from zoneinfo import ZoneInfo

from lexquest import config
from lexquest.models import BookMode


def test_test_mode_uses_test_database(clean_env):
    clean_env.setenv("TEST_MODE", "true")
    clean_env.delenv("TEST_DATABASE_URL", raising=False)
    assert config.get_database_url() == "sqlite:///:memory:"


def test_database_url_from_env(clean_env):
    clean_env.setenv("TEST_MODE", "false")
    clean_env.setenv("DATABASE_URL", "sqlite:///tmp/study.db")
    assert config.get_database_url() == "sqlite:///tmp/study.db"


def test_retention_overrides(clean_env):
    clean_env.setenv("LEXQUEST_RETENTION_MEMORIZE", "0.8")
    clean_env.setenv("LEXQUEST_RETENTION_READ", "1.7")   # out of range, ignored
    params = config.load_scheduler_params()
    assert params.retention_for(BookMode.MEMORIZE) == 0.8
    assert params.retention_for(BookMode.READ) == 0.9


def test_lex_overrides(clean_env):
    clean_env.setenv("LEXQUEST_LEX_SOLVE", "70")
    clean_env.setenv("LEXQUEST_LEX_READ", "lots")        # not a number, ignored
    table = config.load_lex_table()
    assert table.lex(BookMode.SOLVE) == 70
    assert table.lex(BookMode.READ) == 30


def test_daily_target(clean_env):
    assert config.get_default_daily_target() == 600
    clean_env.setenv("LEXQUEST_DAILY_TARGET", "1800")
    assert config.get_default_daily_target() == 1800


def test_timezone(clean_env):
    clean_env.setenv("LEXQUEST_TIMEZONE", "Asia/Tokyo")
    assert config.get_timezone() == ZoneInfo("Asia/Tokyo")
    clean_env.setenv("LEXQUEST_TIMEZONE", "Mars/Olympus")
    assert config.get_timezone() == ZoneInfo("UTC")
