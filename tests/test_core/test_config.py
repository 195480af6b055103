"""Tests for settings and ask limits."""

from src.core.config import Settings
from src.orchestrators.ask.limits import AskLimits


def test_async_database_url_rewrites_driver(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/mail")
    assert Settings().async_database_url == "postgresql+asyncpg://u:p@db/mail"


def test_ask_env_overrides(monkeypatch):
    monkeypatch.setenv("ASK_MAX_FULL_FETCHES", "3")
    monkeypatch.setenv("ASK_COMPACT_SIZES", "[10, 4]")
    limits = AskLimits.from_settings(Settings())
    assert limits.max_full_fetches == 3
    assert limits.compact_sizes == (10, 4)


def test_default_limits_match_settings():
    assert AskLimits.from_settings(Settings()) == AskLimits()
