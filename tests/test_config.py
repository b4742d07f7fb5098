from __future__ import annotations

from trip_splitter.config import Settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "42:abc")
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/trips")
    monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")
    monkeypatch.setenv("SQL_ECHO", "true")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("REPLY_TTL_SECONDS", raising=False)

    s = Settings()

    assert s.bot_token == "42:abc"
    assert s.database_url.endswith("/trips")
    assert s.default_currency == "EUR"
    assert s.sql_echo is True
    assert s.log_level == "INFO"
    assert s.reply_ttl_seconds == 120.0
