import pytest

from config import ConfigurationError, Settings, get_settings, reload_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("QUOTE_RETRY_DELAY", raising=False)
    monkeypatch.delenv("QUOTE_BATCH_DELAY", raising=False)
    settings = Settings(_env_file=None)
    assert settings.database_url == "sqlite:///market_assets.db"
    assert settings.quote_batch_size == 10
    assert settings.quote_batch_delay == 0.1
    assert settings.quote_max_attempts == 3
    assert settings.quote_retry_delay == 1.0
    assert settings.refresh_budget_seconds == 60.0
    assert settings.cron_secret is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("QUOTE_BATCH_SIZE", "25")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")

    settings = reload_settings()

    assert settings.quote_batch_size == 25
    assert settings.database_url == "sqlite:///other.db"
    assert get_settings() is settings


def test_missing_cron_secret_fails_on_use():
    settings = get_settings()
    assert settings.is_cron_configured is False
    with pytest.raises(ConfigurationError):
        settings.require_cron_secret()


def test_cron_secret(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "abc")
    settings = reload_settings()
    assert settings.is_cron_configured is True
    assert settings.require_cron_secret() == "abc"
