"""
Configuration management for the market-data service.
Uses pydantic-settings for type-safe, centralized configuration.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing or inconsistent."""


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'  # Allow extra fields in .env for flexibility
    )

    # Database
    database_url: str = "sqlite:///market_assets.db"
    db_echo: bool = False

    # Shared secret for the scheduler-facing refresh endpoint
    cron_secret: Optional[str] = None

    # Quote fetching
    quote_batch_size: int = 10
    quote_batch_delay: float = 0.1  # seconds between batches
    quote_max_attempts: int = 3
    quote_retry_delay: float = 1.0  # seconds between attempts
    quote_cache_ttl: float = 60.0  # seconds

    # Refresh job
    refresh_budget_seconds: float = 60.0
    refresh_interval_minutes: int = 15

    # HTTP server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    @property
    def is_cron_configured(self) -> bool:
        """Check if the refresh endpoint secret is configured."""
        return bool(self.cron_secret)

    def require_cron_secret(self) -> str:
        """Return the refresh secret, failing loudly when it is not set."""
        if not self.cron_secret:
            raise ConfigurationError("CRON_SECRET is not configured")
        return self.cron_secret


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
