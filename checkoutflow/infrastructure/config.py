"""Application configuration.

Loads settings from ``CHECKOUT_``-prefixed environment variables (or a
``.env`` file) with sensible defaults.
"""

from datetime import timedelta

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Checkout settings loaded from environment variables."""

    # Sessions
    session_idle_timeout_minutes: int = Field(default=30, gt=0)
    sweep_interval_seconds: float = Field(default=300.0, gt=0)
    max_save_attempts: int = Field(default=3, ge=1)

    # Article data
    article_service_url: str = "http://article-service:8000"
    resolver_timeout_seconds: float = Field(default=5.0, gt=0)
    resolver_max_attempts: int = Field(default=2, ge=1)

    # Confirmation policy
    block_on_price_change: bool = False

    # Money
    default_currency: str = "EUR"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "env_prefix": "CHECKOUT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def session_idle_timeout(self) -> timedelta:
        return timedelta(minutes=self.session_idle_timeout_minutes)


settings = Settings()
