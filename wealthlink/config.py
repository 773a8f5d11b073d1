"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded in production)
    - get_settings() is cached (lru_cache): single instance per process
    - Business tunables (payment amount, penalty, threshold) live in the
      app_config table; the default_* fields here only seed it

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for every non-secret setting so local runs work out of the box
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wealthlink.core.records import AppConfig


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "postgresql+asyncpg://wealthlink:wealthlink@db:5432/wealthlink"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs use postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Credentials
    token_secret: str = "wealthlink-dev-secret-change-me"
    admin_emails: list[str] = []

    # Fanout
    event_queue_size: int = 100
    sse_keepalive_seconds: int = 15

    # Reminders
    reminder_interval_seconds: int = 24 * 60 * 60
    reminders_enabled: bool = True

    # Seed values for app_config
    default_monthly_payment_amount: Decimal = Decimal("12000")
    default_penalty_multiplier: Decimal = Decimal("2")
    default_withdrawal_eligibility_months: int = 6
    default_withdrawal_processing_fee: Decimal = Decimal("500")
    default_payment_reminder_days: int = 3

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def seed_app_config(self) -> AppConfig:
        return AppConfig(
            monthly_payment_amount=self.default_monthly_payment_amount,
            penalty_multiplier=self.default_penalty_multiplier,
            withdrawal_eligibility_months=self.default_withdrawal_eligibility_months,
            withdrawal_processing_fee=self.default_withdrawal_processing_fee,
            payment_reminder_days=self.default_payment_reminder_days,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
