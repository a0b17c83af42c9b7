"""
Settings — environment-driven configuration.

    MARKETPLACE_DATABASE_URL=postgresql+asyncpg://...
    MARKETPLACE_PROCESSOR=stripe
    MARKETPLACE_STRIPE_SECRET_KEY=sk_live_...

    settings = MarketplaceSettings()
"""

from __future__ import annotations

from datetime import timedelta
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from marketplace._policy import Policy


class MarketplaceSettings(BaseSettings):
    """Values loaded from MARKETPLACE_* environment variables and .env files."""

    model_config = SettingsConfigDict(
        env_prefix="MARKETPLACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Environment and deployment
    environment: Literal["development", "production", "test"] = Field(
        default="development"
    )
    log_level: str = Field(default="INFO")

    # Infrastructure
    database_url: str = Field(default="sqlite+aiosqlite:///./marketplace.db")
    client_domain: str = Field(default="http://localhost:5173")

    # Payment processor
    currency: str = Field(default="usd", min_length=3, max_length=3)
    processor: Literal["fake", "stripe"] = Field(default="fake")
    stripe_secret_key: SecretStr | None = Field(default=None)
    processor_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _stripe_needs_key(self) -> MarketplaceSettings:
        if self.processor == "stripe" and not self.stripe_secret_key:
            raise ValueError("stripe_secret_key is required when processor is 'stripe'")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def policy(self) -> Policy:
        return (
            Policy()
            .with_processor_timeout(delta=timedelta(seconds=self.processor_timeout_seconds))
            .with_currency(self.currency)
        )


__all__ = ("MarketplaceSettings",)
