"""
Application configuration using pydantic-settings.
Loads environment variables from .env file.

Nested config groups (SubscriptionConfig, StreakConfig) are env-overridable
via the double-underscore delimiter, e.g.:
    SUBSCRIPTION__MONTHLY_DAYS=31
    SUBSCRIPTION__TRIAL_DAYS=7
    STREAK__DEFAULT_REST_DAYS=3
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

OutOfOrderPolicy = Literal["ignore", "reject", "accept"]


class SubscriptionConfig(BaseModel):
    """Billing period arithmetic. Fixed-length periods, not calendar months."""

    monthly_days: int = Field(default=30, ge=1)
    yearly_days: int = Field(default=365, ge=1)
    trial_days: int = Field(default=14, ge=0)


class StreakConfig(BaseModel):
    """Streak tolerance window.

    Env-overridable via STREAK__KEY format, e.g.:
        STREAK__DEFAULT_REST_DAYS=3
        STREAK__OUT_OF_ORDER_POLICY=reject
    """

    default_rest_days: int = 2
    min_rest_days: int = 1
    max_rest_days: int = 6
    # What record_activity does with a timestamp older than the last activity
    out_of_order_policy: OutOfOrderPolicy = "ignore"

    @model_validator(mode="after")
    def _check_bounds(self) -> "StreakConfig":
        if not self.min_rest_days <= self.default_rest_days <= self.max_rest_days:
            raise ValueError(
                f"default_rest_days must be within [{self.min_rest_days}, {self.max_rest_days}]"
            )
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # App Settings
    debug: bool = False
    # Ignored when debug is on (debug always logs at DEBUG)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Nested config groups (env-overridable via SECTION__KEY format)
    subscription: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
    streak: StreakConfig = Field(default_factory=StreakConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
