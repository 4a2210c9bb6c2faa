"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("EMI_ENV", "dev").lower()

# Scheduler (optional, only for the stale-payment expiry job)
SCHEDULER_ENABLED = os.getenv("EMI_SCHEDULER_ENABLED", "0") in {
    "1",
    "true",
    "yes",
    "True",
    "YES",
}


class Settings(BaseSettings):
    """Environment configuration for the Emirafrik payment backend."""

    app_env: str = ENV
    database_url: str = "sqlite:///emirafrik.db"
    APP_NAME_PREFIX: str = "EMIRAFRIK"
    DEFAULT_CURRENCY: str = "USD"
    DEFAULT_DESCRIPTION: str = "Medical tourism payment"

    # --- Identity --------------------------------------------------------
    # "jwt": tokens issued by the hosted auth service; "static": demo tokens.
    AUTH_MODE: str = "jwt"
    AUTH_JWT_SECRET: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AUTH_JWT_SECRET", "SUPABASE_JWT_SECRET"),
    )
    AUTH_JWT_AUDIENCE: str | None = "authenticated"
    AUTH_JWT_ALGORITHMS: list[str] = ["HS256"]
    # token -> user id, only honoured when AUTH_MODE=static
    AUTH_STATIC_TOKENS: dict[str, str] = {}
    STATUS_REQUIRES_AUTH: bool = True

    # --- Mobile money providers -----------------------------------------
    # "simulated" never leaves the process; "live" calls the provider APIs.
    MOMO_PROVIDER_MODE: str = "simulated"
    # "random" | "success" | "failure"; only read in simulated mode
    MOMO_SIMULATOR_OUTCOME: str = "random"
    MOMO_PROVIDER_TIMEOUT_SECONDS: float = 5.0
    MOMO_CALLBACK_URL: str | None = None
    MOMO_RETURN_URL: str = "https://app.emirafrik.com/payment/return"

    MTN_MOMO_BASE_URL: str = "https://sandbox.momodeveloper.mtn.com"
    MTN_MOMO_SUBSCRIPTION_KEY: str | None = None
    MTN_MOMO_API_USER: str | None = None
    MTN_MOMO_API_KEY: str | None = None
    MTN_MOMO_TARGET_ENVIRONMENT: str = "sandbox"

    ORANGE_MONEY_BASE_URL: str = "https://api.orange.com"
    ORANGE_MONEY_COUNTRY: str = "cm"
    ORANGE_MONEY_ACCESS_TOKEN: str | None = None
    ORANGE_MONEY_MERCHANT_KEY: str | None = None

    AIRTEL_MONEY_BASE_URL: str = "https://openapiuat.airtel.africa"
    AIRTEL_MONEY_COUNTRY: str = "UG"
    AIRTEL_MONEY_ACCESS_TOKEN: str | None = None

    # --- Webhooks --------------------------------------------------------
    momo_webhook_secret: str | None = None
    momo_webhook_max_drift_seconds: int = 300

    # --- Stale pending payments -----------------------------------------
    # None keeps abandoned checkouts pending indefinitely.
    PENDING_PAYMENT_EXPIRY_HOURS: int | None = None
    SCHEDULER_ENABLED: bool = SCHEDULER_ENABLED

    CORS_ALLOW_ORIGINS: list[str] = [
        "https://emirafrik.com",
        "https://app.emirafrik.com",
        "http://localhost:5173",
    ]
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = False
    ALLOW_DB_CREATE_ALL: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("momo_webhook_secret", "AUTH_JWT_SECRET")
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty secrets to ``None`` for easier validation."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("MOMO_PROVIDER_MODE", "MOMO_SIMULATOR_OUTCOME", "AUTH_MODE")
    @classmethod
    def _lower_mode(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("MOMO_SIMULATOR_OUTCOME")
    @classmethod
    def _known_outcome(cls, value: str) -> str:
        if value not in {"random", "success", "failure"}:
            raise ValueError("MOMO_SIMULATOR_OUTCOME must be random, success or failure")
        return value


class AppInfo(BaseModel):
    name: str = "emirafrik-payments"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "SCHEDULER_ENABLED",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
