"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Environnement d'exécution: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("GUARDPAY_ENV", "dev").lower()


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing at first use."""


class Settings(BaseSettings):
    """Environment configuration for the guardpay reconciliation service."""

    app_env: str = ENV
    database_url: str | None = None
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    SECRET_KEY: str = "change-me"

    # --- Admin dead-letter viewer ----------------------------------------
    ADMIN_ALLOWED_ROLES: list[str] = Field(default_factory=lambda: ["company_admin"])
    FAILED_EVENTS_PAGE_SIZE: int = 50

    # --- Reconciliation retries --------------------------------------------
    RETRY_MAX_ELAPSED_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = True
    CORS_ALLOW_ORIGINS: list[str] = [
        "https://app.guardpay.mx",
        "https://admin.guardpay.mx",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("database_url", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET", "SENTRY_DSN")
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty secrets to ``None`` for easier validation."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None


class AppInfo(BaseModel):
    name: str = "guardpay-reconciliation"
    version: str = "0.1.0"


def require_setting(settings: Any, name: str) -> str:
    """Return a required setting or fail fast with a descriptive error."""

    value = getattr(settings, name, None)
    if not value:
        raise ConfigurationError(f"Missing required setting: {name.upper()}")
    return value


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


__all__ = [
    "ENV",
    "ConfigurationError",
    "Settings",
    "AppInfo",
    "require_setting",
    "get_settings",
]
