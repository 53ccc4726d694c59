"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the record source clients
and the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class SupabaseSettings(BaseSettings):
    """Configuration required for the hosted Postgres and Auth APIs."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    url: AnyHttpUrl = Field(..., validation_alias="SUPABASE_URL")
    anon_key: str = Field(..., validation_alias="SUPABASE_ANON_KEY")
    service_role_key: Optional[str] = Field(
        None,
        validation_alias="SUPABASE_SERVICE_ROLE_KEY",
        description="Optional key used for server-side table reads.",
    )


class StripeSettings(BaseSettings):
    """Settings for the payment processor REST API."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    secret_key: str = Field(..., validation_alias="STRIPE_SECRET_KEY")
    api_base: AnyHttpUrl = Field(
        "https://api.stripe.com/v1", validation_alias="STRIPE_API_BASE"
    )
    max_pages: int = Field(
        1,
        ge=1,
        validation_alias="STRIPE_MAX_PAGES",
        description=(
            "Pages of 100 objects fetched per list call. The default keeps "
            "the single-page cap used by the dashboard."
        ),
    )


class AnalyticsSettings(BaseSettings):
    """Tuning knobs for the aggregation endpoints."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    request_timeout_seconds: float = Field(
        20.0, gt=0, validation_alias="ANALYTICS_REQUEST_TIMEOUT"
    )
    account_cache_ttl_seconds: int = Field(
        300, ge=1, validation_alias="ACCOUNT_CACHE_TTL"
    )
    account_cache_capacity: int = Field(
        1024, ge=1, validation_alias="ACCOUNT_CACHE_CAPACITY"
    )
    http_retry_attempts: int = Field(3, ge=1, validation_alias="HTTP_RETRY_ATTEMPTS")
    auth_cookies: str = Field(
        "sb-access-token,sb-refresh-token,supabase-auth-token,supabase.auth.token",
        validation_alias="AUTH_COOKIE_NAMES",
        description="Comma-separated cookie names checked for a session token.",
    )

    @field_validator("auth_cookies")
    @classmethod
    def _require_cookie_names(cls, value: str) -> str:
        if not any(name.strip() for name in value.split(",")):
            raise ValueError("AUTH_COOKIE_NAMES must name at least one cookie")
        return value

    @property
    def auth_cookie_names(self) -> tuple[str, ...]:
        """Cookie names in lookup order."""
        return tuple(
            name.strip() for name in self.auth_cookies.split(",") if name.strip()
        )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    stripe: StripeSettings = Field(default_factory=StripeSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AnalyticsSettings",
    "AppSettings",
    "StripeSettings",
    "SupabaseSettings",
    "get_settings",
]
