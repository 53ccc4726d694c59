"""Expose dependency helpers for FastAPI routers."""

from .auth import get_access_token, get_current_user
from .clients import (
    get_account_cache,
    get_account_service,
    get_earnings_summary_service,
    get_record_source_factory,
    get_streaming_analytics_service,
    get_stripe_analytics_service,
    get_stripe_client,
    get_supabase_client,
)
from .config import get_analytics_settings, get_app_settings

__all__ = [
    "get_analytics_settings",
    "get_access_token",
    "get_account_cache",
    "get_account_service",
    "get_app_settings",
    "get_current_user",
    "get_earnings_summary_service",
    "get_record_source_factory",
    "get_streaming_analytics_service",
    "get_stripe_analytics_service",
    "get_stripe_client",
    "get_supabase_client",
]
