"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Any, Dict

from royalty_analytics.clients import StripeClient, SupabaseClient
from royalty_analytics.services import (
    AccountService,
    EarningsSummaryService,
    RecordSourceFactory,
    StreamingAnalyticsService,
    StripeAnalyticsService,
    SummaryAssembler,
)
from royalty_analytics.utils.cache import TTLCache
from royalty_analytics.utils.http import RetryConfig

from .config import get_app_settings


def _retry_config() -> RetryConfig:
    return RetryConfig(attempts=get_app_settings().analytics.http_retry_attempts)


@lru_cache()
def get_supabase_client() -> SupabaseClient:
    """Create a singleton Supabase client."""
    return SupabaseClient(get_app_settings().supabase, retry_config=_retry_config())


@lru_cache()
def get_stripe_client() -> StripeClient:
    """Create a singleton Stripe client."""
    return StripeClient(get_app_settings().stripe, retry_config=_retry_config())


@lru_cache()
def get_account_cache() -> TTLCache[Dict[str, Any]]:
    """Provide the process-wide account lookup cache."""
    analytics = get_app_settings().analytics
    return TTLCache(
        capacity=analytics.account_cache_capacity,
        ttl_seconds=analytics.account_cache_ttl_seconds,
    )


def get_account_service() -> AccountService:
    """Build an account lookup service backed by the shared cache."""
    return AccountService(get_supabase_client(), get_account_cache())


def get_record_source_factory() -> RecordSourceFactory:
    """Build record source adapters over the shared clients."""
    return RecordSourceFactory(get_stripe_client(), get_supabase_client())


def get_streaming_analytics_service() -> StreamingAnalyticsService:
    return StreamingAnalyticsService(get_record_source_factory(), SummaryAssembler())


def get_stripe_analytics_service() -> StripeAnalyticsService:
    return StripeAnalyticsService(get_record_source_factory(), SummaryAssembler())


def get_earnings_summary_service() -> EarningsSummaryService:
    return EarningsSummaryService(get_record_source_factory(), SummaryAssembler())


__all__ = [
    "get_account_cache",
    "get_account_service",
    "get_earnings_summary_service",
    "get_record_source_factory",
    "get_streaming_analytics_service",
    "get_stripe_analytics_service",
    "get_stripe_client",
    "get_supabase_client",
]
