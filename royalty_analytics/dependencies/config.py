"""
FastAPI dependencies exposing configuration sections to routes.
"""

from royalty_analytics.core.config import AnalyticsSettings, AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return get_settings()


def get_analytics_settings() -> AnalyticsSettings:
    """Timeouts, cache sizing and auth cookie names used by the API layer."""
    return get_settings().analytics


__all__ = ["get_analytics_settings", "get_app_settings"]
