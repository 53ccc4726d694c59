"""
FastAPI application entrypoint for the royalty analytics service.
"""

from __future__ import annotations

from fastapi import FastAPI

from royalty_analytics.api.routes import router as api_router
from royalty_analytics.core.config import get_settings
from royalty_analytics.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Royalty Analytics Service",
        version="0.1.0",
        description="Streaming and payout analytics for artist dashboards.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
