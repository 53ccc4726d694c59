"""
FastAPI routes for the royalty analytics dashboard.
"""

from __future__ import annotations

import asyncio
import logging
from http import HTTPStatus
from typing import Annotated, Any, Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from royalty_analytics.core.config import AnalyticsSettings
from royalty_analytics.dependencies import (
    get_access_token,
    get_account_service,
    get_analytics_settings,
    get_current_user,
    get_earnings_summary_service,
    get_streaming_analytics_service,
    get_stripe_analytics_service,
)
from royalty_analytics.schemas import AnalyticsEnvelope, AuthenticatedUser
from royalty_analytics.services import AccountNotFoundError, AccountOwnershipError
from royalty_analytics.utils.exceptions import SourceUnavailableError

router = APIRouter()
logger = logging.getLogger(__name__)

T = TypeVar("T")

_ANALYTICS_FAILURE = "Failed to retrieve analytics"
_EARNINGS_FAILURE = "Failed to retrieve earnings summary"
_STREAMS_FAILURE = "Failed to retrieve streaming analytics"


async def _guarded(awaitable: Awaitable[T], *, timeout: float, failure_detail: str) -> T:
    """Await ``awaitable`` and turn pipeline failures into a stable 500."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except HTTPException:
        raise
    except SourceUnavailableError as exc:
        logger.error("%s: %s", failure_detail, exc)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=failure_detail
        ) from exc
    except asyncio.TimeoutError as exc:
        logger.error("%s: timed out after %.1fs", failure_detail, timeout)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=failure_detail
        ) from exc
    except Exception as exc:
        logger.exception("%s: unexpected error", failure_detail)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=failure_detail
        ) from exc


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/analytics/streams", status_code=HTTPStatus.OK)
async def get_streaming_analytics(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    access_token: Annotated[Optional[str], Depends(get_access_token)],
    service: Annotated[Any, Depends(get_streaming_analytics_service)],
    settings: Annotated[AnalyticsSettings, Depends(get_analytics_settings)],
) -> dict:
    """Stream counts per platform and country plus the user's top releases."""
    data = await _guarded(
        service.build_summary(user_id=user.id, access_token=access_token),
        timeout=settings.request_timeout_seconds,
        failure_detail=_STREAMS_FAILURE,
    )
    return {"success": True, "data": data}


@router.get(
    "/stripe/analytics",
    status_code=HTTPStatus.OK,
    response_model=AnalyticsEnvelope,
)
async def get_stripe_analytics(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    access_token: Annotated[Optional[str], Depends(get_access_token)],
    accounts: Annotated[Any, Depends(get_account_service)],
    service: Annotated[Any, Depends(get_stripe_analytics_service)],
    settings: Annotated[AnalyticsSettings, Depends(get_analytics_settings)],
    stripe_account: Optional[str] = Header(default=None, alias="Stripe-Account"),
    period: str = Query(default="30d", description="One of 7d, 30d, 90d or 1y."),
) -> AnalyticsEnvelope:
    """Revenue, payouts and growth for a connected account owned by the caller."""
    if not stripe_account:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Stripe account ID required",
        )

    async def _build() -> AnalyticsEnvelope:
        try:
            await accounts.verify_ownership(
                user_id=user.id,
                stripe_account_id=stripe_account,
                access_token=access_token,
            )
        except AccountOwnershipError as exc:
            raise HTTPException(status_code=HTTPStatus.FORBIDDEN, detail=str(exc)) from exc
        return await service.build_analytics(stripe_account=stripe_account, period=period)

    return await _guarded(
        _build(),
        timeout=settings.request_timeout_seconds,
        failure_detail=_ANALYTICS_FAILURE,
    )


@router.get("/stripe/earnings-summary", status_code=HTTPStatus.OK)
async def get_earnings_summary(
    user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    access_token: Annotated[Optional[str], Depends(get_access_token)],
    accounts: Annotated[Any, Depends(get_account_service)],
    service: Annotated[Any, Depends(get_earnings_summary_service)],
    settings: Annotated[AnalyticsSettings, Depends(get_analytics_settings)],
) -> Any:
    """Balances, earnings and payouts for the caller's connected account."""

    async def _build() -> Optional[dict]:
        try:
            account = await accounts.get_account(user_id=user.id, access_token=access_token)
        except AccountNotFoundError:
            logger.info("User %s has no connected Stripe account", user.id)
            return None
        return await service.build_summary(
            user_id=user.id,
            stripe_account_id=account["stripe_account_id"],
            access_token=access_token,
        )

    data = await _guarded(
        _build(),
        timeout=settings.request_timeout_seconds,
        failure_detail=_EARNINGS_FAILURE,
    )
    if data is None:
        return JSONResponse(
            status_code=HTTPStatus.NOT_FOUND,
            content={"detail": "No Stripe account found", "has_stripe_account": False},
        )
    return {"success": True, "data": data}


__all__ = ["router"]
