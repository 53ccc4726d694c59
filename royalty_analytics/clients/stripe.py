"""Read-only client for the Stripe REST API used by the earnings dashboards."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from royalty_analytics.core.config import StripeSettings
from royalty_analytics.utils.exceptions import MalformedSourceDataError
from royalty_analytics.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)


class StripeClient:
    """Fetch balances, accounts and list objects for connected accounts.

    List calls request pages of at most ``_PAGE_SIZE`` objects and stop after
    ``StripeSettings.max_pages`` pages, so the default configuration returns
    no more than 100 objects per call.
    """

    _PAGE_SIZE = 100

    def __init__(
        self,
        settings: StripeSettings,
        *,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._settings = settings
        self._base_url = str(settings.api_base).rstrip("/")
        self._retry = retry_config or RetryConfig()
        self._transport = transport
        self._timeout = timeout

    def _headers(self, stripe_account: Optional[str]) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self._settings.secret_key}"}
        if stripe_account:
            headers["Stripe-Account"] = stripe_account
        return headers

    async def _get(
        self,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        stripe_account: Optional[str] = None,
    ) -> Dict[str, Any]:
        async with httpx.AsyncClient(
            timeout=self._timeout, transport=self._transport
        ) as client:
            response = await request_with_retry(
                client.get,
                f"{self._base_url}/{path.lstrip('/')}",
                params=params or {},
                headers=self._headers(stripe_account),
                retry_config=self._retry,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedSourceDataError(f"Non-JSON response from {path}") from exc
        if not isinstance(payload, dict):
            raise MalformedSourceDataError(f"Unexpected response shape from {path}")
        return payload

    async def _list(
        self,
        path: str,
        *,
        params: Dict[str, Any],
        stripe_account: Optional[str] = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        page_size = min(limit or self._PAGE_SIZE, self._PAGE_SIZE)
        items: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        for _ in range(self._settings.max_pages):
            page_params = {**params, "limit": page_size}
            if cursor:
                page_params["starting_after"] = cursor
            payload = await self._get(
                path, params=page_params, stripe_account=stripe_account
            )
            data = payload.get("data")
            if not isinstance(data, list):
                raise MalformedSourceDataError(f"List response from {path} has no data")
            items.extend(item for item in data if isinstance(item, dict))
            if limit is not None and len(items) >= limit:
                return items[:limit]
            if not payload.get("has_more") or not data:
                break
            cursor = data[-1].get("id")
            if not cursor:
                break
        else:
            if payload.get("has_more"):
                logger.info(
                    "Stopped listing %s after %s page(s); more objects remain",
                    path,
                    self._settings.max_pages,
                )
        return items

    @staticmethod
    def _created_filter(
        created_gte: Optional[int] = None, created_lt: Optional[int] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if created_gte is not None:
            params["created[gte]"] = int(created_gte)
        if created_lt is not None:
            params["created[lt]"] = int(created_lt)
        return params

    async def retrieve_balance(self, *, stripe_account: str) -> Dict[str, Any]:
        return await self._get("balance", stripe_account=stripe_account)

    async def retrieve_account(self, account_id: str) -> Dict[str, Any]:
        return await self._get(f"accounts/{account_id}")

    async def list_balance_transactions(
        self,
        *,
        stripe_account: str,
        created_gte: Optional[int] = None,
        created_lt: Optional[int] = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        return await self._list(
            "balance_transactions",
            params=self._created_filter(created_gte, created_lt),
            stripe_account=stripe_account,
            limit=limit,
        )

    async def list_payouts(
        self,
        *,
        stripe_account: str,
        created_gte: Optional[int] = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        return await self._list(
            "payouts",
            params=self._created_filter(created_gte),
            stripe_account=stripe_account,
            limit=limit,
        )

    async def list_transfers(
        self,
        *,
        destination: str,
        created_gte: Optional[int] = None,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        """List platform transfers sent to ``destination``."""
        params = self._created_filter(created_gte)
        params["destination"] = destination
        return await self._list("transfers", params=params, limit=limit)


__all__ = ["StripeClient"]
