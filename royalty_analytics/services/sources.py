"""
Record source adapters.

Upstream rows are converted into :class:`Record` models here, at the edge, so
the aggregation code only ever sees one record shape. Stripe reports money in
minor units; amounts are converted to major units on the way in.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from royalty_analytics.clients import StripeClient, SupabaseClient
from royalty_analytics.schemas import Record
from royalty_analytics.services.summary_assembler import RecordSource
from royalty_analytics.utils.coercion import coerce_amount

logger = logging.getLogger(__name__)


def minor_to_major(value: Any) -> float:
    """Convert a minor-unit amount (cents) to major units."""
    return coerce_amount(value) / 100


def _build_record(fields: Dict[str, Any], *, origin: str) -> Optional[Record]:
    try:
        return Record.model_validate(fields)
    except ValidationError as exc:
        logger.warning("Skipping malformed %s row: %s", origin, exc)
        return None


def _stripe_rows(rows: Iterable[Any], origin: str) -> Iterable[Dict[str, Any]]:
    for row in rows:
        if not isinstance(row, dict) or not row.get("id"):
            logger.warning("Skipping %s row without an id", origin)
            continue
        yield row


def records_from_balance_transactions(rows: Iterable[Any]) -> List[Record]:
    """Map balance transactions to records whose ``amount`` is the net value."""
    records: List[Record] = []
    for row in _stripe_rows(rows, "balance transaction"):
        record = _build_record(
            {
                "id": row["id"],
                "timestamp": row.get("created"),
                "amount": minor_to_major(row.get("net")),
                "gross": minor_to_major(row.get("amount")),
                "fee": minor_to_major(row.get("fee")),
                "type": row.get("type"),
                "description": row.get("description"),
                "currency": row.get("currency"),
                "status": row.get("status"),
            },
            origin="balance transaction",
        )
        if record is not None:
            records.append(record)
    return records


def records_from_payouts(rows: Iterable[Any]) -> List[Record]:
    records: List[Record] = []
    for row in _stripe_rows(rows, "payout"):
        record = _build_record(
            {
                "id": row["id"],
                "timestamp": row.get("created"),
                "amount": minor_to_major(row.get("amount")),
                "status": row.get("status"),
                "arrival_date": row.get("arrival_date"),
                "created": row.get("created"),
                "currency": row.get("currency"),
            },
            origin="payout",
        )
        if record is not None:
            records.append(record)
    return records


def records_from_transfers(rows: Iterable[Any]) -> List[Record]:
    records: List[Record] = []
    for row in _stripe_rows(rows, "transfer"):
        record = _build_record(
            {
                "id": row["id"],
                "timestamp": row.get("created"),
                "amount": minor_to_major(row.get("amount")),
                "currency": row.get("currency"),
                "description": row.get("description"),
            },
            origin="transfer",
        )
        if record is not None:
            records.append(record)
    return records


def records_from_rows(
    rows: Iterable[Any],
    *,
    value_field: str,
    timestamp_field: Optional[str] = None,
    origin: str = "table",
) -> List[Record]:
    """Map database rows to records, copying ``value_field`` into ``amount``."""
    records: List[Record] = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Skipping non-object %s row", origin)
            continue
        fields = {key: value for key, value in row.items() if key not in ("amount", "timestamp")}
        fields["amount"] = row.get(value_field)
        fields[value_field] = coerce_amount(row.get(value_field))
        if timestamp_field:
            fields["timestamp"] = row.get(timestamp_field)
        record = _build_record(fields, origin=origin)
        if record is not None:
            records.append(record)
    return records


class RecordSourceFactory:
    """Build :class:`RecordSource` adapters bound to a user and time window."""

    def __init__(self, stripe_client: StripeClient, supabase_client: SupabaseClient) -> None:
        self._stripe = stripe_client
        self._supabase = supabase_client

    def balance(self, name: str, *, stripe_account: str) -> RecordSource:
        """Single-item source holding the account's balance object."""

        async def _fetch() -> List[Dict[str, Any]]:
            return [await self._stripe.retrieve_balance(stripe_account=stripe_account)]

        return RecordSource(name=name, fetch=_fetch)

    def account_details(self, name: str, *, account_id: str) -> RecordSource:
        """Single-item source holding the connected account object."""

        async def _fetch() -> List[Dict[str, Any]]:
            return [await self._stripe.retrieve_account(account_id)]

        return RecordSource(name=name, fetch=_fetch)

    def balance_transactions(
        self,
        name: str,
        *,
        stripe_account: str,
        created_gte: Optional[int] = None,
        created_lt: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RecordSource:
        async def _fetch() -> List[Record]:
            rows = await self._stripe.list_balance_transactions(
                stripe_account=stripe_account,
                created_gte=created_gte,
                created_lt=created_lt,
                limit=limit,
            )
            return records_from_balance_transactions(rows)

        return RecordSource(name=name, fetch=_fetch)

    def payouts(
        self,
        name: str,
        *,
        stripe_account: str,
        created_gte: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RecordSource:
        async def _fetch() -> List[Record]:
            rows = await self._stripe.list_payouts(
                stripe_account=stripe_account, created_gte=created_gte, limit=limit
            )
            return records_from_payouts(rows)

        return RecordSource(name=name, fetch=_fetch)

    def transfers(
        self,
        name: str,
        *,
        destination: str,
        created_gte: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> RecordSource:
        async def _fetch() -> List[Record]:
            rows = await self._stripe.list_transfers(
                destination=destination, created_gte=created_gte, limit=limit
            )
            return records_from_transfers(rows)

        return RecordSource(name=name, fetch=_fetch)

    def table_rows(
        self,
        name: str,
        table: str,
        *,
        user_id: str,
        columns: str,
        value_field: str,
        timestamp_field: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        access_token: Optional[str] = None,
    ) -> RecordSource:
        """Rows of ``table`` owned by ``user_id``, optionally within ``[start, end)``."""
        gte = {timestamp_field: start.isoformat()} if start and timestamp_field else None
        lt = {timestamp_field: end.isoformat()} if end and timestamp_field else None

        async def _fetch() -> List[Record]:
            rows = await self._supabase.select(
                table,
                columns=columns,
                eq={"user_id": user_id},
                gte=gte,
                lt=lt,
                order=order,
                limit=limit,
                access_token=access_token,
            )
            return records_from_rows(
                rows,
                value_field=value_field,
                timestamp_field=timestamp_field,
                origin=table,
            )

        return RecordSource(name=name, fetch=_fetch)


__all__ = [
    "RecordSourceFactory",
    "minor_to_major",
    "records_from_balance_transactions",
    "records_from_payouts",
    "records_from_rows",
    "records_from_transfers",
]
