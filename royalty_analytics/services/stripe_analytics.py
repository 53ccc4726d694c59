"""
Revenue, payout and growth analytics for a connected Stripe account.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Sequence, Tuple

from royalty_analytics.schemas import AnalyticsEnvelope, DateRange, Record
from royalty_analytics.services.aggregation import (
    filter_by_field,
    group_records,
    sum_field,
    with_percentages,
)
from royalty_analytics.services.sources import RecordSourceFactory, minor_to_major
from royalty_analytics.services.summary_assembler import SummaryAssembler, best_effort
from royalty_analytics.utils.coercion import coerce_key, field_value

PERIOD_DAYS: Dict[str, int] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_PERIOD = "30d"
REVENUE_TYPES: Tuple[str, ...] = ("charge", "payment")

_DAY_SECONDS = 24 * 60 * 60
_TOP_SOURCES = 10


def resolve_period(period: str | None) -> Tuple[str, int]:
    """Return the period label and its length in days; unknown labels mean 30d."""
    if period in PERIOD_DAYS:
        return period, PERIOD_DAYS[period]
    return DEFAULT_PERIOD, PERIOD_DAYS[DEFAULT_PERIOD]


def summarize_balance(balance: Dict[str, Any]) -> Dict[str, Any]:
    """Collapse per-currency balance entries into major-unit totals."""
    available = balance.get("available") or []
    pending = balance.get("pending") or []
    currency = "usd"
    if available and isinstance(available[0], dict):
        currency = available[0].get("currency") or currency
    return {
        "available": sum(minor_to_major(field_value(entry, "amount")) for entry in available),
        "pending": sum(minor_to_major(field_value(entry, "amount")) for entry in pending),
        "currency": currency,
    }


def daily_volume(
    transactions: Sequence[Record], start: int, end: int
) -> List[Dict[str, Any]]:
    """Net amount per UTC calendar day between ``start`` and ``end``, zero-filled."""
    days: Dict[str, float] = {}
    cursor = start
    while cursor <= end:
        day = datetime.fromtimestamp(cursor, tz=timezone.utc).date().isoformat()
        days[day] = 0.0
        cursor += _DAY_SECONDS

    dated = [
        {"day": txn.timestamp.date().isoformat(), "amount": txn.amount}
        for txn in transactions
        if txn.timestamp is not None
    ]
    for bucket in group_records(dated, "day"):
        if bucket.key in days:
            days[bucket.key] += bucket.total

    return [{"date": day, "amount": amount} for day, amount in days.items()]


def transaction_type_breakdown(transactions: Sequence[Record]) -> List[Dict[str, Any]]:
    """Count, net amount and share of count per type, in first-seen type order."""
    counts = Counter(coerce_key(field_value(txn, "type")) for txn in transactions)
    totals = {bucket.key: bucket.total for bucket in group_records(transactions, "type")}
    total_count = len(transactions)
    return [
        {
            "type": kind,
            "count": count,
            "amount": totals[kind],
            "percentage": (count / total_count) * 100 if total_count else 0.0,
        }
        for kind, count in counts.items()
    ]


class StripeAnalyticsService:
    """Build the analytics payload shown on the payouts dashboard."""

    def __init__(
        self,
        source_factory: RecordSourceFactory,
        assembler: SummaryAssembler,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._sources = source_factory
        self._assembler = assembler
        self._clock = clock

    async def build_analytics(
        self, *, stripe_account: str, period: str | None = None
    ) -> AnalyticsEnvelope:
        label, days = resolve_period(period)
        now_dt = self._clock()
        now = int(now_dt.timestamp())
        start = now - days * _DAY_SECONDS
        previous_start = now - 2 * days * _DAY_SECONDS

        fetched = await self._assembler.fetch_all(
            [
                self._sources.balance_transactions(
                    "transactions", stripe_account=stripe_account, created_gte=start
                ),
                self._sources.balance("balance", stripe_account=stripe_account),
                self._sources.payouts(
                    "payouts", stripe_account=stripe_account, created_gte=start
                ),
                self._sources.transfers(
                    "transfers", destination=stripe_account, created_gte=start
                ),
                best_effort(
                    self._sources.balance_transactions(
                        "previous_transactions",
                        stripe_account=stripe_account,
                        created_gte=previous_start,
                        created_lt=start,
                    )
                ),
            ]
        )

        transactions: List[Record] = fetched["transactions"]
        payouts: List[Record] = fetched["payouts"]
        transfers: List[Record] = fetched["transfers"]
        balance = fetched["balance"][0] if fetched["balance"] else {}

        revenue = filter_by_field(transactions, "type", REVENUE_TYPES)
        previous_revenue = filter_by_field(
            fetched["previous_transactions"], "type", REVENUE_TYPES
        )
        growth = self._assembler.summarise(
            {"revenue": [*revenue, *previous_revenue]},
            dimensions=(),
            period_boundary=datetime.fromtimestamp(start, tz=timezone.utc),
        ).comparison

        payout_statuses = Counter(str(field_value(payout, "status")) for payout in payouts)
        sources_by_description = with_percentages(
            group_records(revenue, "description"), key_name="source"
        )

        data = {
            "current_balance": summarize_balance(balance),
            "revenue": {
                "total": sum_field(revenue),
                "gross": sum_field(revenue, "gross"),
                "fees": sum_field(revenue, "fee"),
            },
            "payouts": {
                "total": sum_field(payouts),
                "count": len(payouts),
                "pending": payout_statuses["pending"],
                "paid": payout_statuses["paid"],
                "failed": payout_statuses["failed"],
            },
            "transfers": {"total": sum_field(transfers), "count": len(transfers)},
            "daily_volume": daily_volume(transactions, start, now),
            "transaction_types": transaction_type_breakdown(transactions),
            "top_sources": sources_by_description[:_TOP_SOURCES],
            "growth": growth.model_dump() if growth else None,
        }

        return AnalyticsEnvelope(
            data=data,
            period=label,
            date_range=DateRange(start=start, end=now),
        )


__all__ = [
    "DEFAULT_PERIOD",
    "PERIOD_DAYS",
    "REVENUE_TYPES",
    "StripeAnalyticsService",
    "daily_volume",
    "resolve_period",
    "summarize_balance",
    "transaction_type_breakdown",
]
