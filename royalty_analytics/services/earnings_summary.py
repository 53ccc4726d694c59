"""
Earnings overview for an artist's connected account.

Combines Stripe balances, transactions and payouts with the royalty tables
kept in Supabase. The Supabase reads are best effort: the summary still
renders when they fail.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from royalty_analytics.services.aggregation import (
    compare_periods,
    filter_by_field,
    group_records,
    sum_field,
)
from royalty_analytics.services.sources import RecordSourceFactory
from royalty_analytics.services.stripe_analytics import REVENUE_TYPES, summarize_balance
from royalty_analytics.services.summary_assembler import SummaryAssembler, best_effort
from royalty_analytics.utils.coercion import coerce_amount, field_value

EARNING_TYPES: Tuple[str, ...] = ("charge", "payment", "transfer")

_RECENT_PAYOUTS = 5
_RECENT_TRANSACTIONS = 10


def month_boundaries(now: datetime) -> Tuple[datetime, datetime, datetime]:
    """Return the UTC starts of this month, last month and this year."""
    this_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if this_month.month == 1:
        last_month = this_month.replace(year=this_month.year - 1, month=12)
    else:
        last_month = this_month.replace(month=this_month.month - 1)
    year_start = this_month.replace(month=1)
    return this_month, last_month, year_start


def _unix(value: Optional[datetime]) -> Optional[int]:
    return int(value.timestamp()) if value is not None else None


def _earnings(records: Sequence[Any]) -> float:
    return sum_field(filter_by_field(records, "type", EARNING_TYPES))


class EarningsSummaryService:
    """Build the earnings payload for the payouts page."""

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

    async def build_summary(
        self,
        *,
        user_id: str,
        stripe_account_id: str,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = self._clock().astimezone(timezone.utc)
        this_month, last_month, year_start = month_boundaries(now)
        account = stripe_account_id

        fetched = await self._assembler.fetch_all(
            [
                self._sources.balance("balance", stripe_account=account),
                self._sources.balance_transactions("all_transactions", stripe_account=account),
                self._sources.balance_transactions(
                    "this_month",
                    stripe_account=account,
                    created_gte=_unix(this_month),
                ),
                self._sources.balance_transactions(
                    "last_month",
                    stripe_account=account,
                    created_gte=_unix(last_month),
                    created_lt=_unix(this_month),
                ),
                self._sources.balance_transactions(
                    "year_to_date",
                    stripe_account=account,
                    created_gte=_unix(year_start),
                ),
                self._sources.payouts("payouts", stripe_account=account, limit=10),
                self._sources.account_details("account", account_id=account),
                best_effort(
                    self._sources.table_rows(
                        "royalty_payouts",
                        "royalty_payouts",
                        user_id=user_id,
                        columns="*",
                        value_field="amount",
                        timestamp_field="created_at",
                        order="created_at.desc",
                        access_token=access_token,
                    )
                ),
                best_effort(
                    self._sources.table_rows(
                        "revenue_splits",
                        "revenue_splits",
                        user_id=user_id,
                        columns="*",
                        value_field="earned_amount",
                        access_token=access_token,
                    )
                ),
            ]
        )

        all_transactions = fetched["all_transactions"]
        payouts = fetched["payouts"]
        balance = summarize_balance(fetched["balance"][0] if fetched["balance"] else {})
        account_details = fetched["account"][0] if fetched["account"] else {}

        total_earnings = _earnings(all_transactions)
        this_month_records = filter_by_field(fetched["this_month"], "type", EARNING_TYPES)
        last_month_records = filter_by_field(fetched["last_month"], "type", EARNING_TYPES)
        monthly = compare_periods(this_month_records, last_month_records)
        year_to_date = _earnings(fetched["year_to_date"])

        months_elapsed = now.month
        revenue = filter_by_field(all_transactions, "type", REVENUE_TYPES)
        average_transaction_value = (
            sum_field(revenue, "gross") / len(revenue) if revenue else 0.0
        )

        revenue_breakdown = [
            {
                "source": bucket.key,
                "amount": bucket.total,
                "percentage": (bucket.total / total_earnings) * 100
                if total_earnings > 0
                else 0.0,
            }
            for bucket in group_records(revenue, "description", default_key="Direct Payment")
        ]

        return {
            "stripe_account_status": {
                "id": account,
                "charges_enabled": account_details.get("charges_enabled"),
                "payouts_enabled": account_details.get("payouts_enabled"),
                "details_submitted": account_details.get("details_submitted"),
                "business_type": account_details.get("business_type"),
                "country": account_details.get("country"),
                "default_currency": account_details.get("default_currency"),
            },
            "balances": {
                "available": balance["available"],
                "pending": balance["pending"],
                "total": balance["available"] + balance["pending"],
                "currency": balance["currency"],
            },
            "earnings": {
                "total": total_earnings,
                "this_month": monthly.current_total,
                "last_month": monthly.previous_total,
                "year_to_date": year_to_date,
                "projected_annual": (year_to_date / months_elapsed) * 12,
                "monthly_growth_rate": monthly.growth_rate_percent,
                "average_transaction_value": average_transaction_value,
            },
            "payouts": {
                "total_paid_out": sum_field(filter_by_field(payouts, "status", ("paid",))),
                "pending_payouts": sum_field(
                    filter_by_field(payouts, "status", ("pending",))
                ),
                "last_payout_date": field_value(payouts[0], "created") if payouts else None,
                "recent_payouts": [
                    {
                        "id": field_value(payout, "id"),
                        "amount": payout.amount,
                        "status": field_value(payout, "status"),
                        "arrival_date": field_value(payout, "arrival_date"),
                        "created": field_value(payout, "created"),
                        "currency": field_value(payout, "currency"),
                    }
                    for payout in payouts[:_RECENT_PAYOUTS]
                ],
            },
            "analytics": {
                "revenue_breakdown": revenue_breakdown,
                "platform_earnings": self._platform_earnings(fetched["revenue_splits"]),
                "transaction_count": len(revenue),
                "average_monthly_earnings": year_to_date / months_elapsed,
            },
            "recent_transactions": [
                {
                    "id": field_value(txn, "id"),
                    "amount": field_value(txn, "gross"),
                    "net": txn.amount,
                    "fee": field_value(txn, "fee"),
                    "type": field_value(txn, "type"),
                    "description": field_value(txn, "description"),
                    "created": _unix(txn.timestamp),
                    "currency": field_value(txn, "currency"),
                    "status": field_value(txn, "status"),
                }
                for txn in all_transactions[:_RECENT_TRANSACTIONS]
            ],
            "database_records": {
                "royalty_payouts": len(fetched["royalty_payouts"]),
                "revenue_splits": len(fetched["revenue_splits"]),
            },
            "last_updated": now.isoformat(),
            "has_stripe_account": True,
        }

    @staticmethod
    def _platform_earnings(splits: Sequence[Any]) -> List[Dict[str, Any]]:
        return [
            {
                "platform": field_value(split, "platform_name") or "Unknown",
                "earnings": coerce_amount(field_value(split, "earned_amount")),
                "percentage": coerce_amount(field_value(split, "split_percentage")),
                "last_updated": field_value(split, "last_calculated_at"),
            }
            for split in splits
        ]


__all__ = ["EARNING_TYPES", "EarningsSummaryService", "month_boundaries"]
