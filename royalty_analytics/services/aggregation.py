"""
Grouping and period comparison over in-memory record lists.

Every function here is pure: inputs are never mutated and each call returns
freshly built objects, so identical inputs always give identical outputs.
Records may be plain mappings or :class:`~royalty_analytics.schemas.Record`
instances; missing or invalid values are coerced rather than rejected.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from royalty_analytics.schemas import Bucket, PeriodComparison
from royalty_analytics.utils.coercion import (
    UNKNOWN_KEY,
    coerce_amount,
    coerce_key,
    coerce_timestamp,
    field_value,
)


def sum_field(records: Iterable[Any], value_field: str = "amount") -> float:
    """Sum ``value_field`` across ``records``; invalid values count as 0."""
    return sum(coerce_amount(field_value(record, value_field)) for record in records)


def group_records(
    records: Iterable[Any],
    key_field: str,
    value_field: str = "amount",
    *,
    default_key: str = UNKNOWN_KEY,
) -> List[Bucket]:
    """Group records by ``key_field`` and sum ``value_field`` per group.

    Records lacking the key (missing, ``None`` or empty) land in the
    ``default_key`` bucket, ``"Unknown"`` unless overridden. Buckets are
    ordered by total, largest first; ties keep the order in which keys were
    first seen.
    """
    totals: Dict[str, float] = {}
    for record in records:
        key = coerce_key(field_value(record, key_field), default_key)
        totals[key] = totals.get(key, 0.0) + coerce_amount(
            field_value(record, value_field)
        )

    # sorted() is stable, so equal totals stay in first-seen order.
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [Bucket(key=key, total=total) for key, total in ordered]


def growth_rate(current_total: float, previous_total: float) -> float:
    """Percentage change from ``previous_total`` to ``current_total``.

    A previous total of zero or less yields 0 rather than an infinite or
    sign-flipped rate.
    """
    if previous_total > 0:
        return ((current_total - previous_total) / previous_total) * 100
    return 0.0


def compare_periods(
    current_records: Iterable[Any],
    previous_records: Iterable[Any],
    value_field: str = "amount",
) -> PeriodComparison:
    """Compare the summed ``value_field`` of two disjoint record sets."""
    current_total = sum_field(current_records, value_field)
    previous_total = sum_field(previous_records, value_field)
    rate = growth_rate(current_total, previous_total)
    return PeriodComparison(
        current_total=current_total,
        previous_total=previous_total,
        growth_rate_percent=rate,
        is_positive=rate >= 0,
    )


def partition_by_boundary(
    records: Iterable[Any],
    boundary: datetime,
    timestamp_field: str = "timestamp",
) -> Tuple[List[Any], List[Any]]:
    """Split records into ``(current, previous)`` around ``boundary``.

    ``current`` holds records stamped at or after the boundary. Records whose
    timestamp cannot be parsed are left out of both lists.
    """
    cutoff = coerce_timestamp(boundary)
    if cutoff is None:
        raise ValueError("boundary must be a datetime, ISO string or Unix timestamp")

    current: List[Any] = []
    previous: List[Any] = []
    for record in records:
        stamp = coerce_timestamp(field_value(record, timestamp_field))
        if stamp is None:
            continue
        if stamp >= cutoff:
            current.append(record)
        else:
            previous.append(record)
    return current, previous


def filter_by_field(
    records: Iterable[Any], field: str, allowed: Sequence[str]
) -> List[Any]:
    """Keep records whose ``field`` value is one of ``allowed``."""
    allowed_set = set(allowed)
    return [record for record in records if field_value(record, field) in allowed_set]


def with_percentages(
    buckets: Sequence[Bucket], value_name: str = "amount", key_name: str = "key"
) -> List[Dict[str, Any]]:
    """Render buckets as rows with each bucket's share of their combined total.

    Shares are 0 when the combined total is not positive.
    """
    grand_total = sum(bucket.total for bucket in buckets)
    rows: List[Dict[str, Any]] = []
    for bucket in buckets:
        share = (bucket.total / grand_total) * 100 if grand_total > 0 else 0.0
        rows.append({key_name: bucket.key, value_name: bucket.total, "percentage": share})
    return rows


__all__ = [
    "compare_periods",
    "filter_by_field",
    "group_records",
    "growth_rate",
    "partition_by_boundary",
    "sum_field",
    "with_percentages",
]
