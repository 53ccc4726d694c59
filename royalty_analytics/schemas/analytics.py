"""
Pydantic models describing records and the aggregation outputs built from them.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from royalty_analytics.utils.coercion import coerce_amount, coerce_timestamp


class Record(BaseModel):
    """A single timestamped, tagged, numeric-valued event from an upstream source.

    Categorical tags such as ``platform``, ``country``, ``type`` or
    ``description`` are kept as extra fields so any of them can be used as a
    grouping dimension.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    timestamp: Optional[datetime] = Field(
        None, description="When the event happened (UTC)."
    )
    amount: float = Field(0.0, description="Numeric value summed by aggregations.")

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: Any) -> float:
        return coerce_amount(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Optional[datetime]:
        return coerce_timestamp(value)


class Bucket(BaseModel):
    """Sum of a numeric field across records sharing one dimension value."""

    key: str
    total: float

    def as_row(self, dimension: str, value_name: str = "total") -> Dict[str, Any]:
        """Render as ``{dimension: key, value_name: total}`` for chart payloads."""
        return {dimension: self.key, value_name: self.total}


class PeriodComparison(BaseModel):
    """Current versus previous period totals for one metric."""

    current_total: float = 0.0
    previous_total: float = 0.0
    growth_rate_percent: float = Field(
        0.0,
        description="Percentage change; 0 when the previous total is not positive.",
    )
    is_positive: bool = True


class Summary(BaseModel):
    """Dashboard-ready aggregation of one or more record sources."""

    buckets: Dict[str, List[Bucket]] = Field(default_factory=dict)
    comparison: Optional[PeriodComparison] = None
    totals: Dict[str, float] = Field(
        default_factory=dict,
        description="Sum of the value field per source, keyed by source name.",
    )
    record_count: int = Field(0, ge=0)

    @field_serializer("buckets")
    def _serialise_buckets(
        self, buckets: Dict[str, List[Bucket]]
    ) -> Dict[str, List[Dict[str, Any]]]:
        return {
            dimension: [bucket.as_row(dimension) for bucket in rows]
            for dimension, rows in buckets.items()
        }


class DateRange(BaseModel):
    """Unix-second bounds of an analytics window."""

    start: int
    end: int


class AnalyticsEnvelope(BaseModel):
    """Response wrapper shared by the analytics endpoints."""

    success: bool = True
    data: Dict[str, Any]
    period: Optional[str] = None
    date_range: Optional[DateRange] = None


__all__ = [
    "AnalyticsEnvelope",
    "Bucket",
    "DateRange",
    "PeriodComparison",
    "Record",
    "Summary",
]
