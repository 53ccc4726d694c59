"""Public schema exports."""

from .analytics import (
    AnalyticsEnvelope,
    Bucket,
    DateRange,
    PeriodComparison,
    Record,
    Summary,
)
from .auth import AuthenticatedUser

__all__ = [
    "AnalyticsEnvelope",
    "AuthenticatedUser",
    "Bucket",
    "DateRange",
    "PeriodComparison",
    "Record",
    "Summary",
]
