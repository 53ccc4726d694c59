"""Service layer exports."""

from .accounts import AccountNotFoundError, AccountOwnershipError, AccountService
from .earnings_summary import EarningsSummaryService
from .sources import RecordSourceFactory
from .streaming_analytics import StreamingAnalyticsService
from .stripe_analytics import StripeAnalyticsService
from .summary_assembler import RecordSource, SummaryAssembler, best_effort

__all__ = [
    "AccountNotFoundError",
    "AccountOwnershipError",
    "AccountService",
    "EarningsSummaryService",
    "RecordSource",
    "RecordSourceFactory",
    "StreamingAnalyticsService",
    "StripeAnalyticsService",
    "SummaryAssembler",
    "best_effort",
]
