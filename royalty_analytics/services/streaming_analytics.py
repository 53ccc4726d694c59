"""
Streaming analytics for the artist dashboard.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from royalty_analytics.services.aggregation import sum_field
from royalty_analytics.services.sources import RecordSourceFactory
from royalty_analytics.services.summary_assembler import SummaryAssembler
from royalty_analytics.utils.coercion import coerce_amount, coerce_timestamp, field_value


class StreamingAnalyticsService:
    """Group a user's stream counts by platform and country."""

    _TOP_RELEASES = 5
    _GROWTH_WINDOW = timedelta(days=30)

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
        self, *, user_id: str, access_token: Optional[str] = None
    ) -> Dict[str, Any]:
        now = self._clock()
        boundary = now - self._GROWTH_WINDOW
        window_start = boundary - self._GROWTH_WINDOW

        fetched = await self._assembler.fetch_all(
            [
                self._sources.table_rows(
                    "analytics",
                    "analytics",
                    user_id=user_id,
                    columns="platform,country,streams,revenue,date",
                    value_field="streams",
                    timestamp_field="date",
                    access_token=access_token,
                ),
                self._sources.table_rows(
                    "releases",
                    "releases",
                    user_id=user_id,
                    columns="id,title,streams,revenue,cover_art_url",
                    value_field="streams",
                    access_token=access_token,
                ),
            ]
        )
        analytics = fetched["analytics"]
        releases = fetched["releases"]

        summary = self._assembler.summarise(
            {"analytics": analytics},
            dimensions=("platform", "country"),
        )
        # Growth only looks at the two most recent 30-day windows.
        recent = []
        for row in analytics:
            stamp = coerce_timestamp(field_value(row, "timestamp"))
            if stamp is not None and stamp >= window_start:
                recent.append(row)
        growth = None
        if recent:
            growth = self._assembler.summarise(
                {"analytics": recent}, dimensions=(), period_boundary=boundary
            ).comparison

        top_releases = sorted(
            releases,
            key=lambda release: coerce_amount(field_value(release, "streams")),
            reverse=True,
        )[: self._TOP_RELEASES]

        return {
            "total_streams": sum_field(releases, "streams"),
            "total_revenue": sum_field(releases, "revenue"),
            "streams_by_platform": [
                bucket.as_row("platform", "streams")
                for bucket in summary.buckets["platform"]
            ],
            "streams_by_country": [
                bucket.as_row("country", "streams")
                for bucket in summary.buckets["country"]
            ],
            "top_releases": [
                {
                    "id": field_value(release, "id"),
                    "title": field_value(release, "title"),
                    "streams": coerce_amount(field_value(release, "streams")),
                    "cover_art_url": field_value(release, "cover_art_url"),
                }
                for release in top_releases
            ],
            "stream_growth": growth.model_dump() if growth else None,
        }


__all__ = ["StreamingAnalyticsService"]
