"""
Concurrent fan-out over record sources followed by grouping and comparison.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel

from royalty_analytics.schemas import Summary
from royalty_analytics.services.aggregation import (
    compare_periods,
    group_records,
    partition_by_boundary,
    sum_field,
)
from royalty_analytics.utils.exceptions import (
    MalformedSourceDataError,
    SourceUnavailableError,
)

logger = logging.getLogger(__name__)

RecordFetcher = Callable[[], Awaitable[Sequence[Any]]]


@dataclass(frozen=True)
class RecordSource:
    """A named, zero-argument coroutine that yields records."""

    name: str
    fetch: RecordFetcher


def best_effort(source: RecordSource) -> RecordSource:
    """Wrap an optional source so failures degrade to an empty record list."""

    async def _fetch() -> Sequence[Any]:
        try:
            return await source.fetch()
        except Exception as exc:
            logger.warning(
                "Optional source %s failed; continuing without it: %s",
                source.name,
                exc,
            )
            return []

    return RecordSource(name=source.name, fetch=_fetch)


class SummaryAssembler:
    """Fetch all sources concurrently and fold them into a :class:`Summary`."""

    def __init__(self, *, timestamp_field: str = "timestamp") -> None:
        self._timestamp_field = timestamp_field

    async def fetch_all(self, sources: Sequence[RecordSource]) -> Dict[str, List[Any]]:
        """Run every fetch concurrently and return records keyed by source name.

        Raises :class:`SourceUnavailableError` naming every source that failed.
        Sources that return data of the wrong shape count as empty.
        """
        names = [source.name for source in sources]
        if len(set(names)) != len(names):
            raise ValueError(f"Record source names must be unique: {names}")

        results = await asyncio.gather(
            *(source.fetch() for source in sources), return_exceptions=True
        )

        fetched: Dict[str, List[Any]] = {}
        failures: Dict[str, BaseException] = {}
        for source, result in zip(sources, results):
            if isinstance(result, MalformedSourceDataError):
                logger.warning("Source %s returned malformed data: %s", source.name, result)
                fetched[source.name] = []
            elif isinstance(result, Exception):
                logger.error("Source %s unavailable: %s", source.name, result)
                failures[source.name] = result
            elif isinstance(result, BaseException):
                raise result
            else:
                fetched[source.name] = self._normalise(source.name, result)

        if failures:
            raise SourceUnavailableError(failures)
        return fetched

    async def assemble(
        self,
        sources: Sequence[RecordSource],
        dimensions: Sequence[str],
        period_boundary: Optional[datetime] = None,
        value_field: str = "amount",
    ) -> Summary:
        """Build a summary from ``sources``.

        Each dimension is grouped over the records of all sources in source
        order. When ``period_boundary`` is given, the first (primary) source
        is split at the boundary and its two halves compared.
        """
        if not sources:
            raise ValueError("At least one record source is required")

        fetched = await self.fetch_all(sources)
        return self.summarise(
            {source.name: fetched[source.name] for source in sources},
            dimensions,
            period_boundary=period_boundary,
            value_field=value_field,
        )

    def summarise(
        self,
        records_by_source: Mapping[str, Sequence[Any]],
        dimensions: Sequence[str],
        period_boundary: Optional[datetime] = None,
        value_field: str = "amount",
    ) -> Summary:
        """Fold already-fetched records into a summary.

        ``records_by_source`` is read in insertion order; its first entry is
        the primary source used for the period comparison.
        """
        combined = [
            record for records in records_by_source.values() for record in records
        ]

        comparison = None
        if period_boundary is not None:
            primary = next(iter(records_by_source.values()), [])
            current, previous = partition_by_boundary(
                primary,
                period_boundary,
                timestamp_field=self._timestamp_field,
            )
            comparison = compare_periods(current, previous, value_field)

        return Summary(
            buckets={
                dimension: group_records(combined, dimension, value_field)
                for dimension in dimensions
            },
            comparison=comparison,
            totals={
                name: sum_field(records, value_field)
                for name, records in records_by_source.items()
            },
            record_count=len(combined),
        )

    @staticmethod
    def _normalise(name: str, payload: Any) -> List[Any]:
        if payload is None or isinstance(payload, (str, bytes, Mapping)):
            logger.warning(
                "Source %s returned %s instead of a record list; treating as empty",
                name,
                type(payload).__name__,
            )
            return []
        try:
            items = list(payload)
        except TypeError:
            logger.warning("Source %s returned a non-iterable payload", name)
            return []

        records = [item for item in items if isinstance(item, (Mapping, BaseModel))]
        skipped = len(items) - len(records)
        if skipped:
            logger.warning("Skipped %s malformed record(s) from source %s", skipped, name)
        return records


__all__ = ["RecordFetcher", "RecordSource", "SummaryAssembler", "best_effort"]
