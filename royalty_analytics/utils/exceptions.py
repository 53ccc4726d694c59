"""Errors raised around record sources."""

from __future__ import annotations

from typing import Mapping


class MalformedSourceDataError(ValueError):
    """Raised when an upstream source answers with data of the wrong shape."""


class SourceUnavailableError(RuntimeError):
    """Raised when one or more record sources failed to deliver data."""

    def __init__(self, failures: Mapping[str, BaseException]) -> None:
        self.failures = dict(failures)
        names = ", ".join(sorted(self.failures)) or "unknown"
        super().__init__(f"Record source(s) unavailable: {names}")


__all__ = ["MalformedSourceDataError", "SourceUnavailableError"]
