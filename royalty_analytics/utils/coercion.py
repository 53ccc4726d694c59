"""Normalisation helpers for loosely-typed upstream rows."""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

UNKNOWN_KEY = "Unknown"


def field_value(record: Any, field: str) -> Any:
    """Read ``field`` from a mapping or an attribute-style record."""
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def coerce_amount(value: Any) -> float:
    """Return ``value`` as a finite float, or 0.0 when it is not numeric."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def coerce_key(value: Any, default: str = UNKNOWN_KEY) -> str:
    """Return ``value`` as a grouping key, or ``default`` when it is blank."""
    if value is None or value == "":
        return default
    return str(value)


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """Parse datetimes, ISO-8601 strings and Unix seconds into aware UTC datetimes."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        if math.isnan(value) or math.isinf(value):
            return None
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "UNKNOWN_KEY",
    "coerce_amount",
    "coerce_key",
    "coerce_timestamp",
    "field_value",
]
