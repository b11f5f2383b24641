"""Normalization helpers.

Centralizes defensive scalar parsing and the single point where wall-clock
values are converted to the microsecond unit used by stored timestamps.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Any

from pygunshot._constants import MICROS_PER_SECOND


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or value == "--":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        return None
    return int(parsed)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def to_epoch_micros(value: datetime) -> int:
    """Convert a datetime to epoch microseconds.

    This is the only wall-clock → storage-unit conversion; callers convert
    once at their boundary and compare integers afterwards.
    """
    delta = ensure_aware(value) - datetime(1970, 1, 1, tzinfo=UTC)
    return timedelta_to_micros(delta)


def timedelta_to_micros(value: timedelta) -> int:
    return (value.days * 86_400 + value.seconds) * MICROS_PER_SECOND + value.microseconds

