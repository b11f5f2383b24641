"""Merge and window vocabulary shared by ingestion paths, the store and the filter."""

from __future__ import annotations

from datetime import timedelta
from enum import StrEnum

from pygunshot.ingestion.normalize import timedelta_to_micros


class IngestionSource(StrEnum):
    STREAM = "stream"
    POLL = "poll"


class MergeMode(StrEnum):
    """How an event batch is merged into the store.

    REPLACE
        The batch is the authoritative full snapshot of known events.
    APPEND_DEDUP
        The batch is appended; events at or below the high-water mark are
        dropped. Only used for the bounded rolling-window live feed.
    """

    REPLACE = "replace"
    APPEND_DEDUP = "append_dedup"


_DURATIONS: dict[str, timedelta] = {
    "10s": timedelta(seconds=10),
    "2m": timedelta(minutes=2),
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
}


class WindowPolicy(StrEnum):
    """Which time range of sensors/events is in scope.

    Exactly one policy is active at a time. Switching policy only changes the
    derived view, never the stored data.
    """

    LAST_10_SECONDS = "10s"
    LAST_2_MINUTES = "2m"
    LAST_1_HOUR = "1h"
    LAST_24_HOURS = "24h"

    @property
    def duration(self) -> timedelta:
        return _DURATIONS[self.value]

    @property
    def duration_us(self) -> int:
        return timedelta_to_micros(self.duration)

    @classmethod
    def parse(cls, value: WindowPolicy | str) -> WindowPolicy:
        """Accept a policy, its value (``"1h"``) or its name (``"LAST_1_HOUR"``)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        try:
            return cls(text)
        except ValueError:
            pass
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"Unknown window policy: {value!r}") from None
