"""Deterministic dedup policy.

This module intentionally contains *no* payload parsing. The ingestion
boundary is responsible for producing canonical events.
"""

from __future__ import annotations

from collections.abc import Iterable

from pygunshot.models.event import EventId, GunshotEvent


def is_newer(event_time: int, high_water_mark: int | None) -> bool:
    """Strictly newer than everything seen so far."""
    return high_water_mark is None or event_time > high_water_mark


def unique_by_id(events: Iterable[GunshotEvent]) -> tuple[list[GunshotEvent], int]:
    """Keep the first occurrence of every id, preserving arrival order.

    Returns the kept events and the number of dropped duplicates.
    """
    seen: set[EventId] = set()
    kept: list[GunshotEvent] = []
    dropped = 0
    for event in events:
        if event.id in seen:
            dropped += 1
            continue
        seen.add(event.id)
        kept.append(event)
    return kept, dropped


def newer_than(events: Iterable[GunshotEvent], high_water_mark: int | None) -> tuple[list[GunshotEvent], int | None]:
    """Admit events strictly above a moving high-water mark.

    The mark advances with every admitted event, so equal-time duplicates
    inside one batch are admitted only once.
    """
    admitted: list[GunshotEvent] = []
    mark = high_water_mark
    for event in events:
        if is_newer(event.time, mark):
            admitted.append(event)
            mark = event.time
    return admitted, mark


def is_expired(event_time: int, horizon_start: int) -> bool:
    return event_time < horizon_start
