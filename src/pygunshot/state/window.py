"""Time-window filtering of sensors and events.

Eviction for display happens here, at read time; the store keeps
everything it was given (except under a rolling horizon).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from pygunshot._constants import SKEW_TOLERANCE
from pygunshot.ingestion.normalize import timedelta_to_micros, to_epoch_micros
from pygunshot.models.event import GunshotEvent
from pygunshot.models.sensor import Sensor
from pygunshot.state.events import WindowPolicy


def window_bounds(policy: WindowPolicy, now: datetime, skew_tolerance: timedelta = SKEW_TOLERANCE) -> tuple[int, int]:
    """Inclusive ``[start, end]`` bounds in epoch microseconds."""
    now_us = to_epoch_micros(now)
    return now_us - policy.duration_us, now_us + timedelta_to_micros(skew_tolerance)


def apply_window(
    sensors: Iterable[Sensor],
    events: Iterable[GunshotEvent],
    policy: WindowPolicy,
    now: datetime,
    *,
    skew_tolerance: timedelta = SKEW_TOLERANCE,
) -> tuple[list[Sensor], list[GunshotEvent]]:
    """Return the sensors and events in scope for *policy* at *now*.

    Sensors without ``registered_at`` are always in scope. Everything else is
    in scope when its timestamp lies within
    ``[now - policy.duration, now + skew_tolerance]``. Input order is kept.
    """
    start_us, end_us = window_bounds(policy, now, skew_tolerance)

    visible_sensors = [
        sensor
        for sensor in sensors
        if sensor.registered_at is None or start_us <= sensor.registered_at <= end_us
    ]
    visible_events = [event for event in events if start_us <= event.time <= end_us]
    return visible_sensors, visible_events
