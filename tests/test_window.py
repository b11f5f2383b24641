from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pygunshot.ingestion.normalize import to_epoch_micros
from pygunshot.models.event import EstimatedLocation, GunshotEvent
from pygunshot.models.sensor import Sensor
from pygunshot.state.events import WindowPolicy
from pygunshot.state.window import apply_window, window_bounds

T = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _us(value: datetime) -> int:
    return to_epoch_micros(value)


def _sensor(mic_id: int, registered_at: datetime | None) -> Sensor:
    return Sensor(
        mic_id=mic_id,
        lat=42.33,
        lon=-83.04,
        registered_at=_us(registered_at) if registered_at is not None else None,
    )


def _event(event_id: int, at: datetime) -> GunshotEvent:
    return GunshotEvent(id=event_id, estimated_location=EstimatedLocation(lat=1.0, lon=1.0, time=_us(at)))


def test_sensor_visibility_last_hour() -> None:
    recent = _sensor(1, T - timedelta(minutes=30))
    stale = _sensor(2, T - timedelta(hours=2))
    unknown = _sensor(3, None)

    sensors, _ = apply_window([recent, stale, unknown], [], WindowPolicy.LAST_1_HOUR, T)

    assert [sensor.mic_id for sensor in sensors] == [1, 3]


def test_unregistered_sensor_visible_under_every_policy() -> None:
    for policy in WindowPolicy:
        sensors, _ = apply_window([_sensor(9, None)], [], policy, T)
        assert len(sensors) == 1


def test_event_window_bounds_are_inclusive_with_forward_skew() -> None:
    events = [
        _event(1, T - timedelta(minutes=2)),  # exactly at start
        _event(2, T - timedelta(minutes=2, microseconds=1)),  # just before start
        _event(3, T + timedelta(seconds=60)),  # exactly at skew limit
        _event(4, T + timedelta(seconds=61)),  # beyond skew
        _event(5, T),
    ]

    _, visible = apply_window([], events, WindowPolicy.LAST_2_MINUTES, T)

    assert [event.id for event in visible] == [1, 3, 5]


def test_custom_skew_tolerance() -> None:
    events = [_event(1, T + timedelta(seconds=30))]

    _, visible = apply_window([], events, WindowPolicy.LAST_1_HOUR, T, skew_tolerance=timedelta(seconds=10))

    assert visible == []


def test_day_window_compares_in_microseconds() -> None:
    # A microsecond timestamp compared against a millisecond window would
    # keep events from thousands of hours ago.
    events = [_event(1, T - timedelta(hours=23)), _event(2, T - timedelta(hours=25)), _event(3, T - timedelta(days=400))]

    _, visible = apply_window([], events, WindowPolicy.LAST_24_HOURS, T)

    assert [event.id for event in visible] == [1]


def test_filter_is_idempotent() -> None:
    sensors = [_sensor(1, T - timedelta(minutes=30)), _sensor(2, T - timedelta(hours=3)), _sensor(3, None)]
    events = [_event(1, T - timedelta(seconds=5)), _event(2, T - timedelta(seconds=50)), _event(3, T + timedelta(hours=1))]

    for policy in WindowPolicy:
        once = apply_window(sensors, events, policy, T)
        twice = apply_window(once[0], once[1], policy, T)
        assert once == twice


def test_filter_does_not_mutate_inputs() -> None:
    sensors = [_sensor(1, T - timedelta(hours=3))]
    events = [_event(1, T - timedelta(hours=3))]

    apply_window(sensors, events, WindowPolicy.LAST_10_SECONDS, T)

    assert len(sensors) == 1
    assert len(events) == 1


def test_window_bounds() -> None:
    start, end = window_bounds(WindowPolicy.LAST_10_SECONDS, T)

    assert end - start == 70 * 1_000_000
    assert WindowPolicy.LAST_24_HOURS.duration_us == 86_400 * 1_000_000


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1h", WindowPolicy.LAST_1_HOUR),
        ("24h", WindowPolicy.LAST_24_HOURS),
        ("last_2_minutes", WindowPolicy.LAST_2_MINUTES),
        (WindowPolicy.LAST_10_SECONDS, WindowPolicy.LAST_10_SECONDS),
    ],
)
def test_policy_parse(value: str, expected: WindowPolicy) -> None:
    assert WindowPolicy.parse(value) is expected


def test_policy_parse_rejects_unknown() -> None:
    with pytest.raises(ValueError):
        WindowPolicy.parse("1w")
