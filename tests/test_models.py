from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from pygunshot.models.event import EstimatedLocation, GunshotEvent, LegacyGunshotEvent, TriggeredMic
from pygunshot.models.sensor import Sensor
from pygunshot.models.view import TransitionKind, ViewState

T_US = 1_767_225_600_000_000  # 2026-01-01T00:00:00Z


def test_sensor_coerces_numeric_strings() -> None:
    sensor = Sensor.model_validate({"mic_id": "3", "lat": "42.33", "lon": "-83.04", "registered_at": str(T_US)})

    assert sensor.mic_id == 3
    assert sensor.lat == pytest.approx(42.33)
    assert sensor.registered_at == T_US
    assert sensor.registered_datetime_utc == datetime(2026, 1, 1, tzinfo=UTC)


def test_sensor_sentinel_registered_at_becomes_none() -> None:
    sensor = Sensor.model_validate({"mic_id": 1, "lat": 42.33, "lon": -83.04, "registered_at": "--"})

    assert sensor.registered_at is None
    assert sensor.registered_datetime_utc is None
    assert sensor.raw["registered_at"] == "--"


def test_sensor_rejects_out_of_range_latitude() -> None:
    with pytest.raises(ValidationError):
        Sensor.model_validate({"mic_id": 1, "lat": 123.0, "lon": 0.0})


def test_sensor_requires_mic_id() -> None:
    with pytest.raises(ValidationError):
        Sensor.model_validate({"mic_id": "", "lat": 1.0, "lon": 1.0})


def test_nested_event_parses_and_exposes_location() -> None:
    event = GunshotEvent.model_validate(
        {
            "id": 7,
            "estimated_location": {"lat": 1, "lon": 2, "time": T_US},
            "triggered_mics": [{"mic_id": 1, "lat": 1.1, "lon": 2.1}, {"mic_id": 2, "lat": 1.2, "lon": 2.2}],
        }
    )

    assert event.id == 7
    assert (event.lat, event.lon, event.time) == (1.0, 2.0, T_US)
    assert [mic.mic_id for mic in event.triggered_mics] == [1, 2]
    assert event.datetime_utc == datetime(2026, 1, 1, tzinfo=UTC)


def test_event_is_immutable() -> None:
    event = GunshotEvent(id=1, estimated_location=EstimatedLocation(lat=1.0, lon=1.0, time=T_US))

    with pytest.raises(ValidationError):
        event.id = 2  # type: ignore[misc]


def test_legacy_event_converts_to_canonical_shape() -> None:
    legacy = LegacyGunshotEvent.model_validate(
        {"id": "a1", "lat": 42.0, "lon": -83.0, "timestamp": T_US, "logs": [{"mic_id": 4, "lat": 42.1, "lon": -83.1}]}
    )
    event = legacy.to_event()

    expected = GunshotEvent(
        id="a1",
        estimated_location=EstimatedLocation(lat=42.0, lon=-83.0, time=T_US),
        triggered_mics=(TriggeredMic(mic_id=4, lat=42.1, lon=-83.1),),
    )
    # raw payloads differ but are excluded from comparison
    assert event == expected
    assert event.raw["timestamp"] == T_US


def test_event_missing_time_is_invalid() -> None:
    with pytest.raises(ValidationError):
        GunshotEvent.model_validate({"id": 1, "estimated_location": {"lat": 1, "lon": 1, "time": ""}})


def test_event_dump_excludes_raw() -> None:
    event = GunshotEvent.model_validate({"id": 1, "estimated_location": {"lat": 1, "lon": 1, "time": T_US}})

    dumped = event.model_dump()
    assert "raw" not in dumped
    assert "raw" not in dumped["estimated_location"]


def test_view_state_defaults() -> None:
    view = ViewState()

    assert view.center == (42.3351, -83.0469)
    assert view.zoom == 15
    assert view.highlighted_event_id is None
    assert view.transition is None
    assert view.transition_duration == 1.5
    assert TransitionKind("fly") is TransitionKind.FLY
