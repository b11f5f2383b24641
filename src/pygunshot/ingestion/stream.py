"""Stream frame ingestion.

This module translates raw payloads (stream frames or pulled JSON bodies)
into typed :mod:`pygunshot.models.messages`. Event shapes are normalized
here, one adapter per shape, so the store and the window filter only ever
see canonical :class:`~pygunshot.models.event.GunshotEvent` objects.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pydantic import TypeAdapter, ValidationError

from pygunshot.exceptions import GunshotPayloadError
from pygunshot.models.event import GunshotEvent, LegacyGunshotEvent
from pygunshot.models.messages import EventBatch, InboundMessage, RosterUpdate
from pygunshot.models.sensor import Sensor

ROSTER_MESSAGE_TYPE = "sensor_update"
SNAPSHOT_EVENTS_KEY = "gunshot_events"

_SENSOR_LIST = TypeAdapter(list[Sensor])


def _event_from_nested(raw: Mapping[str, Any]) -> GunshotEvent:
    return GunshotEvent.model_validate(dict(raw))


def _event_from_legacy(raw: Mapping[str, Any]) -> GunshotEvent:
    return LegacyGunshotEvent.model_validate(dict(raw)).to_event()


def select_event_adapter(raw: Mapping[str, Any]) -> Callable[[Mapping[str, Any]], GunshotEvent]:
    """Pick the adapter for an event payload by its structure."""
    if "estimated_location" in raw:
        return _event_from_nested
    return _event_from_legacy


def normalize_event(raw: Any) -> GunshotEvent:
    """Normalize one event payload (nested or legacy flat) to a GunshotEvent."""
    if isinstance(raw, GunshotEvent):
        return raw
    if not isinstance(raw, Mapping):
        raise GunshotPayloadError(f"Event payload is not an object: {type(raw).__name__}", reason="event-type")
    adapter = select_event_adapter(raw)
    try:
        return adapter(raw)
    except ValidationError as exc:
        raise GunshotPayloadError(
            f"Invalid event payload id={raw.get('id')!r}: {exc.error_count()} error(s)",
            reason="event-invalid",
        ) from exc


def normalize_events(raw: Any) -> tuple[GunshotEvent, ...]:
    """Normalize a list of events. One bad element rejects the whole batch."""
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes, bytearray)):
        raise GunshotPayloadError("Event batch is not a list", reason="events-type")
    return tuple(normalize_event(item) for item in raw)


def parse_sensors(raw: Any) -> tuple[Sensor, ...]:
    """Validate a sensor roster list."""
    if not isinstance(raw, list):
        raise GunshotPayloadError("Sensor roster is not a list", reason="sensors-type")
    try:
        return tuple(_SENSOR_LIST.validate_python(raw))
    except ValidationError as exc:
        raise GunshotPayloadError(
            f"Invalid sensor roster: {exc.error_count()} error(s)",
            reason="sensors-invalid",
        ) from exc


def parse_message(payload: Any) -> InboundMessage:
    """Translate a decoded JSON payload into a typed inbound message.

    Recognized shapes:

    - ``{"type": "sensor_update", "sensors": [...]}`` → :class:`RosterUpdate`
    - ``{"gunshot_events": [...]}`` → :class:`EventBatch`
    - ``[{...}, ...]`` (legacy flat events) → :class:`EventBatch`
    """
    if isinstance(payload, list):
        return EventBatch(events=normalize_events(payload))

    if not isinstance(payload, dict):
        raise GunshotPayloadError(f"Unsupported payload type: {type(payload).__name__}", reason="payload-type")

    if payload.get("type") == ROSTER_MESSAGE_TYPE:
        return RosterUpdate(sensors=parse_sensors(payload.get("sensors")))

    if SNAPSHOT_EVENTS_KEY in payload:
        return EventBatch(events=normalize_events(payload[SNAPSHOT_EVENTS_KEY]))

    raise GunshotPayloadError(
        f"Unrecognized message (type={payload.get('type')!r}, keys={sorted(payload)[:8]})",
        reason="payload-unrecognized",
    )


def decode_frame(frame: str | bytes) -> Any:
    """Decode a raw text/binary frame into JSON."""
    text = frame.decode("utf-8", errors="replace") if isinstance(frame, (bytes, bytearray)) else frame
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise GunshotPayloadError(f"Frame is not JSON: {text[:64]!r}", reason="frame-json") from exc


def parse_frame(frame: str | bytes) -> InboundMessage:
    """Decode and parse one stream frame."""
    return parse_message(decode_frame(frame))
