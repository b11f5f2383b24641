"""Data models for sensors, events and render state."""

from pygunshot.models._base import EpochMicros, GunshotBaseModel, micros_to_datetime, parse_micros
from pygunshot.models.event import EstimatedLocation, EventId, GunshotEvent, LegacyGunshotEvent, TriggeredMic
from pygunshot.models.messages import EventBatch, InboundMessage, RosterUpdate
from pygunshot.models.sensor import Sensor
from pygunshot.models.view import ConnectionState, DashboardSnapshot, EventOverlay, TransitionKind, ViewState

__all__ = [
    "ConnectionState",
    "DashboardSnapshot",
    "EpochMicros",
    "EstimatedLocation",
    "EventBatch",
    "EventId",
    "EventOverlay",
    "GunshotBaseModel",
    "GunshotEvent",
    "InboundMessage",
    "LegacyGunshotEvent",
    "RosterUpdate",
    "Sensor",
    "TransitionKind",
    "TriggeredMic",
    "ViewState",
    "micros_to_datetime",
    "parse_micros",
]
