"""Render-facing state: view, connection and dashboard snapshot models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pygunshot._constants import DEFAULT_CENTER, DEFAULT_ZOOM, FLY_DURATION_S, HIGHLIGHT_RADIUS_M
from pygunshot.models.event import EventId, GunshotEvent
from pygunshot.models.sensor import Sensor
from pygunshot.state.events import WindowPolicy


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECT_WAIT = "reconnect_wait"


class TransitionKind(StrEnum):
    """How the renderer should move the map to the new view."""

    SNAP = "snap"
    FLY = "fly"


class ViewState(BaseModel):
    """Map focal point, zoom and transient highlight.

    Owned by :class:`pygunshot.focus.FocusController`; every change produces
    a new instance.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    center: tuple[float, float] = DEFAULT_CENTER
    zoom: int = DEFAULT_ZOOM
    highlighted_event_id: EventId | None = None
    pending_highlight_until: datetime | None = None
    transition: TransitionKind | None = None
    transition_duration: float = FLY_DURATION_S


class EventOverlay(BaseModel):
    """An in-window event together with its derived geometry."""

    model_config = ConfigDict(frozen=True)

    event: GunshotEvent
    confidence_radius_m: float
    highlighted: bool = False


class DashboardSnapshot(BaseModel):
    """Everything a renderer needs for one frame."""

    model_config = ConfigDict(frozen=True)

    sensors: tuple[Sensor, ...] = Field(default_factory=tuple)
    events: tuple[EventOverlay, ...] = Field(default_factory=tuple)
    view: ViewState = Field(default_factory=ViewState)
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    window_policy: WindowPolicy = WindowPolicy.LAST_1_HOUR
    generated_at: datetime
    highlight_radius_m: float = HIGHLIGHT_RADIUS_M
