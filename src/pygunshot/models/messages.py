"""Typed inbound messages.

The connection and the poll loop both translate raw payloads into these
messages; the engine only ever merges these.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pygunshot.models.event import GunshotEvent
from pygunshot.models.sensor import Sensor


class RosterUpdate(BaseModel):
    """The complete current sensor roster."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["roster"] = "roster"
    sensors: tuple[Sensor, ...] = Field(default_factory=tuple)


class EventBatch(BaseModel):
    """A batch of events, already normalized to the canonical shape."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["events"] = "events"
    events: tuple[GunshotEvent, ...] = Field(default_factory=tuple)


InboundMessage = RosterUpdate | EventBatch
