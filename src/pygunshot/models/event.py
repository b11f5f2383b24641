"""Gunshot event models.

Two event shapes exist across backend versions:

* the canonical nested shape, ``{id, estimated_location: {lat, lon, time},
  triggered_mics: [...]}``, modelled by :class:`GunshotEvent`;
* the legacy flat shape, ``{id, lat, lon, timestamp, logs: [...]}``,
  modelled by :class:`LegacyGunshotEvent` and converted with
  :meth:`LegacyGunshotEvent.to_event`.

Only :class:`GunshotEvent` travels past the ingestion boundary.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from pygunshot.models._base import EpochMicros, GunshotBaseModel, Latitude, Longitude, micros_to_datetime

EventId = int | str


class TriggeredMic(GunshotBaseModel):
    """A sensor that contributed to an event's triangulation."""

    mic_id: int
    lat: Latitude
    lon: Longitude


class EstimatedLocation(GunshotBaseModel):
    """Triangulated position and time (epoch microseconds) of a shot."""

    lat: Latitude
    lon: Longitude
    time: EpochMicros


class GunshotEvent(GunshotBaseModel):
    """An immutable gunshot event.

    Parameters
    ----------
    id : int or str
        Identifier, unique within a session.
    estimated_location : EstimatedLocation
        Upstream triangulation result.
    triggered_mics : tuple of TriggeredMic
        Contributing sensors, in the order the backend reported them.
    """

    id: EventId
    estimated_location: EstimatedLocation
    triggered_mics: tuple[TriggeredMic, ...] = Field(default_factory=tuple)

    @property
    def time(self) -> int:
        return self.estimated_location.time

    @property
    def lat(self) -> float:
        return self.estimated_location.lat

    @property
    def lon(self) -> float:
        return self.estimated_location.lon

    @property
    def datetime_utc(self) -> datetime:
        return micros_to_datetime(self.time)


class LegacyGunshotEvent(GunshotBaseModel):
    """Flat event shape served by older backends and the ``/gunshot_events`` pull."""

    id: EventId
    lat: Latitude
    lon: Longitude
    timestamp: EpochMicros
    logs: tuple[TriggeredMic, ...] = Field(default_factory=tuple)

    def to_event(self) -> GunshotEvent:
        return GunshotEvent(
            id=self.id,
            estimated_location=EstimatedLocation(lat=self.lat, lon=self.lon, time=self.timestamp, raw={}),
            triggered_mics=self.logs,
            raw=self.raw,
        )
