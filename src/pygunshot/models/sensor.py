"""Acoustic sensor model."""

from __future__ import annotations

from datetime import datetime

from pydantic import field_validator

from pygunshot.ingestion.normalize import safe_int
from pygunshot.models._base import EpochMicros, GunshotBaseModel, Latitude, Longitude, micros_to_datetime


class Sensor(GunshotBaseModel):
    """A registered microphone.

    Parameters
    ----------
    mic_id : int
        Stable sensor identity.
    lat : float
        Latitude in degrees.
    lon : float
        Longitude in degrees.
    registered_at : int or None
        Registration time in epoch microseconds. ``None`` when the backend
        does not report one; such sensors are always in scope.
    raw : dict
        Full payload dict.
    """

    mic_id: int
    lat: Latitude
    lon: Longitude
    registered_at: EpochMicros | None = None

    @field_validator("mic_id", mode="before")
    @classmethod
    def _coerce_mic_id(cls, value: object) -> object:
        parsed = safe_int(value)
        return value if parsed is None else parsed

    @property
    def registered_datetime_utc(self) -> datetime | None:
        if self.registered_at is None:
            return None
        return micros_to_datetime(self.registered_at)
