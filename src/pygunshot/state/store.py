"""Deterministic in-memory event store.

This is the only component allowed to merge incoming rosters and event
batches.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from pygunshot.ingestion.normalize import timedelta_to_micros, to_epoch_micros
from pygunshot.models.event import GunshotEvent
from pygunshot.models.sensor import Sensor
from pygunshot.state.events import IngestionSource, MergeMode
from pygunshot.state.policy import is_expired, newer_than, unique_by_id

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StoreSnapshot(BaseModel):
    """Immutable view of the store at one point in time."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sensors: tuple[Sensor, ...] = Field(default_factory=tuple)
    events: tuple[GunshotEvent, ...] = Field(default_factory=tuple)
    high_water_mark: int | None = None
    roster_updated_at: datetime | None = None
    events_updated_at: datetime | None = None
    last_source: IngestionSource | None = None


class EventStore:
    """Holds the sensor roster and the known events.

    Given the same sequence of merges (and clock readings), the store always
    produces the same snapshots. Events keep their arrival order.

    Parameters
    ----------
    clock
        Wall clock used for the rolling horizon and update timestamps.
    rolling_horizon
        When set, every event merge also drops stored events older than
        ``now - rolling_horizon``.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        rolling_horizon: timedelta | None = None,
    ) -> None:
        self._clock = clock
        self._rolling_horizon = rolling_horizon
        self._sensors: tuple[Sensor, ...] = ()
        self._events: list[GunshotEvent] = []
        self._high_water_mark: int | None = None
        self._roster_updated_at: datetime | None = None
        self._events_updated_at: datetime | None = None
        self._last_source: IngestionSource | None = None

    @property
    def sensors(self) -> tuple[Sensor, ...]:
        return self._sensors

    @property
    def events(self) -> tuple[GunshotEvent, ...]:
        return tuple(self._events)

    @property
    def high_water_mark(self) -> int | None:
        """Greatest event time accepted so far (microseconds)."""
        return self._high_water_mark

    def clear(self) -> None:
        self._sensors = ()
        self._events = []
        self._high_water_mark = None
        self._roster_updated_at = None
        self._events_updated_at = None
        self._last_source = None

    def merge_roster(self, sensors: Iterable[Sensor], *, source: IngestionSource = IngestionSource.STREAM) -> None:
        """Replace the sensor roster in full."""
        self._sensors = tuple(sensors)
        self._roster_updated_at = self._clock()
        self._last_source = source
        _logger.debug("Roster replaced sensors=%d source=%s", len(self._sensors), source)

    def merge_events(
        self,
        batch: Iterable[GunshotEvent],
        mode: MergeMode,
        *,
        source: IngestionSource = IngestionSource.STREAM,
    ) -> list[GunshotEvent]:
        """Merge an event batch and return the events that were accepted."""
        incoming = list(batch)

        if mode == MergeMode.REPLACE:
            accepted, dropped = unique_by_id(incoming)
            if dropped:
                _logger.debug("Dropped %d duplicate event id(s) from snapshot", dropped)
            self._events = accepted
            self._high_water_mark = max((event.time for event in accepted), default=None)
        elif mode == MergeMode.APPEND_DEDUP:
            accepted, mark = newer_than(incoming, self._high_water_mark)
            self._events.extend(accepted)
            self._high_water_mark = mark
        else:
            raise ValueError(f"Unsupported merge mode: {mode!r}")

        now = self._clock()
        self._events_updated_at = now
        self._last_source = source
        self._prune(now)

        _logger.debug(
            "Events merged mode=%s incoming=%d accepted=%d stored=%d source=%s",
            mode,
            len(incoming),
            len(accepted),
            len(self._events),
            source,
        )
        return accepted

    def _prune(self, now: datetime) -> None:
        # The high-water mark is left alone so pruned events cannot come back.
        if self._rolling_horizon is None:
            return
        horizon_start = to_epoch_micros(now) - timedelta_to_micros(self._rolling_horizon)
        kept = [event for event in self._events if not is_expired(event.time, horizon_start)]
        if len(kept) != len(self._events):
            _logger.debug("Pruned %d event(s) past the rolling horizon", len(self._events) - len(kept))
            self._events = kept

    def newest_event(self) -> GunshotEvent | None:
        """The chronologically latest stored event (first one on ties)."""
        newest: GunshotEvent | None = None
        for event in self._events:
            if newest is None or event.time > newest.time:
                newest = event
        return newest

    def get_event(self, event_id: object) -> GunshotEvent | None:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            sensors=self._sensors,
            events=tuple(self._events),
            high_water_mark=self._high_water_mark,
            roster_updated_at=self._roster_updated_at,
            events_updated_at=self._events_updated_at,
            last_source=self._last_source,
        )
