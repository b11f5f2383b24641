"""Periodic HTTP pull ingestion.

This module owns the polling loop used when the backend offers no push
stream. Each tick pulls the sensor roster and the known events. A failed
pull is treated as "no data this tick": the resource is reported as empty
rather than keeping stale data, and nothing is retried before the next tick.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from pygunshot._constants import POLL_INTERVAL_S
from pygunshot._transport import Transport
from pygunshot.exceptions import GunshotPayloadError, GunshotTransportError
from pygunshot.ingestion.stream import normalize_events, parse_sensors
from pygunshot.models.event import GunshotEvent
from pygunshot.models.messages import EventBatch, InboundMessage, RosterUpdate
from pygunshot.models.sensor import Sensor

_logger = logging.getLogger(__name__)


async def fetch_sensors(transport: Transport, endpoint: str) -> tuple[Sensor, ...]:
    """Pull the sensor roster; an empty roster on any failure."""
    try:
        return parse_sensors(await transport.get_json(endpoint))
    except (GunshotTransportError, GunshotPayloadError) as exc:
        _logger.warning("Sensor pull failed, treating roster as empty: %s", exc)
        return ()


async def fetch_gunshot_events(transport: Transport, endpoint: str) -> tuple[GunshotEvent, ...]:
    """Pull the known events; no events on any failure."""
    try:
        return normalize_events(await transport.get_json(endpoint))
    except (GunshotTransportError, GunshotPayloadError) as exc:
        _logger.warning("Event pull failed, treating events as empty: %s", exc)
        return ()


class PollLoop:
    """Runs one pull immediately and then every ``interval`` seconds.

    Results are handed to ``on_message`` as typed messages, the same way the
    stream delivers them.
    """

    def __init__(
        self,
        transport: Transport,
        on_message: Callable[[InboundMessage], None],
        *,
        sensors_endpoint: str,
        events_endpoint: str,
        interval: float = POLL_INTERVAL_S,
    ) -> None:
        self._transport = transport
        self._on_message = on_message
        self._sensors_endpoint = sensors_endpoint
        self._events_endpoint = events_endpoint
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def poll_once(self) -> None:
        """Pull both resources and deliver them."""
        sensors = await fetch_sensors(self._transport, self._sensors_endpoint)
        events = await fetch_gunshot_events(self._transport, self._events_endpoint)
        self._ticks += 1
        self._deliver(RosterUpdate(sensors=sensors))
        self._deliver(EventBatch(events=events))

    def _deliver(self, message: InboundMessage) -> None:
        try:
            self._on_message(message)
        except Exception:
            _logger.debug("Poll message handler failed", exc_info=True)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                # A tick never ends the loop; report nothing for it instead.
                _logger.warning("Poll tick failed, treating sensors and events as empty", exc_info=True)
                self._ticks += 1
                self._deliver(RosterUpdate(sensors=()))
                self._deliver(EventBatch(events=()))
            await asyncio.sleep(self._interval)
