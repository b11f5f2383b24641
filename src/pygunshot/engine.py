"""High-level async engine for the live gunshot dashboard."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp

from pygunshot._connection import ConnectionManager, StreamConnector, websocket_connector
from pygunshot._transport import HttpTransport, Transport, build_headers
from pygunshot.confidence import compute_radius
from pygunshot.config import GunshotConfig
from pygunshot.exceptions import GunshotError
from pygunshot.focus import FocusController
from pygunshot.ingestion.normalize import ensure_aware
from pygunshot.ingestion.poll import PollLoop
from pygunshot.models.event import EventId
from pygunshot.models.messages import EventBatch, InboundMessage, RosterUpdate
from pygunshot.models.view import ConnectionState, DashboardSnapshot, EventOverlay, TransitionKind, ViewState
from pygunshot.state.events import IngestionSource, WindowPolicy
from pygunshot.state.store import EventStore
from pygunshot.state.window import apply_window

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[DashboardSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class GunshotEngine:
    """Event-stream synchronization engine.

    Keeps a deduplicated view of sensors and gunshot events in sync with the
    backend and derives everything a map renderer needs.

    Usage::

        async with GunshotEngine(GunshotConfig()) as engine:
            engine.subscribe(render)
            await engine.start()
            ...

    All mutation happens on the event loop the engine was entered on; every
    inbound message, poll result and timer callback is handled to completion
    before the next one.
    """

    def __init__(
        self,
        config: GunshotConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        connector: StreamConnector | None = None,
        transport: Transport | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._connector = connector
        self._transport = transport
        self._clock = clock
        self._loop: asyncio.AbstractEventLoop | None = None
        self._window_policy = config.window_policy
        self._skew_tolerance = timedelta(seconds=config.skew_tolerance)
        rolling = timedelta(seconds=config.rolling_horizon) if config.rolling_horizon is not None else None
        self._store = EventStore(clock=clock, rolling_horizon=rolling)
        self._focus = self._new_focus()
        self._connection: ConnectionManager | None = None
        self._poller: PollLoop | None = None
        self._listeners: list[SnapshotListener] = []
        self._started = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> GunshotEngine:
        self._loop = asyncio.get_running_loop()
        if self._http_session is None and (self._connector is None or self._transport is None):
            self._http_session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._loop = None

    async def start(self) -> None:
        """Reset state and start the stream and/or the poll loop."""
        if self._started:
            return
        self._loop = self._loop or asyncio.get_running_loop()
        self._store.clear()
        self._focus.close()
        self._focus = self._new_focus()

        if self._config.stream_enabled:
            self._connection = ConnectionManager(
                self._config.stream_url,
                self._resolve_connector(),
                reconnect_delay=self._config.reconnect_delay,
                loop=self._loop,
                on_state_change=self._on_connection_state,
            )
            self._connection.on_message(self._on_stream_message)
            self._connection.connect()

        if self._config.poll_enabled:
            self._poller = PollLoop(
                self._resolve_transport(),
                self._on_poll_message,
                sensors_endpoint=self._config.sensors_path,
                events_endpoint=self._config.events_path,
                interval=self._config.poll_interval,
            )
            self._poller.start()

        self._started = True
        _logger.debug(
            "Engine started stream=%s poll=%s mode=%s window=%s",
            self._config.stream_enabled,
            self._config.poll_enabled,
            self._config.merge_mode,
            self._window_policy,
        )

    async def close(self) -> None:
        """Stop the poll loop, close the stream and cancel every timer."""
        poller = self._poller
        self._poller = None
        if poller is not None:
            await poller.stop()

        connection = self._connection
        self._connection = None
        if connection is not None:
            await connection.close()

        self._focus.close()
        self._started = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _new_focus(self) -> FocusController:
        return FocusController(
            initial_center=self._config.initial_center,
            initial_zoom=self._config.initial_zoom,
            focus_zoom=self._config.focus_zoom,
            highlight_ttl=self._config.highlight_ttl,
            fly_duration=self._config.fly_duration,
            clock=self._clock,
            loop=self._loop,
            on_change=self._on_view_change,
        )

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise GunshotError("Engine not initialized. Use 'async with GunshotEngine(...) as engine:'")
        return self._http_session

    def _resolve_connector(self) -> StreamConnector:
        if self._connector is None:
            self._connector = websocket_connector(self._require_session(), headers=build_headers(self._config))
        return self._connector

    def _resolve_transport(self) -> Transport:
        if self._transport is None:
            self._transport = HttpTransport(self._config, self._require_session())
        return self._transport

    def _on_stream_message(self, message: InboundMessage) -> None:
        self.handle_message(message, source=IngestionSource.STREAM)

    def _on_poll_message(self, message: InboundMessage) -> None:
        self.handle_message(message, source=IngestionSource.POLL)

    def _on_connection_state(self, old: ConnectionState, new: ConnectionState) -> None:
        self._publish()

    def _on_view_change(self, _view: ViewState) -> None:
        self._publish()

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def handle_message(self, message: InboundMessage, *, source: IngestionSource = IngestionSource.STREAM) -> None:
        """Merge one typed message and run one focus cycle."""
        if isinstance(message, RosterUpdate):
            self._store.merge_roster(message.sensors, source=source)
            self._publish()
            return
        if isinstance(message, EventBatch):
            self._store.merge_events(message.events, self._config.merge_mode, source=source)
            # on_newest_event publishes itself when the view moves.
            if not self._focus.on_newest_event(self._store.newest_event()):
                self._publish()
            return
        raise TypeError(f"Unsupported message type: {type(message).__name__}")

    # ------------------------------------------------------------------
    # View control
    # ------------------------------------------------------------------

    @property
    def window_policy(self) -> WindowPolicy:
        return self._window_policy

    def set_window_policy(self, policy: WindowPolicy | str) -> None:
        """Switch the active window. Stored data is untouched."""
        self._window_policy = WindowPolicy.parse(policy)
        self._publish()

    def select_location(
        self,
        lat: float,
        lon: float,
        *,
        zoom: int | None = None,
        highlight_id: EventId | None = None,
        animate: bool = True,
    ) -> ViewState:
        """User clicked a sensor/event row or marker."""
        return self._focus.on_manual_select(lat, lon, zoom, highlight_id, animate=animate)

    def select_event(self, event_id: EventId) -> ViewState | None:
        """Recenter on a stored event and highlight it. ``None`` if unknown."""
        event = self._store.get_event(event_id)
        if event is None:
            return None
        return self._focus.on_manual_select(event.lat, event.lon, None, event.id)

    def consume_transition(self) -> TransitionKind | None:
        """Take the armed view transition (once)."""
        return self._focus.consume_transition()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def store(self) -> EventStore:
        return self._store

    @property
    def focus(self) -> FocusController:
        return self._focus

    @property
    def connection_state(self) -> ConnectionState:
        if self._connection is None:
            return ConnectionState.DISCONNECTED
        return self._connection.state

    def snapshot(self, now: datetime | None = None) -> DashboardSnapshot:
        """Windowed sensors/events, confidence radii and the current view."""
        at = ensure_aware(now) if now is not None else self._clock()
        sensors, events = apply_window(
            self._store.sensors,
            self._store.events,
            self._window_policy,
            at,
            skew_tolerance=self._skew_tolerance,
        )
        view = self._focus.view_state
        overlays = tuple(
            EventOverlay(
                event=event,
                confidence_radius_m=compute_radius(event),
                highlighted=view.highlighted_event_id is not None and event.id == view.highlighted_event_id,
            )
            for event in events
        )
        return DashboardSnapshot(
            sensors=tuple(sensors),
            events=overlays,
            view=view,
            connection_state=self.connection_state,
            window_policy=self._window_policy,
            generated_at=at,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call *listener* with a fresh snapshot after every state change.

        Returns a callable that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Snapshot listener failed", exc_info=True)
