"""Streaming connection runtime.

:class:`ConnectionManager` owns one logical duplex connection to the
backend stream, an explicit state machine and a single reconnect timer. It
parses every inbound frame into a typed message and hands it to exactly one
registered handler.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Protocol

import aiohttp

from pygunshot._constants import RECONNECT_DELAY_S
from pygunshot._redact import redact_for_log
from pygunshot.exceptions import GunshotPayloadError, GunshotTransportError
from pygunshot.ingestion.stream import parse_frame
from pygunshot.models.messages import InboundMessage
from pygunshot.models.view import ConnectionState

_logger = logging.getLogger(__name__)


class StreamConnection(Protocol):
    """An open duplex stream.

    ``receive()`` returns the next text/binary frame, or ``None`` once the
    peer closed the stream. Transport errors are raised.
    """

    async def receive(self) -> str | bytes | None: ...

    async def close(self) -> None: ...


StreamConnector = Callable[[str], Awaitable[StreamConnection]]
"""Opens a :class:`StreamConnection` to a URL; raises on handshake failure."""

MessageHandler = Callable[[InboundMessage], None]
StateListener = Callable[[ConnectionState, ConnectionState], None]


class WebSocketConnection:
    """:class:`StreamConnection` over an aiohttp client WebSocket."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    async def receive(self) -> str | bytes | None:
        msg = await self._ws.receive()
        if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
            return msg.data
        if msg.type == aiohttp.WSMsgType.ERROR:
            raise GunshotTransportError(f"Stream error: {self._ws.exception()!r}")
        # CLOSE / CLOSING / CLOSED
        return None

    async def close(self) -> None:
        await self._ws.close()


def websocket_connector(
    http_session: aiohttp.ClientSession,
    *,
    headers: Mapping[str, str] | None = None,
    heartbeat: float | None = 30.0,
) -> StreamConnector:
    """Build the default connector on top of a shared aiohttp session."""

    async def connect(url: str) -> StreamConnection:
        try:
            ws = await http_session.ws_connect(url, headers=headers, heartbeat=heartbeat)
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise GunshotTransportError(f"Stream handshake to {url} failed: {exc!r}", endpoint=url) from exc
        return WebSocketConnection(ws)

    return connect


class ConnectionManager:
    """Connection state machine with constant-delay reconnects.

    Transitions::

        DISCONNECTED   -> CONNECTING      connect()
        CONNECTING     -> OPEN            handshake succeeded
        CONNECTING     -> RECONNECT_WAIT  handshake failed
        OPEN           -> RECONNECT_WAIT  stream closed or errored
        RECONNECT_WAIT -> CONNECTING      reconnect_delay elapsed
        any            -> DISCONNECTED    close()

    At most one reconnect timer is outstanding; it is cancelled whenever the
    manager leaves RECONNECT_WAIT and on close().
    """

    def __init__(
        self,
        url: str,
        connector: StreamConnector,
        *,
        reconnect_delay: float = RECONNECT_DELAY_S,
        loop: asyncio.AbstractEventLoop | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        self._url = url
        self._connector = connector
        self._reconnect_delay = reconnect_delay
        self._loop = loop
        self._on_state_change = on_state_change
        self._handler: MessageHandler | None = None
        self._state = ConnectionState.DISCONNECTED
        self._task: asyncio.Task[None] | None = None
        self._connection: StreamConnection | None = None
        self._reconnect_timer: asyncio.TimerHandle | None = None
        self._closing = False
        self._attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def url(self) -> str:
        return self._url

    @property
    def attempts(self) -> int:
        """Number of connection attempts since construction."""
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    def on_message(self, handler: MessageHandler) -> None:
        """Register the sole consumer of inbound messages (replaces any previous one)."""
        self._handler = handler

    def connect(self) -> None:
        """Start connecting. No-op unless DISCONNECTED."""
        if self._state != ConnectionState.DISCONNECTED:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._closing = False
        self._start_attempt()

    async def close(self) -> None:
        """Tear down the connection and cancel any pending reconnect."""
        self._closing = True
        self._cancel_reconnect_timer()

        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        connection = self._connection
        self._connection = None
        if connection is not None:
            await self._close_quietly(connection)

        self._set_state(ConnectionState.DISCONNECTED)

    # ------------------------------------------------------------------
    # State machine internals
    # ------------------------------------------------------------------

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state == new_state:
            return
        self._state = new_state
        _logger.debug("Stream state %s -> %s", old_state, new_state)
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(old_state, new_state)
        except Exception:
            _logger.debug("on_state_change callback failed", exc_info=True)

    def _start_attempt(self) -> None:
        assert self._loop is not None  # noqa: S101
        self._cancel_reconnect_timer()
        self._attempts += 1
        self._set_state(ConnectionState.CONNECTING)
        self._task = self._loop.create_task(self._run_attempt())

    def _enter_reconnect_wait(self) -> None:
        assert self._loop is not None  # noqa: S101
        self._set_state(ConnectionState.RECONNECT_WAIT)
        self._cancel_reconnect_timer()
        self._reconnect_timer = self._loop.call_later(self._reconnect_delay, self._on_reconnect_timer)
        _logger.info("Stream reconnect scheduled in %.1fs url=%s", self._reconnect_delay, self._url)

    def _cancel_reconnect_timer(self) -> None:
        timer = self._reconnect_timer
        self._reconnect_timer = None
        if timer is not None:
            timer.cancel()

    def _on_reconnect_timer(self) -> None:
        self._reconnect_timer = None
        if self._closing or self._state != ConnectionState.RECONNECT_WAIT:
            return
        self._start_attempt()

    async def _run_attempt(self) -> None:
        try:
            connection = await self._connector(self._url)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _logger.warning("Stream handshake failed url=%s: %s", self._url, exc)
            if not self._closing:
                self._enter_reconnect_wait()
            return

        if self._closing:
            await self._close_quietly(connection)
            return

        self._connection = connection
        self._set_state(ConnectionState.OPEN)
        _logger.info("Stream open url=%s", self._url)

        try:
            while True:
                frame = await connection.receive()
                if frame is None:
                    _logger.info("Stream closed by peer url=%s", self._url)
                    break
                self._dispatch(frame)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            _logger.warning("Stream dropped url=%s: %s", self._url, exc)
        finally:
            if self._connection is connection:
                self._connection = None
                await self._close_quietly(connection)

        if not self._closing:
            self._enter_reconnect_wait()

    def _dispatch(self, frame: str | bytes) -> None:
        try:
            message = parse_frame(frame)
        except GunshotPayloadError as exc:
            _logger.debug("Discarding malformed frame (%s): %s", exc.reason, redact_for_log(frame, max_string=200))
            return

        handler = self._handler
        if handler is None:
            _logger.debug("No message handler registered; dropping %s message", message.kind)
            return
        try:
            handler(message)
        except Exception:
            _logger.debug("Message handler failed", exc_info=True)

    @staticmethod
    async def _close_quietly(connection: StreamConnection) -> None:
        try:
            await connection.close()
        except Exception:
            _logger.debug("Stream close failed", exc_info=True)
