"""Map focus and highlight control.

:class:`FocusController` owns the :class:`~pygunshot.models.view.ViewState`.
It moves the viewport when a user selects a row/marker or when a genuinely
newer event arrives, and keeps a transient highlight on the selected event.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pygunshot._constants import DEFAULT_CENTER, DEFAULT_ZOOM, FLY_DURATION_S, FOCUS_ZOOM, HIGHLIGHT_TTL_S
from pygunshot.models.event import EventId, GunshotEvent
from pygunshot.models.view import TransitionKind, ViewState

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class FocusController:
    """Decides where the map looks.

    Two inputs move the view:

    * :meth:`on_manual_select` for user clicks, which may also highlight an
      event for ``highlight_ttl`` seconds;
    * :meth:`on_newest_event`, called once per merge cycle, which flies to an
      event only when it is strictly newer than the last one reacted to.

    Every move arms a transition that the renderer takes exactly once through
    :meth:`consume_transition`.

    Highlight expiry is enforced twice: a loop timer clears the highlight (and
    fires ``on_change``) when an event loop is running, and :attr:`view_state`
    drops an expired highlight against the clock on read.
    """

    def __init__(
        self,
        *,
        initial_center: tuple[float, float] = DEFAULT_CENTER,
        initial_zoom: int = DEFAULT_ZOOM,
        focus_zoom: int = FOCUS_ZOOM,
        highlight_ttl: float = HIGHLIGHT_TTL_S,
        fly_duration: float = FLY_DURATION_S,
        clock: Callable[[], datetime] = _utcnow,
        loop: asyncio.AbstractEventLoop | None = None,
        on_change: Callable[[ViewState], None] | None = None,
    ) -> None:
        self._focus_zoom = focus_zoom
        self._highlight_ttl = highlight_ttl
        self._clock = clock
        self._loop = loop
        self._on_change = on_change
        self._state = ViewState(
            center=(float(initial_center[0]), float(initial_center[1])),
            zoom=initial_zoom,
            transition_duration=fly_duration,
        )
        self._reacted_time: int | None = None
        self._highlight_timer: asyncio.TimerHandle | None = None

    @property
    def view_state(self) -> ViewState:
        self._expire_highlight(self._clock())
        return self._state

    @property
    def reacted_time(self) -> int | None:
        """High-water mark of event times this controller has flown to."""
        return self._reacted_time

    def on_manual_select(
        self,
        lat: float,
        lon: float,
        zoom: int | None = None,
        highlight_id: EventId | None = None,
        *,
        animate: bool = True,
    ) -> ViewState:
        """Recenter on a user-selected sensor or event.

        With ``highlight_id`` the event is highlighted for ``highlight_ttl``
        seconds; without it any current highlight is cleared.
        """
        update: dict[str, object] = {
            "center": (float(lat), float(lon)),
            "zoom": self._focus_zoom if zoom is None else zoom,
            "transition": TransitionKind.FLY if animate else TransitionKind.SNAP,
        }
        if highlight_id is not None:
            until = self._clock() + timedelta(seconds=self._highlight_ttl)
            update["highlighted_event_id"] = highlight_id
            update["pending_highlight_until"] = until
            self._arm_highlight_timer()
        else:
            update["highlighted_event_id"] = None
            update["pending_highlight_until"] = None
            self._cancel_highlight_timer()
        self._state = self._state.model_copy(update=update)
        _logger.debug("Manual select center=%s zoom=%s highlight=%s", update["center"], update["zoom"], highlight_id)
        self._notify()
        return self._state

    def on_newest_event(self, event: GunshotEvent | None) -> bool:
        """Fly to *event* if it is newer than anything reacted to so far.

        Returns ``True`` when the view moved.
        """
        if event is None:
            return False
        if self._reacted_time is not None and event.time <= self._reacted_time:
            return False
        self._reacted_time = event.time
        self._state = self._state.model_copy(
            update={
                "center": (event.lat, event.lon),
                "zoom": self._focus_zoom,
                "transition": TransitionKind.FLY,
            }
        )
        _logger.debug("Flying to newest event id=%s time=%s", event.id, event.time)
        self._notify()
        return True

    def consume_transition(self) -> TransitionKind | None:
        """Return the armed transition and disarm it."""
        transition = self._state.transition
        if transition is not None:
            self._state = self._state.model_copy(update={"transition": None})
        return transition

    def clear_highlight(self) -> None:
        self._cancel_highlight_timer()
        if self._state.highlighted_event_id is None and self._state.pending_highlight_until is None:
            return
        self._state = self._state.model_copy(update={"highlighted_event_id": None, "pending_highlight_until": None})
        self._notify()

    def close(self) -> None:
        """Cancel the highlight timer."""
        self._cancel_highlight_timer()

    def _expire_highlight(self, now: datetime) -> None:
        until = self._state.pending_highlight_until
        if until is not None and now >= until:
            self._state = self._state.model_copy(update={"highlighted_event_id": None, "pending_highlight_until": None})

    def _arm_highlight_timer(self) -> None:
        self._cancel_highlight_timer()
        loop = self._loop or _running_loop()
        if loop is None:
            return
        self._highlight_timer = loop.call_later(self._highlight_ttl, self._on_highlight_timer)

    def _cancel_highlight_timer(self) -> None:
        timer = self._highlight_timer
        self._highlight_timer = None
        if timer is not None:
            timer.cancel()

    def _on_highlight_timer(self) -> None:
        self._highlight_timer = None
        self.clear_highlight()

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self._state)
        except Exception:
            _logger.debug("Focus on_change callback failed", exc_info=True)
