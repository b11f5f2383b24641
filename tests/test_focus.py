from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from pygunshot.focus import FocusController
from pygunshot.models.event import EstimatedLocation, GunshotEvent
from pygunshot.models.view import TransitionKind, ViewState

T = datetime(2026, 1, 1, tzinfo=UTC)
T_US = 1_767_225_600_000_000


class _Clock:
    def __init__(self, now: datetime = T) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _event(event_id: int, offset_s: int, lat: float = 1.0, lon: float = 1.0) -> GunshotEvent:
    return GunshotEvent(
        id=event_id,
        estimated_location=EstimatedLocation(lat=lat, lon=lon, time=T_US + offset_s * 1_000_000),
    )


def test_initial_view_state() -> None:
    focus = FocusController(initial_center=(10.0, 20.0), initial_zoom=12, fly_duration=2.0)

    view = focus.view_state
    assert view.center == (10.0, 20.0)
    assert view.zoom == 12
    assert view.transition is None
    assert view.transition_duration == 2.0
    assert focus.reacted_time is None


def test_newest_event_flies_once_per_time() -> None:
    focus = FocusController(focus_zoom=18)
    event = _event(7, 0)

    assert focus.on_newest_event(event) is True
    assert focus.view_state.center == (1.0, 1.0)
    assert focus.view_state.zoom == 18
    assert focus.consume_transition() is TransitionKind.FLY

    # Same newest event again on the next merge cycle: nothing moves.
    assert focus.on_newest_event(event) is False
    assert focus.consume_transition() is None

    # A different event with the same time does not move the view either.
    assert focus.on_newest_event(_event(8, 0, lat=5.0, lon=5.0)) is False
    assert focus.view_state.center == (1.0, 1.0)


def test_newest_event_ignores_older_and_none() -> None:
    focus = FocusController()
    focus.on_newest_event(_event(1, 10))

    assert focus.on_newest_event(None) is False
    assert focus.on_newest_event(_event(2, 5, lat=3.0, lon=3.0)) is False
    assert focus.reacted_time == T_US + 10 * 1_000_000

    assert focus.on_newest_event(_event(3, 11, lat=4.0, lon=4.0)) is True
    assert focus.view_state.center == (4.0, 4.0)


def test_manual_select_without_highlight() -> None:
    focus = FocusController(focus_zoom=18)

    view = focus.on_manual_select(42.0, -83.0)

    assert view.center == (42.0, -83.0)
    assert view.zoom == 18
    assert view.highlighted_event_id is None
    assert view.pending_highlight_until is None
    assert focus.consume_transition() is TransitionKind.FLY


def test_manual_select_snap_and_explicit_zoom() -> None:
    focus = FocusController()

    view = focus.on_manual_select(1.0, 2.0, 14, animate=False)

    assert view.zoom == 14
    assert focus.consume_transition() is TransitionKind.SNAP


def test_highlight_expires_against_clock() -> None:
    clock = _Clock()
    focus = FocusController(clock=clock, highlight_ttl=3.0)

    view = focus.on_manual_select(1.0, 1.0, None, "E1")
    assert view.highlighted_event_id == "E1"
    assert view.pending_highlight_until == T + timedelta(seconds=3)

    clock.advance(2.9)
    assert focus.view_state.highlighted_event_id == "E1"

    clock.advance(0.1)
    assert focus.view_state.highlighted_event_id is None
    assert focus.view_state.pending_highlight_until is None


def test_reselect_restarts_highlight() -> None:
    clock = _Clock()
    focus = FocusController(clock=clock, highlight_ttl=3.0)

    focus.on_manual_select(1.0, 1.0, None, "E1")
    clock.advance(2.0)
    focus.on_manual_select(1.0, 1.0, None, "E1")
    clock.advance(2.0)

    # 4 s after the first select but only 2 s after the second.
    assert focus.view_state.highlighted_event_id == "E1"

    clock.advance(1.0)
    assert focus.view_state.highlighted_event_id is None


def test_select_new_event_replaces_highlight() -> None:
    focus = FocusController()

    focus.on_manual_select(1.0, 1.0, None, "E1")
    focus.on_manual_select(2.0, 2.0, None, "E2")

    assert focus.view_state.highlighted_event_id == "E2"


def test_consume_transition_is_one_shot() -> None:
    focus = FocusController()
    focus.on_manual_select(1.0, 1.0)

    assert focus.consume_transition() is TransitionKind.FLY
    assert focus.consume_transition() is None


def test_on_change_failures_are_swallowed() -> None:
    def _boom(_view: ViewState) -> None:
        raise RuntimeError("listener exploded")

    focus = FocusController(on_change=_boom)

    view = focus.on_manual_select(1.0, 1.0)
    assert view.center == (1.0, 1.0)


@pytest.mark.asyncio
async def test_highlight_timer_clears_and_notifies() -> None:
    # Frozen clock: only the loop timer can clear the highlight.
    changes: list[ViewState] = []
    focus = FocusController(clock=lambda: T, highlight_ttl=0.05, on_change=changes.append)

    focus.on_manual_select(1.0, 1.0, None, 7)
    assert changes[-1].highlighted_event_id == 7

    await asyncio.sleep(0.15)

    assert focus.view_state.highlighted_event_id is None
    assert changes[-1].highlighted_event_id is None
    assert len(changes) == 2


@pytest.mark.asyncio
async def test_close_cancels_highlight_timer() -> None:
    changes: list[ViewState] = []
    focus = FocusController(clock=lambda: T, highlight_ttl=0.05, on_change=changes.append)

    focus.on_manual_select(1.0, 1.0, None, 7)
    focus.close()
    await asyncio.sleep(0.15)

    assert len(changes) == 1
    assert focus.view_state.highlighted_event_id == 7


def test_select_without_event_clears_highlight() -> None:
    focus = FocusController()

    focus.on_manual_select(1.0, 1.0, None, "E1")
    view = focus.on_manual_select(42.0, -83.0)

    assert view.highlighted_event_id is None
    assert view.pending_highlight_until is None


@pytest.mark.asyncio
async def test_select_without_event_cancels_highlight_timer() -> None:
    changes: list[ViewState] = []
    focus = FocusController(clock=lambda: T, highlight_ttl=0.05, on_change=changes.append)

    focus.on_manual_select(1.0, 1.0, None, 7)
    focus.on_manual_select(2.0, 2.0)
    await asyncio.sleep(0.15)

    assert len(changes) == 2
    assert focus.view_state.highlighted_event_id is None
