"""Tests for polymemo.core.timers – countdowns, snapshots and resume."""

from __future__ import annotations

import time
from typing import List

import pytest
from PySide6.QtCore import QCoreApplication, Qt

from polymemo.core.timers import (
    Countdown,
    TimerController,
    TimerKind,
    TimerSnapshot,
    format_countdown,
)


class Recorder:
    def __init__(self) -> None:
        self.ticks: List[int] = []
        self.expired = 0

    def on_tick(self, remaining: int) -> None:
        self.ticks.append(remaining)

    def on_expire(self) -> None:
        self.expired += 1


@pytest.fixture()
def controller() -> TimerController:
    return TimerController()


@pytest.fixture()
def rec() -> Recorder:
    return Recorder()


# ---------------------------------------------------------------------------
# Countdown ticking
# ---------------------------------------------------------------------------

class TestCountdown:
    def test_ticks_down_then_expires_once(self, controller, rec):
        h = controller.start_countdown(TimerKind.MEMORIZE, 3, rec.on_tick, rec.on_expire)
        for _ in range(3):
            h.advance()
        assert rec.ticks == [2, 1, 0]
        assert rec.expired == 1
        assert h.expired
        assert not h.is_active

    def test_inert_after_expiry(self, controller, rec):
        h = controller.start_countdown(TimerKind.RECALL, 1, rec.on_tick, rec.on_expire)
        h.advance()
        h.advance()
        h.advance()
        assert rec.ticks == [0]
        assert rec.expired == 1

    def test_zero_duration_still_ticks_and_expires(self, controller, rec):
        h = controller.start_countdown(TimerKind.MEMORIZE, 0, rec.on_tick, rec.on_expire)
        assert h.remaining == 0
        h.advance()
        assert rec.ticks == [0]
        assert rec.expired == 1

    def test_negative_duration_clamped(self, controller, rec):
        h = controller.start_countdown(TimerKind.MEMORIZE, -5, rec.on_tick, rec.on_expire)
        assert h.remaining == 0

    def test_tick_precedes_expire(self, controller):
        order: List[str] = []
        h = controller.start_countdown(
            TimerKind.RECALL, 1, lambda r: order.append(f"tick{r}"), lambda: order.append("expire")
        )
        h.advance()
        assert order == ["tick0", "expire"]

    def test_standalone_countdown_without_qtimer(self, rec):
        h = Countdown(TimerKind.RECALL, 2, rec.on_tick, rec.on_expire)
        h.advance()
        h.advance()
        assert rec.ticks == [1, 0]
        assert rec.expired == 1


# ---------------------------------------------------------------------------
# Cancellation and replacement
# ---------------------------------------------------------------------------

class TestCancellation:
    def test_cancel_stops_ticks(self, controller, rec):
        h = controller.start_countdown(TimerKind.MEMORIZE, 5, rec.on_tick, rec.on_expire)
        controller.cancel(h)
        h.advance()
        assert rec.ticks == []
        assert controller.active(TimerKind.MEMORIZE) is None

    def test_new_timer_of_same_kind_cancels_previous(self, controller):
        first, second = Recorder(), Recorder()
        old = controller.start_countdown(TimerKind.RECALL, 1, first.on_tick, first.on_expire)
        new = controller.start_countdown(TimerKind.RECALL, 1, second.on_tick, second.on_expire)
        old.advance()
        new.advance()
        assert first.expired == 0
        assert second.expired == 1
        assert not old.is_active

    def test_kinds_are_independent(self, controller, rec):
        m = controller.start_countdown(TimerKind.MEMORIZE, 5, rec.on_tick, rec.on_expire)
        r = controller.start_countdown(TimerKind.RECALL, 5, rec.on_tick, rec.on_expire)
        assert controller.active(TimerKind.MEMORIZE) is m
        assert controller.active(TimerKind.RECALL) is r

    def test_cancel_all(self, controller, rec):
        m = controller.start_countdown(TimerKind.MEMORIZE, 5, rec.on_tick, rec.on_expire)
        r = controller.start_countdown(TimerKind.RECALL, 5, rec.on_tick, rec.on_expire)
        controller.cancel_all()
        assert not m.is_active
        assert not r.is_active

    def test_cancel_none_is_noop(self, controller):
        controller.cancel(None)

    def test_cancel_during_final_tick_suppresses_expiry(self, controller, rec):
        holder = {}

        def on_tick(remaining: int) -> None:
            rec.on_tick(remaining)
            if remaining == 0:
                holder["snap"] = controller.snapshot(holder["h"])
                controller.cancel(holder["h"])

        holder["h"] = controller.start_countdown(TimerKind.MEMORIZE, 1, on_tick, rec.on_expire)
        holder["h"].advance()
        assert rec.expired == 0
        assert holder["snap"] == TimerSnapshot(0, TimerKind.MEMORIZE)


# ---------------------------------------------------------------------------
# Snapshot / resume
# ---------------------------------------------------------------------------

class TestSnapshotResume:
    def test_snapshot_is_idempotent(self, controller, rec):
        h = controller.start_countdown(TimerKind.RECALL, 7, rec.on_tick, rec.on_expire)
        h.advance()
        assert controller.snapshot(h) == controller.snapshot(h) == TimerSnapshot(6, TimerKind.RECALL)

    def test_snapshot_of_none_is_neutral(self, controller):
        assert controller.snapshot(None) is TimerSnapshot.NONE
        assert TimerSnapshot.NONE.is_empty

    def test_snapshot_of_expired_is_neutral(self, controller, rec):
        h = controller.start_countdown(TimerKind.RECALL, 0, rec.on_tick, rec.on_expire)
        h.advance()
        assert controller.snapshot(h).is_empty

    def test_resume_restarts_with_remaining(self, controller, rec):
        h = controller.start_countdown(TimerKind.MEMORIZE, 5, rec.on_tick, rec.on_expire)
        h.advance()
        h.advance()
        snap = controller.snapshot(h)
        controller.cancel(h)
        resumed = controller.resume(snap)
        assert resumed is not None
        assert resumed.remaining == 3
        assert resumed.kind is TimerKind.MEMORIZE
        for _ in range(3):
            resumed.advance()
        assert rec.ticks == [4, 3, 2, 1, 0]
        assert rec.expired == 1

    def test_resume_at_zero_fires_expiry(self, controller, rec):
        controller.start_countdown(TimerKind.RECALL, 4, rec.on_tick, rec.on_expire)
        controller.cancel_all()
        assert controller.resume(TimerSnapshot(0, TimerKind.RECALL)) is None
        assert rec.expired == 1

    def test_resume_empty_snapshot_is_noop(self, controller):
        assert controller.resume(TimerSnapshot.NONE) is None

    def test_resume_unknown_kind_is_ignored(self, controller):
        assert controller.resume(TimerSnapshot(3, TimerKind.RECALL)) is None


# ---------------------------------------------------------------------------
# Driven by the Qt event loop
# ---------------------------------------------------------------------------

def spin_for(seconds: float, until=lambda: False) -> None:
    deadline = time.monotonic() + seconds
    while not until() and time.monotonic() < deadline:
        QCoreApplication.processEvents()
        time.sleep(0.002)


class TestEventLoop:
    def test_uses_precise_timer(self, controller, rec):
        h = controller.start_countdown(TimerKind.MEMORIZE, 3, rec.on_tick, rec.on_expire)
        assert h._timer.timerType() == Qt.PreciseTimer

    def test_loop_ticks_and_expires_once(self, rec):
        controller = TimerController(interval_ms=10)
        controller.start_countdown(TimerKind.MEMORIZE, 3, rec.on_tick, rec.on_expire)
        spin_for(3.0, until=lambda: rec.expired > 0)
        spin_for(0.1)
        assert rec.ticks == [2, 1, 0]
        assert rec.expired == 1
        assert controller.active(TimerKind.MEMORIZE) is None

    def test_replaced_timer_never_fires_on_loop(self):
        controller = TimerController(interval_ms=10)
        first, second = Recorder(), Recorder()
        controller.start_countdown(TimerKind.RECALL, 2, first.on_tick, first.on_expire)
        controller.start_countdown(TimerKind.RECALL, 2, second.on_tick, second.on_expire)
        spin_for(3.0, until=lambda: second.expired > 0)
        spin_for(0.1)
        assert first.ticks == []
        assert first.expired == 0
        assert second.ticks == [1, 0]
        assert second.expired == 1


class TestFormatCountdown:
    @pytest.mark.parametrize(
        "seconds, text",
        [(0, "0:00"), (5, "0:05"), (60, "1:00"), (125, "2:05"), (-3, "0:00")],
    )
    def test_format(self, seconds: int, text: str):
        assert format_countdown(seconds) == text
