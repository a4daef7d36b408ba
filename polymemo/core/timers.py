from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Dict, Optional, Tuple

from PySide6.QtCore import QObject, Qt, QTimer

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
ExpireCallback = Callable[[], None]


class TimerKind(Enum):
    MEMORIZE = "memorize"
    RECALL = "recall"


@dataclass(frozen=True)
class TimerSnapshot:
    """Remaining time of a paused countdown and which countdown it was."""

    NONE: ClassVar["TimerSnapshot"]

    remaining_seconds: int = 0
    kind: Optional[TimerKind] = None

    @property
    def is_empty(self) -> bool:
        return self.kind is None


TimerSnapshot.NONE = TimerSnapshot()


class Countdown:
    """Handle for one running countdown.

    ``advance`` performs a single tick and is wired to the owning ``QTimer``.
    Once expired or cancelled the handle is inert.
    """

    def __init__(
        self,
        kind: TimerKind,
        duration_seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
        timer: Optional[QTimer] = None,
    ) -> None:
        self._kind = kind
        self._remaining = duration_seconds
        self._on_tick = on_tick
        self._on_expire = on_expire
        self._timer = timer
        self._cancelled = False
        self._expired = False

    @property
    def kind(self) -> TimerKind:
        return self._kind

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def is_active(self) -> bool:
        return not (self._cancelled or self._expired)

    def advance(self) -> None:
        if not self.is_active:
            logger.debug("Dropping tick for inactive %s countdown", self._kind.value)
            return
        self._remaining = max(0, self._remaining - 1)
        self._on_tick(self._remaining)
        if self._remaining > 0:
            return
        if self._cancelled:
            # Cancelled from inside on_tick(0); the pending expiry travels in the snapshot.
            return
        self._expired = True
        self._release()
        self._on_expire()

    def cancel(self) -> None:
        if not self.is_active:
            return
        self._cancelled = True
        self._release()

    def _release(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None

    def __repr__(self) -> str:
        state = "active" if self.is_active else ("expired" if self._expired else "cancelled")
        return f"Countdown({self._kind.value}, remaining={self._remaining}, {state})"


class TimerController(QObject):
    """Runs the memorize and recall countdowns on a fixed tick.

    At most one countdown per ``TimerKind`` is live: starting a new one cancels
    the previous one of that kind, so a kind can never tick or expire twice.
    """

    def __init__(self, parent: Optional[QObject] = None, interval_ms: int = 1000) -> None:
        super().__init__(parent)
        self._interval_ms = max(1, interval_ms)
        self._active: Dict[TimerKind, Countdown] = {}
        self._callbacks: Dict[TimerKind, Tuple[TickCallback, ExpireCallback]] = {}

    def start_countdown(
        self,
        kind: TimerKind,
        duration_seconds: int,
        on_tick: TickCallback,
        on_expire: ExpireCallback,
    ) -> Countdown:
        if duration_seconds < 0:
            logger.warning("Negative %s duration %d; clamping to 0", kind.value, duration_seconds)
            duration_seconds = 0
        self.cancel(self._active.get(kind))

        timer = QTimer(self)
        timer.setInterval(self._interval_ms)
        timer.setTimerType(Qt.PreciseTimer)
        countdown = Countdown(kind, duration_seconds, on_tick, on_expire, timer)
        timer.timeout.connect(countdown.advance)

        self._active[kind] = countdown
        self._callbacks[kind] = (on_tick, on_expire)
        timer.start()
        logger.debug("Started %s countdown: %ds", kind.value, duration_seconds)
        return countdown

    def cancel(self, handle: Optional[Countdown]) -> None:
        if handle is None:
            return
        handle.cancel()
        if self._active.get(handle.kind) is handle:
            del self._active[handle.kind]

    def cancel_all(self) -> None:
        for handle in list(self._active.values()):
            self.cancel(handle)

    def active(self, kind: TimerKind) -> Optional[Countdown]:
        handle = self._active.get(kind)
        if handle is not None and handle.is_active:
            return handle
        return None

    def snapshot(self, handle: Optional[Countdown]) -> TimerSnapshot:
        """Capture ``handle``'s remaining time. Expired handles yield ``NONE``."""
        if handle is None or handle.expired:
            return TimerSnapshot.NONE
        return TimerSnapshot(remaining_seconds=handle.remaining, kind=handle.kind)

    def resume(self, snapshot: TimerSnapshot) -> Optional[Countdown]:
        """Restart the countdown captured in ``snapshot``.

        A snapshot taken at 0 seconds runs the deferred expiry callback instead
        of starting an empty countdown; ``None`` is returned in that case.
        """
        if snapshot.is_empty:
            return None
        callbacks = self._callbacks.get(snapshot.kind)
        if callbacks is None:
            logger.warning("No %s countdown was ever started; ignoring snapshot", snapshot.kind.value)
            return None
        on_tick, on_expire = callbacks
        if snapshot.remaining_seconds <= 0:
            on_expire()
            return None
        return self.start_countdown(snapshot.kind, snapshot.remaining_seconds, on_tick, on_expire)


def format_countdown(seconds: int) -> str:
    """Format seconds as ``m:ss`` for the countdown label."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"
