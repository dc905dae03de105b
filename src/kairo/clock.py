"""
Session Clock for KAIRO

Features:
- Remaining time is recomputed from an absolute end time (epoch ms) on every
  wake-up, never decremented per tick, so throttled or late ticks cannot drift
- Background tick thread that only posts a wake-up message carrying its token
- Pause freezes the last computed value and drops the anchor
- Restoration from a persisted anchor, including sessions that expired while
  the application was closed
- Completion is reported exactly once per clock

Accuracy:
- Uses wall-clock epoch milliseconds (not time.monotonic) because the anchor
  must survive a process restart.
- remaining = ceil((end_time - now) / 1000), clamped at 0.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .modes import SessionFamily


def now_ms() -> int:
    return int(time.time() * 1000)


def remaining_until(end_time_ms: Optional[float], now: float) -> int:
    """Whole seconds left until ``end_time_ms``, rounded up and never negative.

    A missing or non-finite anchor counts as already elapsed.
    """
    if end_time_ms is None:
        return 0
    try:
        delta = (float(end_time_ms) - float(now)) / 1000.0
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(delta) or delta <= 0:
        return 0
    return int(math.ceil(delta))


def _clamp_seconds(value: Any) -> int:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(seconds) or seconds <= 0:
        return 0
    return int(seconds)


@dataclass(frozen=True)
class ClockToken:
    """Identity of one mode session; stale messages carry an old token."""

    mode_id: int
    family: SessionFamily
    generation: int


class WakeResult(str, Enum):
    STALE = "stale"
    TICK = "tick"
    COMPLETED = "completed"


# ---------------------------- Tick source ----------------------------


class TickSource:
    """Daemon thread posting ``token`` every ``interval_s`` seconds.

    It owns no session state; ``deliver`` is expected to enqueue the token for
    the owning control flow.
    """

    def __init__(
        self,
        token: ClockToken,
        deliver: Callable[[ClockToken], None],
        interval_s: float = 1.0,
    ) -> None:
        self.token = token
        self._deliver = deliver
        self._interval = max(0.05, float(interval_s))
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name=f"kairo-tick-{self.token.generation}", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout=self._interval * 2)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._deliver(self.token)
            except Exception as e:
                print(f"KAIRO tick delivery error: {e}")


TickFactory = Callable[[ClockToken, Callable[[ClockToken], None], float], Any]


# ---------------------------- Clock ----------------------------


class SessionClock:
    """Countdown for a single mode session.

    States:
        stopped (no anchor) -> running (anchored) -> completed
        running -> stopped via pause(); stopped -> running via start()
    """

    def __init__(
        self,
        token: ClockToken,
        total_seconds: int,
        *,
        deliver: Callable[[ClockToken], None],
        clock: Callable[[], int] = now_ms,
        tick_interval_s: float = 1.0,
        tick_factory: Optional[TickFactory] = None,
        remaining_seconds: Optional[int] = None,
    ) -> None:
        self.token = token
        self.total_seconds = _clamp_seconds(total_seconds)
        self.remaining_seconds = (
            self.total_seconds if remaining_seconds is None else _clamp_seconds(remaining_seconds)
        )
        self.end_time_ms: Optional[int] = None
        self.completed = False
        self._deliver = deliver
        self._clock = clock
        self._interval = tick_interval_s
        self._tick_factory: TickFactory = tick_factory or TickSource
        self._ticks: Optional[Any] = None

    @classmethod
    def restore(
        cls,
        token: ClockToken,
        total_seconds: int,
        *,
        paused: bool,
        remaining_seconds: Any,
        end_time_ms: Any,
        deliver: Callable[[ClockToken], None],
        clock: Callable[[], int] = now_ms,
        tick_interval_s: float = 1.0,
        tick_factory: Optional[TickFactory] = None,
    ) -> "SessionClock":
        """Rebuild a clock from persisted values.

        Paused clocks keep ``remaining_seconds`` exactly. Running clocks keep
        the persisted anchor and are started unless it has already passed, in
        which case the clock comes back completed and the caller must run
        completion handling.
        """
        clk = cls(
            token,
            total_seconds,
            deliver=deliver,
            clock=clock,
            tick_interval_s=tick_interval_s,
            tick_factory=tick_factory,
            remaining_seconds=remaining_seconds if paused else 0,
        )
        if paused:
            if clk.remaining_seconds <= 0:
                clk.finish()
            return clk
        remaining = remaining_until(end_time_ms, clock())
        if remaining <= 0:
            clk.finish()
            return clk
        clk.end_time_ms = int(end_time_ms)
        clk.remaining_seconds = remaining
        clk._spawn_ticks()
        return clk

    @property
    def running(self) -> bool:
        return self.end_time_ms is not None and not self.completed

    def start(self) -> bool:
        """Anchor the end time from the current remaining seconds and start ticking."""
        if self.completed or self.running:
            return False
        if self.remaining_seconds <= 0:
            self.finish()
            return False
        self.end_time_ms = self._clock() + self.remaining_seconds * 1000
        self._spawn_ticks()
        return True

    def pause(self) -> bool:
        if not self.running:
            return False
        self._stop_ticks()
        self.end_time_ms = None
        return True

    def reset(self) -> None:
        """Back to full duration, stopped."""
        self._stop_ticks()
        self.end_time_ms = None
        self.completed = False
        self.remaining_seconds = self.total_seconds

    def wake(self, token: ClockToken) -> WakeResult:
        """Recompute remaining time from the anchor."""
        if token != self.token or not self.running:
            return WakeResult.STALE
        remaining = remaining_until(self.end_time_ms, self._clock())
        if remaining <= 0:
            self.finish()
            return WakeResult.COMPLETED
        self.remaining_seconds = remaining
        return WakeResult.TICK

    def finish(self) -> None:
        self._stop_ticks()
        self.end_time_ms = None
        self.remaining_seconds = 0
        self.completed = True

    def teardown(self) -> None:
        self._stop_ticks()

    # ---------- Internals ----------
    def _spawn_ticks(self) -> None:
        self._stop_ticks()
        ticks = self._tick_factory(self.token, self._deliver, self._interval)
        ticks.start()
        self._ticks = ticks

    def _stop_ticks(self) -> None:
        ticks, self._ticks = self._ticks, None
        if ticks is not None:
            ticks.stop()


__all__ = [
    "now_ms",
    "remaining_until",
    "ClockToken",
    "WakeResult",
    "TickSource",
    "SessionClock",
]
