# pyright: reportPrivateUsage=false

import os
import sys
import time
from typing import Any, Callable, List

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from kairo.clock import ClockToken  # noqa: E402
from kairo.config import KairoSettings  # noqa: E402
from kairo.engine import FocusEngine  # noqa: E402
from kairo.history import HistoryLog  # noqa: E402
from kairo.store import PersistedSession, SessionStore  # noqa: E402


def local_noon_ms(year: int = 2026, month: int = 10, day: int = 16) -> int:
    return int(time.mktime((year, month, day, 12, 0, 0, 0, 0, -1))) * 1000


class FakeClock:
    """Epoch-ms clock advanced by hand."""

    def __init__(self, start_ms: int) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(round(seconds * 1000))


class ManualTick:
    def __init__(self, token: ClockToken, deliver: Callable[[ClockToken], None], interval: float) -> None:
        self.token = token
        self.deliver = deliver
        self.interval = interval
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        self.deliver(self.token)


class ManualTicks:
    """Tick factory that records every source instead of starting threads."""

    def __init__(self) -> None:
        self.created: List[ManualTick] = []

    def __call__(self, token: ClockToken, deliver: Callable[[ClockToken], None], interval: float) -> ManualTick:
        tick = ManualTick(token, deliver, interval)
        self.created.append(tick)
        return tick

    @property
    def live(self) -> List[ManualTick]:
        return [t for t in self.created if t.started and not t.stopped]


class RecordingStore(SessionStore):
    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.saves: List[PersistedSession] = []
        self.clears = 0

    def save(self, session: PersistedSession) -> None:
        self.saves.append(session)
        super().save(session)

    def clear(self) -> None:
        self.clears += 1
        super().clear()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(local_noon_ms())


@pytest.fixture
def ticks() -> ManualTicks:
    return ManualTicks()


@pytest.fixture
def make_engine(tmp_path: Any, fake_clock: FakeClock, ticks: ManualTicks) -> Callable[..., FocusEngine]:
    """Build engines sharing one data directory, like successive app launches."""

    def _make(settings: Any = None, **collaborators: Any) -> FocusEngine:
        return FocusEngine(
            settings or KairoSettings(),
            store=RecordingStore(str(tmp_path / "session.json")),
            history=HistoryLog(str(tmp_path / "history.json")),
            clock=fake_clock,
            tick_factory=ticks,
            **collaborators,
        )

    return _make
