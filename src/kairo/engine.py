"""
Focus/Break state machine for KAIRO

States:
    IDLE -> RUNNING <-> PAUSED, for either family (FOCUS or BREAK)
    Natural completion logs the session, flips the family and lands on IDLE,
    or straight into RUNNING when auto-start is on.

Threading contract:
- Every public method runs on the owning control flow (the UI or CLI loop).
- Tick threads and tip workers never touch engine state; they post messages
  to ``inbox``. Call pump() from the owning loop to process them.
- Each message carries the ClockToken of the session that produced it, so
  messages from a torn-down session are ignored.

Collaborators (all optional, failures are reported and ignored):
- cues.play(Cue)
- ambient.start(kind) / ambient.stop()
- notifier.send(title, body)
- tips: TipService
"""

from __future__ import annotations

import queue
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from .clock import ClockToken, SessionClock, TickFactory, WakeResult, now_ms
from .config import KairoSettings
from .cues import Cue
from .history import HistoryLog, SessionLogEntry
from .modes import (
    Mode,
    SessionFamily,
    build_catalog,
    clamp_index,
    default_index,
    index_of_id,
    resolve_restored_index,
    sanitize_seconds,
)
from .notifier import completion_message
from .store import PersistedSession, SessionStore
from .tips import TipService


class RunState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


Message = Tuple[Any, ...]


class FocusEngine:
    def __init__(
        self,
        settings: Optional[KairoSettings] = None,
        *,
        store: SessionStore,
        history: HistoryLog,
        clock: Callable[[], int] = now_ms,
        tick_factory: Optional[TickFactory] = None,
        cues: Optional[Any] = None,
        ambient: Optional[Any] = None,
        notifier: Optional[Any] = None,
        tips: Optional[TipService] = None,
    ) -> None:
        self.settings = settings or KairoSettings()
        self.store = store
        self.history = history
        self.cues = cues
        self.ambient = ambient
        self.notifier = notifier
        self.tips = tips
        self._now = clock
        self._tick_factory = tick_factory

        self.family: SessionFamily = SessionFamily.FOCUS
        self.run_state: RunState = RunState.IDLE
        self.catalog: List[Mode] = self._build(self.family)
        self.active_index: int = self._landing_index(self.family)

        self.inbox: "queue.Queue[Message]" = queue.Queue()
        self.last_completed: Optional[SessionLogEntry] = None
        self.tip: Optional[str] = None
        self.insight: Optional[str] = None

        self._session: Optional[SessionClock] = None
        self._session_mode: Optional[Mode] = None
        self._generation = 0
        self._completed_token: Optional[ClockToken] = None
        self._listeners: List[Callable[["FocusEngine"], None]] = []

    # ---------- Read-only view ----------
    @property
    def mode(self) -> Mode:
        if self._session_mode is not None:
            return self._session_mode
        return self.catalog[clamp_index(self.catalog, self.active_index)]

    @property
    def token(self) -> Optional[ClockToken]:
        return self._session.token if self._session is not None else None

    @property
    def remaining_seconds(self) -> int:
        if self._session is not None:
            return self._session.remaining_seconds
        return self.mode.total_seconds

    @property
    def total_seconds(self) -> int:
        return self.mode.total_seconds

    @property
    def session_ordinal(self) -> int:
        return self.history.session_ordinal(self._now())

    @property
    def status_text(self) -> str:
        if self.run_state is RunState.PAUSED:
            return "Paused"
        if self.family is SessionFamily.FOCUS:
            return "Time to focus!"
        return "Break time!"

    def on_change(self, cb: Callable[["FocusEngine"], None]) -> None:
        """Register a callback run after every state change or published tick."""
        self._listeners.append(cb)

    # ---------- Verbs ----------
    def select(self, index: int) -> bool:
        """Move the selection within the current catalog while idle."""
        if self.run_state is not RunState.IDLE:
            return False
        self.active_index = clamp_index(self.catalog, index)
        self._cue(Cue.TICK)
        self._emit()
        return True

    def start(self, index: Optional[int] = None) -> bool:
        if self.run_state is not RunState.IDLE:
            return False
        if index is not None:
            self.active_index = index
        self._begin_running()
        return True

    def pause(self) -> bool:
        if self.run_state is not RunState.RUNNING or self._session is None:
            return False
        if not self._session.pause():
            if self._session.completed:
                self.complete(self._session.token)
            return False
        self.run_state = RunState.PAUSED
        self._persist()
        self._cue(Cue.PAUSE)
        self._ambient_off()
        self._emit()
        return True

    def resume(self) -> bool:
        if self.run_state is not RunState.PAUSED or self._session is None:
            return False
        if not self._session.start():
            return False
        self.run_state = RunState.RUNNING
        self._persist()
        self._cue(Cue.START)
        self._ambient_on()
        self._emit()
        return True

    def toggle(self) -> bool:
        if self.run_state is RunState.RUNNING:
            return self.pause()
        return self.resume()

    def reset(self) -> bool:
        """Back to the full duration, paused, with nothing persisted."""
        if self.run_state is RunState.IDLE or self._session is None:
            return False
        self._session.reset()
        self.run_state = RunState.PAUSED
        self._clear_store()
        self._cue(Cue.RESET)
        self._ambient_off()
        self._emit()
        return True

    def exit(self) -> bool:
        if self.run_state is RunState.IDLE:
            return False
        self._end_session()
        if self.family is SessionFamily.BREAK:
            self._enter_family(SessionFamily.FOCUS)
        self._emit()
        return True

    def skip(self) -> bool:
        """Abandon a break without logging it and return to focus selection."""
        if self.run_state is RunState.IDLE or self.family is not SessionFamily.BREAK:
            return False
        self._end_session()
        self._enter_family(SessionFamily.FOCUS)
        self._emit()
        return True

    def switch_family(self) -> bool:
        """Flip FOCUS/BREAK. An active session restarts running in the new family."""
        was_active = self.run_state is not RunState.IDLE
        # the old family's snapshot must not survive into the new one
        self._end_session()
        self._enter_family(self.family.other())
        if was_active:
            self._begin_running()
        else:
            self._emit()
        return True

    def update_custom_durations(self, focus_seconds: object, break_seconds: object) -> None:
        """Rebuild the catalog after the custom durations change.

        The selection follows its mode id; if that mode is gone the selection
        falls back to the first entry and any session running it is ended.
        """
        self.settings.custom_focus_seconds = sanitize_seconds(focus_seconds)
        self.settings.custom_break_seconds = sanitize_seconds(break_seconds)
        current_id = self.mode.id
        self.catalog = self._build(self.family)
        idx = index_of_id(self.catalog, current_id)
        if idx is None:
            if self._session is not None:
                self._end_session()
            idx = 0
        self.active_index = idx
        self._emit()

    # ---------- Restoration ----------
    def restore(self) -> bool:
        """Resume the persisted session, if any.

        Returns True when a snapshot was adopted. A snapshot whose anchor is
        already in the past completes immediately.
        """
        snap = self.store.load()
        if snap is None:
            return False
        catalog = self._build(snap.family)
        idx = resolve_restored_index(catalog, snap.mode_id, snap.family)
        if idx is None:
            print(f"KAIRO: saved session mode {snap.mode_id} no longer exists, starting idle")
            self._clear_store()
            return False

        self._release_clock()
        self.family = snap.family
        self.catalog = catalog
        self.active_index = idx
        mode = catalog[idx]
        self._generation += 1
        token = ClockToken(mode.id, snap.family, self._generation)
        self._session = SessionClock.restore(
            token,
            mode.total_seconds,
            paused=snap.is_paused,
            remaining_seconds=snap.remaining_seconds,
            end_time_ms=snap.end_time_ms,
            deliver=self._post_wake,
            clock=self._now,
            tick_interval_s=self.settings.tick_interval_s,
            tick_factory=self._tick_factory,
        )
        self._session_mode = mode
        self.run_state = RunState.PAUSED if snap.is_paused else RunState.RUNNING

        if self._session.completed:
            # finished while the application was closed
            self.complete(token)
            return True

        self._persist()
        if self.run_state is RunState.RUNNING:
            self._ambient_on()
            self._request_tip()
        self._emit()
        return True

    # ---------- Messages ----------
    def pump(self, timeout: Optional[float] = None) -> int:
        """Process queued messages, waiting up to ``timeout`` for the first.

        Returns the number of messages handled.
        """
        try:
            if timeout:
                msg = self.inbox.get(timeout=timeout)
            else:
                msg = self.inbox.get_nowait()
        except queue.Empty:
            return 0
        handled = 0
        while True:
            self._dispatch(msg)
            handled += 1
            try:
                msg = self.inbox.get_nowait()
            except queue.Empty:
                return handled

    def handle_wake(self, token: ClockToken) -> WakeResult:
        clk = self._session
        if clk is None or token != clk.token:
            return WakeResult.STALE
        result = clk.wake(token)
        if result is WakeResult.TICK:
            self._persist()
            self._emit()
        elif result is WakeResult.COMPLETED:
            self.complete(token)
        return result

    def complete(self, token: ClockToken) -> bool:
        """Completion bookkeeping for the session identified by ``token``.

        Runs at most once per session; later calls with the same token, or
        with a token that is no longer live, do nothing.
        """
        clk = self._session
        if token == self._completed_token or clk is None or clk.token != token:
            return False
        self._completed_token = token
        clk.finish()
        mode = self.mode
        finished_family = self.family

        entry = SessionLogEntry(
            duration_minutes=mode.exact_minutes,
            completed_at_ms=self._now(),
            mode_label=mode.label,
            family=finished_family,
        )
        try:
            self.history.append(entry)
        except OSError as e:
            print(f"KAIRO: could not write history ({e})")
        self.last_completed = entry

        self._release_clock()
        self._clear_store()
        self.run_state = RunState.IDLE
        self._cue(Cue.COMPLETED)
        self._ambient_off()
        if self.settings.notifications_enabled and self.notifier is not None:
            title, body = completion_message(mode)
            self._safely("notification", self.notifier.send, title, body)
        self._request_insight(mode, finished_family, token)

        self._enter_family(finished_family.other())
        if self.settings.auto_start_timer:
            self._begin_running(keep_completion=True)
        else:
            self._emit()
        return True

    def shutdown(self) -> None:
        """Stop background work without touching the persisted snapshot."""
        self._release_clock()
        self._ambient_off()
        if self.tips is not None:
            self.tips.close()

    # ---------- Internals ----------
    def _build(self, family: SessionFamily) -> List[Mode]:
        return build_catalog(
            family, self.settings.custom_focus_seconds, self.settings.custom_break_seconds
        )

    def _landing_index(self, family: SessionFamily) -> int:
        return default_index(self.catalog, family, self.settings.standard_mode_label)

    def _enter_family(self, family: SessionFamily) -> None:
        self.family = family
        self.catalog = self._build(family)
        self.active_index = self._landing_index(family)

    def _begin_running(self, keep_completion: bool = False) -> None:
        self.active_index = clamp_index(self.catalog, self.active_index)
        mode = self.catalog[self.active_index]
        if not keep_completion:
            self.last_completed = None
            self.insight = None
        self.tip = None
        clk = self._acquire_clock(mode)
        self.run_state = RunState.RUNNING
        if not clk.start():
            # zero-length mode
            self.complete(clk.token)
            return
        self._persist()
        self._cue(Cue.START)
        self._ambient_on()
        self._request_tip()
        self._emit()

    def _acquire_clock(self, mode: Mode) -> SessionClock:
        # the old tick source is stopped before the new one exists
        self._release_clock()
        self._generation += 1
        self._session = SessionClock(
            ClockToken(mode.id, self.family, self._generation),
            mode.total_seconds,
            deliver=self._post_wake,
            clock=self._now,
            tick_interval_s=self.settings.tick_interval_s,
            tick_factory=self._tick_factory,
        )
        self._session_mode = mode
        return self._session

    def _release_clock(self) -> None:
        clk, self._session = self._session, None
        self._session_mode = None
        if clk is not None:
            clk.teardown()

    def _end_session(self) -> None:
        self._release_clock()
        self._clear_store()
        self._ambient_off()
        self.run_state = RunState.IDLE

    def _persist(self) -> None:
        clk = self._session
        if clk is None or clk.completed:
            return
        snap = PersistedSession(
            mode_id=clk.token.mode_id,
            family=self.family,
            end_time_ms=clk.end_time_ms if self.run_state is RunState.RUNNING else None,
            remaining_seconds=clk.remaining_seconds,
            total_duration_seconds=clk.total_seconds,
            is_paused=self.run_state is RunState.PAUSED,
            last_updated_ms=self._now(),
            session_ordinal=self.session_ordinal,
        )
        try:
            self.store.save(snap)
        except OSError as e:
            print(f"KAIRO: could not save session ({e})")

    def _clear_store(self) -> None:
        try:
            self.store.clear()
        except OSError as e:
            print(f"KAIRO: could not clear session ({e})")

    def _post_wake(self, token: ClockToken) -> None:
        self.inbox.put(("wake", token))

    def _dispatch(self, msg: Message) -> None:
        kind = msg[0]
        if kind == "wake":
            self.handle_wake(msg[1])
        elif kind == "tip":
            if msg[1] == self.token:
                self.tip = msg[2]
                self._emit()
        elif kind == "insight":
            if msg[1] == self._completed_token:
                self.insight = msg[2]
                self._emit()

    def _request_tip(self) -> None:
        if not self.settings.show_tips or self.tips is None or self._session is None:
            return
        token = self._session.token
        minutes = self.mode.exact_minutes
        self._safely(
            "tip", self.tips.request_tip, minutes, lambda text: self.inbox.put(("tip", token, text))
        )

    def _request_insight(self, mode: Mode, family: SessionFamily, token: ClockToken) -> None:
        if not self.settings.show_tips or self.tips is None:
            return
        self._safely(
            "insight",
            self.tips.request_insight,
            mode.exact_minutes,
            family,
            lambda text: self.inbox.put(("insight", token, text)),
        )

    def _cue(self, cue: Cue) -> None:
        if self.settings.sound_enabled and self.cues is not None:
            self._safely("cue", self.cues.play, cue)

    def _ambient_on(self) -> None:
        if self.ambient is None:
            return
        kind = self.settings.ambient_sound
        if kind and kind != "OFF":
            self._safely("ambient", self.ambient.start, kind)
        else:
            self._safely("ambient", self.ambient.stop)

    def _ambient_off(self) -> None:
        if self.ambient is not None:
            self._safely("ambient", self.ambient.stop)

    def _safely(self, what: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as e:
            print(f"KAIRO {what} error: {e}")

    def _emit(self) -> None:
        for cb in list(self._listeners):
            try:
                cb(self)
            except Exception as e:
                print(f"KAIRO listener error: {e}")


__all__ = [
    "RunState",
    "FocusEngine",
]
