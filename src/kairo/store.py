"""
Session persistence for KAIRO

Provides:
- PersistedSession: the snapshot of the in-flight session
- SessionStore: save/load/clear against a JSON file with atomic writes
- read_json/write_json_atomic helpers shared by history and preferences

Data Model (JSON):
{
  "modeId": 3, "family": "FOCUS", "endTime": 1760000000000 | null,
  "timeLeft": 1400, "totalDuration": 1500, "isPaused": true,
  "lastUpdated": 1760000000000, "sessionCount": 2
}

Exactly one of endTime/timeLeft is authoritative: timeLeft when isPaused,
endTime otherwise. Anything that does not fit this shape loads as no session.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from typing import Any, Optional

from .modes import SessionFamily


SESSION_KEY = "session"


def read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json_atomic(path: str, data: Any) -> None:
    # Atomic write: write to temp and replace
    tmp = path + ".tmp"
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(frozen=True)
class PersistedSession:
    mode_id: int
    family: SessionFamily
    end_time_ms: Optional[int]  # set iff running
    remaining_seconds: int  # authoritative iff paused
    total_duration_seconds: int
    is_paused: bool
    last_updated_ms: int
    session_ordinal: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "modeId": self.mode_id,
            "family": self.family.value,
            "endTime": self.end_time_ms,
            "timeLeft": self.remaining_seconds,
            "totalDuration": self.total_duration_seconds,
            "isPaused": self.is_paused,
            "lastUpdated": self.last_updated_ms,
            "sessionCount": self.session_ordinal,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "PersistedSession":
        """Parse a snapshot; raises ValueError when the shape is wrong."""
        if not isinstance(raw, dict):
            raise ValueError("snapshot is not an object")
        mode_id = raw.get("modeId")
        if not _is_int(mode_id):
            raise ValueError("modeId must be an integer")
        # older snapshots called the family "timerType"
        family_raw = raw.get("family", raw.get("timerType"))
        try:
            family = SessionFamily(family_raw)
        except ValueError:
            raise ValueError(f"unknown family {family_raw!r}") from None
        is_paused = raw.get("isPaused")
        if not isinstance(is_paused, bool):
            raise ValueError("isPaused must be a boolean")
        end_time = raw.get("endTime")
        if end_time is not None and not is_finite_number(end_time):
            raise ValueError("endTime must be a number or null")
        if not is_paused and end_time is None:
            raise ValueError("running snapshot without endTime")
        time_left = raw.get("timeLeft", 0)
        if not is_finite_number(time_left):
            raise ValueError("timeLeft must be a number")
        if is_paused and time_left < 0:
            raise ValueError("paused snapshot with negative timeLeft")
        total = raw.get("totalDuration", 0)
        if not is_finite_number(total) or total < 0:
            raise ValueError("totalDuration must be a non-negative number")
        last_updated = raw.get("lastUpdated", 0)
        if not is_finite_number(last_updated):
            last_updated = 0
        ordinal = raw.get("sessionCount", 1)
        if not _is_int(ordinal) or ordinal < 1:
            ordinal = 1
        return cls(
            mode_id=mode_id,
            family=family,
            end_time_ms=None if end_time is None else int(end_time),
            remaining_seconds=int(time_left),
            total_duration_seconds=int(total),
            is_paused=is_paused,
            last_updated_ms=int(last_updated),
            session_ordinal=ordinal,
        )


class SessionStore:
    """Holds at most one PersistedSession. Last write wins."""

    def __init__(self, path: str) -> None:
        self.path = path

    def save(self, session: PersistedSession) -> None:
        write_json_atomic(self.path, {SESSION_KEY: session.to_dict()})

    def load(self) -> Optional[PersistedSession]:
        """Return the stored snapshot, or None if absent or unreadable.

        Malformed files are discarded so they are not retried on every start.
        """
        if not os.path.exists(self.path):
            return None
        try:
            raw = read_json(self.path)
            if not isinstance(raw, dict):
                raise ValueError("session file is not an object")
            return PersistedSession.from_dict(raw.get(SESSION_KEY))
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            print(f"KAIRO: discarding unreadable session snapshot ({e})")
            self._discard()
            return None

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    def _discard(self) -> None:
        try:
            self.clear()
        except OSError as e:
            print(f"KAIRO: could not remove session snapshot ({e})")


__all__ = [
    "SESSION_KEY",
    "PersistedSession",
    "SessionStore",
    "read_json",
    "write_json_atomic",
    "is_finite_number",
]
