"""
Completed-session history for KAIRO.

Append-only log of naturally completed sessions, oldest first. Only natural
completion appends; exit, reset and skip never do. The only mutation besides
append is clear_all().
"""

from __future__ import annotations

import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .modes import SessionFamily
from .store import is_finite_number, read_json, write_json_atomic


def start_of_day_ms(now_ms: Optional[int] = None) -> int:
    """Local midnight of the day containing ``now_ms``."""
    now_s = (now_ms if now_ms is not None else int(time.time() * 1000)) / 1000.0
    lt = time.localtime(now_s)
    start = time.mktime(
        (lt.tm_year, lt.tm_mon, lt.tm_mday, 0, 0, 0, lt.tm_wday, lt.tm_yday, -1)
    )
    return int(start) * 1000


@dataclass(frozen=True)
class SessionLogEntry:
    duration_minutes: float
    completed_at_ms: int
    mode_label: str
    family: SessionFamily
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "duration": self.duration_minutes,
            "timestamp": self.completed_at_ms,
            "modeLabel": self.mode_label,
            "type": self.family.value,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionLogEntry":
        duration, timestamp = raw["duration"], raw["timestamp"]
        if not (is_finite_number(duration) and is_finite_number(timestamp)):
            raise ValueError("duration and timestamp must be finite numbers")
        return cls(
            id=str(raw.get("id") or uuid.uuid4().hex),
            duration_minutes=float(duration),
            completed_at_ms=int(timestamp),
            mode_label=str(raw.get("modeLabel") or ""),
            family=SessionFamily(raw["type"]),
        )


class HistoryLog:
    """Ordered log of SessionLogEntry, persisted to ``path`` when given."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._entries: List[SessionLogEntry] = []
        if path and os.path.exists(path):
            self._load(path)

    def _load(self, path: str) -> None:
        try:
            raw = read_json(path)
        except (OSError, ValueError) as e:
            print(f"KAIRO: history unreadable, starting empty ({e})")
            return
        if not isinstance(raw, list):
            return
        for item in raw:
            try:
                self._entries.append(SessionLogEntry.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError, OverflowError):
                # Skip invalid entry
                continue

    def _save(self) -> None:
        if self.path:
            write_json_atomic(self.path, [e.to_dict() for e in self._entries])

    def append(self, entry: SessionLogEntry) -> None:
        self._entries.append(entry)
        self._save()

    def list_all(self) -> List[SessionLogEntry]:
        return list(self._entries)

    def clear_all(self) -> None:
        self._entries.clear()
        self._save()

    def count_since(self, epoch_ms: int, family: SessionFamily = SessionFamily.FOCUS) -> int:
        return sum(
            1 for e in self._entries if e.completed_at_ms >= epoch_ms and e.family is family
        )

    def total_minutes_since(
        self, epoch_ms: int, family: SessionFamily = SessionFamily.FOCUS
    ) -> float:
        return sum(
            e.duration_minutes
            for e in self._entries
            if e.completed_at_ms >= epoch_ms and e.family is family
        )

    def session_ordinal(self, now_ms: Optional[int] = None) -> int:
        """Today's focus completions plus one for the session in progress."""
        return self.count_since(start_of_day_ms(now_ms), SessionFamily.FOCUS) + 1

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "SessionLogEntry",
    "HistoryLog",
    "start_of_day_ms",
]
