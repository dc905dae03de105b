"""
Audio cue and ambient-track collaborators for KAIRO.

The engine only emits cue names and ambient start/stop requests; how they
sound is up to the player. The console player rings the terminal bell.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Optional, TextIO


class Cue(str, Enum):
    START = "start"
    PAUSE = "pause"
    RESET = "reset"
    COMPLETED = "completed"
    TICK = "tick"


class BellCuePlayer:
    """Rings the terminal bell for cues that need attention."""

    audible = frozenset({Cue.START, Cue.COMPLETED})

    def __init__(self, enabled: bool = True, stream: Optional[TextIO] = None) -> None:
        self.enabled = enabled
        self._stream = stream

    def play(self, cue: Cue) -> None:
        if not self.enabled or cue not in self.audible:
            return
        stream = self._stream or sys.stdout
        stream.write("\a")
        stream.flush()


class NullAmbient:
    """Ambient controller for environments without audio output."""

    def __init__(self) -> None:
        self.current: Optional[str] = None

    def start(self, track_kind: str) -> None:
        self.current = track_kind

    def stop(self) -> None:
        self.current = None


__all__ = [
    "Cue",
    "BellCuePlayer",
    "NullAmbient",
]
