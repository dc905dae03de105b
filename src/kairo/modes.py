"""
Mode catalog for KAIRO

Provides:
- The two session families (FOCUS and BREAK) and their static duration lists
- Custom-duration injection at the reserved ids 999 (focus) and 998 (break)
- Label-based lookup of the standard reference mode
- Resolution of a restored mode id against a freshly built catalog

Catalogs are plain lists rebuilt from scratch whenever the custom durations
change; Mode entries are frozen and never mutated.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence


class SessionFamily(str, Enum):
    FOCUS = "FOCUS"
    BREAK = "BREAK"

    def other(self) -> "SessionFamily":
        return SessionFamily.BREAK if self is SessionFamily.FOCUS else SessionFamily.FOCUS


@dataclass(frozen=True)
class Mode:
    id: int
    label: str
    minutes: float
    description: str
    duration_seconds: Optional[int] = None  # exact length, wins over minutes

    @property
    def total_seconds(self) -> int:
        if self.duration_seconds is not None:
            return int(self.duration_seconds)
        return int(round(self.minutes * 60))

    @property
    def exact_minutes(self) -> float:
        if self.duration_seconds:
            return self.duration_seconds / 60
        return float(self.minutes)

    @property
    def is_custom(self) -> bool:
        return self.id in CUSTOM_IDS


# ---------------------------- Static catalogs ----------------------------


FOCUS_MODES: tuple[Mode, ...] = (
    Mode(1, "01", 5, "Quick reset. A short breath to center yourself."),
    Mode(2, "02", 10, "Check emails. Clear the clutter before diving deep."),
    Mode(3, "03", 25, "Standard Pomodoro. Deep focus with high intensity."),
    Mode(4, "04", 45, "Deep Work. Extended period for complex problem solving."),
    Mode(5, "05", 60, "Power Hour. Uninterrupted flow state."),
    Mode(6, "06", 90, "Ultradian Rhythm. The maximum natural attention span."),
)

BREAK_MODES: tuple[Mode, ...] = (
    Mode(101, "B1", 5, "Short Break. Stretch and hydrate."),
    Mode(102, "B2", 15, "Long Break. Walk around or meditate."),
    Mode(103, "B3", 30, "Meal Break. Refuel and disconnect."),
)

CUSTOM_FOCUS_ID = 999
CUSTOM_BREAK_ID = 998
CUSTOM_IDS = frozenset({CUSTOM_FOCUS_ID, CUSTOM_BREAK_ID})
CUSTOM_LABEL = "C"
STANDARD_LABEL = "03"


def custom_id_for(family: SessionFamily) -> int:
    return CUSTOM_FOCUS_ID if family is SessionFamily.FOCUS else CUSTOM_BREAK_ID


def sanitize_seconds(value: object) -> int:
    """Whole seconds for a custom duration; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        seconds = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(seconds) or seconds <= 0:
        return 0
    return int(seconds)


def split_minutes(total_seconds: int) -> tuple[int, int]:
    return total_seconds // 60, total_seconds % 60


def _custom_mode(family: SessionFamily, total_seconds: int) -> Mode:
    mins, secs = split_minutes(total_seconds)
    if family is SessionFamily.FOCUS:
        desc = f"Custom {mins}m {secs}s session. Your personalized flow."
    else:
        desc = f"Custom Break: {mins}m {secs}s."
    return Mode(
        id=custom_id_for(family),
        label=CUSTOM_LABEL,
        minutes=total_seconds / 60,
        description=desc,
        duration_seconds=total_seconds,
    )


def build_catalog(
    family: SessionFamily,
    custom_focus_seconds: object = 0,
    custom_break_seconds: object = 0,
) -> List[Mode]:
    """Return the ordered selectable modes for ``family``.

    A custom entry is prepended when the family's custom duration is positive.
    Zero, negative, NaN and non-numeric values mean no custom entry.
    """
    if family is SessionFamily.FOCUS:
        modes = list(FOCUS_MODES)
        custom = sanitize_seconds(custom_focus_seconds)
    else:
        modes = list(BREAK_MODES)
        custom = sanitize_seconds(custom_break_seconds)
    if custom > 0:
        modes.insert(0, _custom_mode(family, custom))
    return modes


# ---------------------------- Lookups ----------------------------


def find_standard_index(catalog: Sequence[Mode], standard_label: str = STANDARD_LABEL) -> int:
    """Position of the standard reference mode, found by label.

    If no entry carries the label, the first non-custom entry is used instead.
    """
    for i, mode in enumerate(catalog):
        if mode.label == standard_label:
            return i
    for i, mode in enumerate(catalog):
        if not mode.is_custom:
            return i
    return 0


def default_index(
    catalog: Sequence[Mode], family: SessionFamily, standard_label: str = STANDARD_LABEL
) -> int:
    """Landing slot when entering a family: first break, or the standard focus mode."""
    if family is SessionFamily.BREAK:
        return 0
    return find_standard_index(catalog, standard_label)


def index_of_id(catalog: Sequence[Mode], mode_id: int) -> Optional[int]:
    for i, mode in enumerate(catalog):
        if mode.id == mode_id:
            return i
    return None


def resolve_restored_index(
    catalog: Sequence[Mode], mode_id: int, family: SessionFamily
) -> Optional[int]:
    """Map a persisted mode id onto ``catalog``.

    Reserved custom ids follow whichever slot currently holds the family's
    custom entry. Returns None when the id no longer resolves.
    """
    if mode_id in CUSTOM_IDS:
        return index_of_id(catalog, custom_id_for(family))
    return index_of_id(catalog, mode_id)


def clamp_index(catalog: Sequence[Mode], index: int) -> int:
    if 0 <= index < len(catalog):
        return index
    return 0


def format_clock(seconds: int) -> str:
    seconds = max(0, int(seconds))
    mm, ss = split_minutes(seconds)
    return f"{mm:02d}:{ss:02d}"


def describe_length(mode: Mode) -> str:
    """Human length used in completion messages."""
    if mode.duration_seconds is not None:
        mins, secs = split_minutes(mode.duration_seconds)
        return f"{mins}m {secs}s"
    minutes = mode.minutes
    text = str(int(minutes)) if float(minutes).is_integer() else str(minutes)
    return f"{text} minute"


__all__ = [
    "SessionFamily",
    "Mode",
    "FOCUS_MODES",
    "BREAK_MODES",
    "CUSTOM_FOCUS_ID",
    "CUSTOM_BREAK_ID",
    "CUSTOM_IDS",
    "CUSTOM_LABEL",
    "STANDARD_LABEL",
    "custom_id_for",
    "sanitize_seconds",
    "build_catalog",
    "find_standard_index",
    "default_index",
    "index_of_id",
    "resolve_restored_index",
    "clamp_index",
    "format_clock",
    "describe_length",
]
