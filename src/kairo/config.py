from __future__ import annotations

import math
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .modes import STANDARD_LABEL, sanitize_seconds
from .store import read_json, write_json_atomic


AMBIENT_SOUNDS = ("OFF", "DEEP_SPACE", "SERENE_FLOW")


@dataclass
class KairoSettings:
    sound_enabled: bool = True
    ambient_sound: str = "OFF"  # OFF | DEEP_SPACE | SERENE_FLOW
    show_tips: bool = True
    notifications_enabled: bool = False
    auto_start_timer: bool = False
    custom_focus_seconds: int = 0  # 0 disables
    custom_break_seconds: int = 0  # 0 disables
    standard_mode_label: str = STANDARD_LABEL
    tick_interval_s: float = 1.0
    tip_timeout_s: float = 8.0


def data_dir() -> str:
    return os.environ.get("KAIRO_HOME") or os.path.join(os.path.expanduser("~"), ".kairo")


def prefs_path(base: Optional[str] = None) -> str:
    return os.path.join(base or data_dir(), "prefs.json")


def session_path(base: Optional[str] = None) -> str:
    return os.path.join(base or data_dir(), "session.json")


def history_path(base: Optional[str] = None) -> str:
    return os.path.join(base or data_dir(), "history.json")


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Return ``value`` if usable for field ``name``, else ``default``."""
    if name in ("custom_focus_seconds", "custom_break_seconds"):
        return sanitize_seconds(value)
    if name == "ambient_sound":
        return value if value in AMBIENT_SOUNDS else default
    if isinstance(default, bool):
        return value if isinstance(value, bool) else default
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if math.isfinite(value) and value > 0:
                return float(value)
        return default
    if isinstance(default, str):
        return value if isinstance(value, str) and value else default
    return default


def load_settings(path: Optional[str] = None) -> KairoSettings:
    """Saved preferences merged over defaults; bad keys fall back individually."""
    path = path or prefs_path()
    settings = KairoSettings()
    data: Dict[str, Any] = {}
    try:
        if os.path.exists(path):
            raw = read_json(path)
            if isinstance(raw, dict):
                data = raw
    except (OSError, ValueError) as e:
        print(f"KAIRO: preferences unreadable, using defaults ({e})")
        data = {}
    for f in fields(KairoSettings):
        if f.name in data:
            default = getattr(settings, f.name)
            setattr(settings, f.name, _coerce(f.name, data[f.name], default))
    return settings


def save_settings(settings: KairoSettings, path: Optional[str] = None) -> None:
    write_json_atomic(path or prefs_path(), asdict(settings))


__all__ = [
    "AMBIENT_SOUNDS",
    "KairoSettings",
    "data_dir",
    "prefs_path",
    "session_path",
    "history_path",
    "load_settings",
    "save_settings",
]
