"""
Tip and insight text for KAIRO.

A generator callable (prompt -> text) may be plugged in; without one, or when
it fails, times out or returns nothing, a static fallback is used. Requests
made through request_tip/request_insight return immediately and hand the text
to a callback from a worker thread.
"""

from __future__ import annotations

import random
import threading
import time
from typing import Callable, Optional

from .modes import SessionFamily


FALLBACK_TIPS = [
    "Find your center.",
    "Silence is the canvas of thought.",
    "Breathe in focus, breathe out distraction.",
    "One step at a time.",
    "Flow like water.",
    "Be present in this moment.",
    "Stillness speaks.",
    "Deep work, deep life.",
    "The obstacle is the way.",
    "Focus is the art of subtraction.",
    "Simplicity is the ultimate sophistication.",
    "Don't watch the clock; do what it does.",
    "Energy flows where attention goes.",
    "Quiet the mind, and the soul will speak.",
    "Clarity comes from action.",
    "Respect the process.",
    "Now is the only time there is.",
    "Mastery requires patience.",
    "Inhale confidence, exhale doubt.",
    "Your focus determines your reality.",
]

FALLBACK_INSIGHT = "Great session. Consistency is the path to mastery."

TextGenerator = Callable[[str], Optional[str]]


def time_of_day(hour: int) -> str:
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


def tip_prompt(duration_minutes: float) -> str:
    return (
        "Give me a very short, abstract, and motivating sentence about focus for a "
        f"{duration_minutes:g} minute session. Max 15 words. Keep it mysterious and zen-like."
    )


def insight_prompt(duration_minutes: float, family: SessionFamily, hour: int) -> str:
    return (
        f"The user just finished a {duration_minutes:g} minute {family.value} session in the "
        f"{time_of_day(hour)}. Give a single, short, insightful sentence (max 15 words) to "
        "close the session. It should be encouraging, slightly philosophical, or scientific "
        "regarding productivity."
    )


class TipService:
    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        timeout_s: float = 8.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.generator = generator
        self.timeout_s = timeout_s
        self._rng = rng or random.Random()
        self._closed = False

    def fetch_tip(self, duration_minutes: float) -> str:
        text = self._generate(tip_prompt(duration_minutes))
        return text or self._rng.choice(FALLBACK_TIPS)

    def fetch_insight(
        self, duration_minutes: float, family: SessionFamily, hour: Optional[int] = None
    ) -> str:
        if hour is None:
            hour = time.localtime().tm_hour
        text = self._generate(insight_prompt(duration_minutes, family, hour))
        return text or FALLBACK_INSIGHT

    def request_tip(self, duration_minutes: float, callback: Callable[[str], None]) -> threading.Thread:
        return self._in_background(lambda: self.fetch_tip(duration_minutes), callback)

    def request_insight(
        self, duration_minutes: float, family: SessionFamily, callback: Callable[[str], None]
    ) -> threading.Thread:
        return self._in_background(lambda: self.fetch_insight(duration_minutes, family), callback)

    def close(self) -> None:
        """Stop calling the generator; later requests get fallbacks."""
        self._closed = True

    # ---------- Internals ----------
    def _generate(self, prompt: str) -> Optional[str]:
        if self.generator is None or self._closed:
            return None
        result: list = []

        def _call() -> None:
            try:
                result.append(self.generator(prompt))
            except Exception as e:
                print(f"KAIRO tip generation failed, using fallback: {e!r}")

        # must not keep the interpreter alive
        worker = threading.Thread(target=_call, name="kairo-tips", daemon=True)
        worker.start()
        worker.join(self.timeout_s)
        if worker.is_alive():
            print(f"KAIRO tip generation timed out after {self.timeout_s}s, using fallback")
            return None
        text = result[0] if result else None
        if not isinstance(text, str):
            return None
        return text.strip() or None

    def _in_background(self, produce: Callable[[], str], callback: Callable[[str], None]) -> threading.Thread:
        def _do() -> None:
            try:
                callback(produce())
            except Exception as e:
                print(f"KAIRO tip delivery error: {e}")

        t = threading.Thread(target=_do, daemon=True)
        t.start()
        return t


__all__ = [
    "FALLBACK_TIPS",
    "FALLBACK_INSIGHT",
    "TipService",
    "time_of_day",
    "tip_prompt",
    "insight_prompt",
]
