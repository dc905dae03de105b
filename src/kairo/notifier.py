"""
Desktop notifications for KAIRO.

Sent once on natural completion, only when the user has allowed them. The
plyer call runs on a daemon thread so a slow or missing notification backend
never holds up the countdown.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from plyer import notification as plyer_notification  # type: ignore[import-not-found]

from .modes import Mode, describe_length


APP_NAME = "KAIRO"


def completion_message(mode: Mode) -> tuple[str, str]:
    return APP_NAME, f"Your {describe_length(mode)} session is complete."


class DesktopNotifier:
    def __init__(self, enabled: bool = True, timeout: int = 6, backend: Optional[Any] = None) -> None:
        self.enabled = enabled
        self.timeout = timeout
        self._backend = backend if backend is not None else plyer_notification

    def send(self, title: str, body: str) -> Optional[threading.Thread]:
        if not self.enabled:
            return None
        t = threading.Thread(target=self._deliver, args=(title, body), daemon=True)
        t.start()
        return t

    def _deliver(self, title: str, body: str) -> None:
        try:
            notify_func = getattr(self._backend, "notify", None)
            if callable(notify_func):
                notify_func(title=title, message=body, timeout=self.timeout, app_name=APP_NAME)
            else:
                print(f"{APP_NAME}: {title} - {body}")
        except Exception as e:
            # Platforms without a notification service end up here
            print(f"KAIRO notification error: {e}")


__all__ = [
    "APP_NAME",
    "completion_message",
    "DesktopNotifier",
]
