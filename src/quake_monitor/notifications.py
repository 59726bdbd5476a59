"""Transient user-facing notifications."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Callable, Literal, Optional

DISPLAY_SECONDS = 3.0


@dataclass(frozen=True)
class Notification:
    kind: Literal["success", "error"]
    message: str
    created_at: float = field(default_factory=time.monotonic)

    @classmethod
    def success(cls, message: str) -> Notification:
        return cls("success", message)

    @classmethod
    def error(cls, message: str) -> Notification:
        return cls("error", message)


Notifier = Callable[[Notification], None]


def updated_message(new_count: int) -> str:
    if new_count > 0:
        return f"Updated: {new_count} New Log{'s' if new_count > 1 else ''}"
    return "Updated"


class NotificationCenter:
    """Holds the latest notification until it expires."""

    def __init__(self, display_seconds: float = DISPLAY_SECONDS,
                 now: Callable[[], float] = time.monotonic):
        self.display_seconds = display_seconds
        self._now = now
        self._current: Optional[Notification] = None

    def push(self, notification: Notification) -> None:
        # Displayed for display_seconds from when it was pushed
        self._current = replace(notification, created_at=self._now())

    def success(self, message: str) -> None:
        self.push(Notification.success(message))

    def error(self, message: str) -> None:
        self.push(Notification.error(message))

    @property
    def current(self) -> Optional[Notification]:
        if self._current is None:
            return None
        if self._now() - self._current.created_at >= self.display_seconds:
            self._current = None
        return self._current
