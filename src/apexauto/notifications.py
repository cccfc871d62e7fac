"""Transient user-facing notifications ("toasts").

Notifications never block: they are recorded in a bounded history and
fanned out to subscribers (typically a UI adapter).  A subscriber that
raises is logged and skipped; it can never break the operation that
published the notification.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from apexauto._constants import NOTIFICATION_HISTORY_LIMIT

_logger = logging.getLogger(__name__)


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: NotificationLevel
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


NotificationCallback = Callable[[Notification], None]


class NotificationCenter:
    """Bounded notification history with subscriber fan-out."""

    def __init__(self, *, history_limit: int = NOTIFICATION_HISTORY_LIMIT) -> None:
        self._history: deque[Notification] = deque(maxlen=history_limit)
        self._subscribers: list[NotificationCallback] = []

    @property
    def history(self) -> list[Notification]:
        return list(self._history)

    def subscribe(self, callback: NotificationCallback) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._history.append(notification)
        for callback in list(self._subscribers):
            try:
                callback(notification)
            except Exception:
                _logger.debug("Notification subscriber failed", exc_info=True)
        return notification

    def success(self, message: str) -> Notification:
        return self.publish(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> Notification:
        return self.publish(NotificationLevel.ERROR, message)

    def warning(self, message: str) -> Notification:
        return self.publish(NotificationLevel.WARNING, message)

    def info(self, message: str) -> Notification:
        return self.publish(NotificationLevel.INFO, message)

    def of_level(self, level: NotificationLevel) -> list[Notification]:
        return [n for n in self._history if n.level == level]

    def clear(self) -> None:
        self._history.clear()
