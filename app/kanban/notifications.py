"""User-visible notifications ("toasts")."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from app.shared.timestamps import utcnow

logger = logging.getLogger(__name__)

SYNC_FAILED_MESSAGE = "Sync failed, please refresh"


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


class NotificationCenter:
    """Collects notifications and forwards them to subscribers."""

    def __init__(self, limit: int = 50):
        self.limit = limit
        self._notifications: list[Notification] = []
        self._subscribers: list[Callable[[Notification], None]] = []

    def subscribe(self, callback: Callable[[Notification], None]) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(
        self,
        message: str,
        level: NotificationLevel = NotificationLevel.INFO,
        details: dict[str, Any] | None = None,
    ) -> Notification:
        notification = Notification(message=message, level=level, details=details or {})
        self._notifications.append(notification)
        del self._notifications[: -self.limit]

        log = logger.warning if level == NotificationLevel.ERROR else logger.info
        log("Notification: %s", message)
        for callback in list(self._subscribers):
            callback(notification)
        return notification

    def error(self, message: str, details: dict[str, Any] | None = None) -> Notification:
        return self.notify(message, NotificationLevel.ERROR, details)

    def success(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.SUCCESS)

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def latest(self) -> Notification | None:
        return self._notifications[-1] if self._notifications else None

    def clear(self) -> None:
        self._notifications.clear()
