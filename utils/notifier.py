"""
User-visible notifications raised by upload actions.

Notifications are short messages with a display duration, kept in a
bounded in-memory history that the API exposes to the front end.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

import config

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    upload_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    duration: float = config.NOTIFICATION_DURATION_SECONDS

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(seconds=self.duration)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "message": self.message,
            "uploadId": self.upload_id,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }


class Notifier:
    """Collects notifications and mirrors each one to the log."""

    _log_levels = {
        NotificationLevel.INFO: logging.INFO,
        NotificationLevel.SUCCESS: logging.INFO,
        NotificationLevel.ERROR: logging.ERROR,
    }

    def __init__(self,
                 max_items: int = config.NOTIFICATION_HISTORY,
                 default_duration: float = config.NOTIFICATION_DURATION_SECONDS):
        self._items = deque(maxlen=max_items)
        self._lock = threading.Lock()
        self.default_duration = default_duration

    def notify(self, level: NotificationLevel, message: str,
               upload_id: Optional[str] = None, duration: Optional[float] = None) -> Notification:
        notification = Notification(
            level=level,
            message=message,
            upload_id=upload_id,
            duration=self.default_duration if duration is None else duration,
        )
        with self._lock:
            self._items.append(notification)

        logger.log(self._log_levels[level], f"[{level.value}] {message}")
        return notification

    def info(self, message: str, upload_id: Optional[str] = None) -> Notification:
        return self.notify(NotificationLevel.INFO, message, upload_id)

    def success(self, message: str, upload_id: Optional[str] = None) -> Notification:
        return self.notify(NotificationLevel.SUCCESS, message, upload_id)

    def error(self, message: str, upload_id: Optional[str] = None) -> Notification:
        return self.notify(NotificationLevel.ERROR, message, upload_id)

    def recent(self, include_expired: bool = False) -> List[Notification]:
        """Get notifications, newest last."""
        with self._lock:
            items = list(self._items)
        if include_expired:
            return items
        now = datetime.now()
        return [n for n in items if not n.is_expired(now)]

    def clear(self):
        with self._lock:
            self._items.clear()
