"""Storage backends for scheduled reminders."""

import contextlib
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from .models import ScheduledNotification

logger = logging.getLogger(__name__)


class NotificationBackend(ABC):
    """Where scheduled reminders are kept until they are due."""

    def request_permission(self) -> bool:
        """Ask for permission to deliver notifications. Local backends always allow it."""
        return True

    @abstractmethod
    def schedule(self, notification: ScheduledNotification) -> None:
        """Store a reminder, replacing any with the same identifier."""

    @abstractmethod
    def cancel(self, identifier: str) -> None:
        """Remove a reminder. Unknown identifiers are ignored."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Remove every reminder."""

    @abstractmethod
    def list_scheduled(self) -> List[ScheduledNotification]:
        """Return pending reminders ordered by trigger time."""

    def pop_due(self, now: datetime) -> List[ScheduledNotification]:
        """Remove and return reminders whose trigger time has passed."""
        due = [n for n in self.list_scheduled() if n.trigger_at <= now]
        for notification in due:
            self.cancel(notification.identifier)
        return due


class InMemoryNotificationBackend(NotificationBackend):
    """Process-local backend, used for dry runs and tests."""

    def __init__(self) -> None:
        self._scheduled: Dict[str, ScheduledNotification] = {}

    def schedule(self, notification: ScheduledNotification) -> None:
        self._scheduled[notification.identifier] = notification

    def cancel(self, identifier: str) -> None:
        self._scheduled.pop(identifier, None)

    def cancel_all(self) -> None:
        self._scheduled.clear()

    def list_scheduled(self) -> List[ScheduledNotification]:
        return sorted(self._scheduled.values(), key=lambda n: n.trigger_at)


class JSONFileNotificationBackend(NotificationBackend):
    """Backend persisting reminders to a JSON file so separate CLI runs share them.

    Example:
        >>> backend = JSONFileNotificationBackend(data_dir / "reminders.json")
        >>> due = backend.pop_due(datetime.now(timezone.utc))
    """

    def __init__(self, file_path: Path) -> None:
        self.file_path = Path(file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, ScheduledNotification]:
        if not self.file_path.exists():
            return {}
        try:
            with self.file_path.open(encoding="utf-8") as f:
                raw = json.load(f)
            notifications = [ScheduledNotification.model_validate(item) for item in raw]
        except Exception:
            logger.exception(f"Error loading reminders from {self.file_path}")
            return {}
        return {n.identifier: n for n in notifications}

    def _write(self, scheduled: Dict[str, ScheduledNotification]) -> None:
        temp_file = self.file_path.with_suffix(".tmp")
        payload = [
            n.model_dump(mode="json")
            for n in sorted(scheduled.values(), key=lambda n: n.trigger_at)
        ]
        try:
            with temp_file.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.file_path)
        except Exception:
            if temp_file.exists():
                with contextlib.suppress(Exception):
                    temp_file.unlink()
            raise

    def schedule(self, notification: ScheduledNotification) -> None:
        scheduled = self._read()
        scheduled[notification.identifier] = notification
        self._write(scheduled)

    def cancel(self, identifier: str) -> None:
        scheduled = self._read()
        if scheduled.pop(identifier, None) is not None:
            self._write(scheduled)

    def cancel_all(self) -> None:
        self._write({})

    def list_scheduled(self) -> List[ScheduledNotification]:
        return sorted(self._read().values(), key=lambda n: n.trigger_at)
