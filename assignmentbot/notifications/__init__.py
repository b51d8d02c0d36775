"""Deadline reminder scheduling."""

from .backends import InMemoryNotificationBackend, JSONFileNotificationBackend, NotificationBackend
from .exceptions import NotificationConfigError, NotificationError
from .models import NotificationBehavior, ReminderOffset, ScheduledNotification
from .scheduler import (
    DEFAULT_REMINDER_OFFSETS,
    NotificationScheduler,
    configure_notification_handler,
    get_notification_handler,
    is_notification_handler_configured,
    reminder_offsets_from_hours,
    reset_notification_handler,
)

__all__ = [
    "DEFAULT_REMINDER_OFFSETS",
    "InMemoryNotificationBackend",
    "JSONFileNotificationBackend",
    "NotificationBackend",
    "NotificationBehavior",
    "NotificationConfigError",
    "NotificationError",
    "NotificationScheduler",
    "ReminderOffset",
    "ScheduledNotification",
    "configure_notification_handler",
    "get_notification_handler",
    "is_notification_handler_configured",
    "reminder_offsets_from_hours",
    "reset_notification_handler",
]
