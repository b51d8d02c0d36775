"""Notification-specific exceptions."""


class NotificationError(Exception):
    """Base exception for notification errors."""


class NotificationConfigError(NotificationError):
    """Raised when the process-wide notification handler is configured more than once."""
