"""Deadline reminder scheduling.

Each open assignment gets one reminder per configured offset (24 hours and
1 hour before the deadline by default). Reminder identifiers are derived from
the assignment id plus a per-offset suffix (``<id>_24h``, ``<id>_1h``), so a
reschedule replaces the old reminder and completing an assignment can cancel
its reminders without looking them up.

How delivered reminders are presented is process-wide state: call
``configure_notification_handler`` once at startup.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from ..ics.models import AssignmentRecord
from .backends import NotificationBackend
from .exceptions import NotificationConfigError
from .models import NotificationBehavior, ReminderOffset, ScheduledNotification

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_OFFSETS: Sequence[ReminderOffset] = (
    ReminderOffset(hours=24, title_prefix="📚", body="24 hours left until the deadline"),
    ReminderOffset(hours=1, title_prefix="⚠️", body="1 hour left until the deadline!"),
)

_handler_behavior: Optional[NotificationBehavior] = None


def configure_notification_handler(
    behavior: Optional[NotificationBehavior] = None,
) -> NotificationBehavior:
    """Set how delivered reminders are presented. Call once at startup.

    Raises:
        NotificationConfigError: If the handler has already been configured
    """
    if globals()["_handler_behavior"] is not None:
        raise NotificationConfigError("Notification handler is already configured")
    globals()["_handler_behavior"] = behavior or NotificationBehavior()
    logger.debug(f"Notification handler configured: {globals()['_handler_behavior']}")
    return globals()["_handler_behavior"]


def is_notification_handler_configured() -> bool:
    return globals()["_handler_behavior"] is not None


def get_notification_handler() -> NotificationBehavior:
    """Return the configured behavior, or the defaults if none was configured."""
    behavior = globals()["_handler_behavior"]
    return behavior if behavior is not None else NotificationBehavior()


def reset_notification_handler() -> None:
    """Reset the process-wide handler (primarily for testing)."""
    globals()["_handler_behavior"] = None


def reminder_offsets_from_hours(hours: Sequence[int]) -> List[ReminderOffset]:
    """Build reminder offsets from a list of hour values, keeping the default wording where known."""
    defaults = {offset.hours: offset for offset in DEFAULT_REMINDER_OFFSETS}
    offsets = []
    for value in hours:
        if value in defaults:
            offsets.append(defaults[value])
        else:
            unit = "hour" if value == 1 else "hours"
            offsets.append(
                ReminderOffset(
                    hours=value, title_prefix="📚", body=f"{value} {unit} left until the deadline"
                )
            )
    return offsets


class NotificationScheduler:
    """Schedules and cancels deadline reminders on a backend."""

    def __init__(
        self,
        backend: NotificationBackend,
        offsets: Optional[Sequence[ReminderOffset]] = None,
    ) -> None:
        self.backend = backend
        self.offsets = list(offsets) if offsets is not None else list(DEFAULT_REMINDER_OFFSETS)

    def request_permission(self) -> bool:
        """Ask the backend for permission; errors count as a refusal."""
        try:
            return self.backend.request_permission()
        except Exception:
            logger.exception("Notification permission request failed")
            return False

    def schedule_notifications(
        self, assignment: AssignmentRecord, now: Optional[datetime] = None
    ) -> List[str]:
        """Schedule every reminder for an assignment whose trigger time is still ahead.

        Args:
            assignment: Assignment to remind about
            now: Reference time (defaults to the current UTC time)

        Returns:
            Identifiers of the reminders that were scheduled
        """
        now = now or datetime.now(timezone.utc)
        scheduled = []

        for offset in self.offsets:
            trigger_at = assignment.deadline - offset.delta
            if trigger_at <= now:
                continue

            identifier = offset.identifier_for(assignment.id)
            title = f"{offset.title_prefix} {assignment.title}".strip()
            if self._schedule_notification(identifier, title, offset.body, trigger_at):
                scheduled.append(identifier)

        return scheduled

    def _schedule_notification(
        self, identifier: str, title: str, body: str, trigger_at: datetime
    ) -> bool:
        try:
            # Replace any earlier reminder with the same id
            self.backend.cancel(identifier)
            self.backend.schedule(
                ScheduledNotification(
                    identifier=identifier, title=title, body=body, trigger_at=trigger_at
                )
            )
            logger.info(f"Reminder scheduled: {identifier} at {trigger_at.isoformat()}")
            return True
        except Exception:
            logger.exception(f"Failed to schedule reminder {identifier}")
            return False

    def cancel_notifications_for_assignment(self, assignment_id: str) -> None:
        """Cancel every reminder belonging to an assignment."""
        try:
            for offset in self.offsets:
                self.backend.cancel(offset.identifier_for(assignment_id))
            logger.info(f"Reminders cancelled for {assignment_id}")
        except Exception:
            logger.exception(f"Failed to cancel reminders for {assignment_id}")

    def cancel_all_notifications(self) -> None:
        try:
            self.backend.cancel_all()
            logger.info("All reminders cancelled")
        except Exception:
            logger.exception("Failed to cancel all reminders")

    def cancel_orphaned_notifications(self, active_ids: Iterable[str]) -> List[str]:
        """Cancel reminders whose assignment is not in ``active_ids``.

        Identifiers that do not end in a known offset suffix are left alone.

        Returns:
            Identifiers of the cancelled reminders
        """
        active = set(active_ids)
        cancelled = []
        for notification in self.get_scheduled_notifications():
            assignment_id = self._assignment_id_for(notification.identifier)
            if assignment_id is None or assignment_id in active:
                continue
            try:
                self.backend.cancel(notification.identifier)
                cancelled.append(notification.identifier)
            except Exception:
                logger.exception(f"Failed to cancel reminder {notification.identifier}")

        if cancelled:
            logger.info(f"Cancelled {len(cancelled)} reminders for assignments that left the feed")
        return cancelled

    def _assignment_id_for(self, identifier: str) -> Optional[str]:
        for offset in self.offsets:
            if identifier.endswith(offset.suffix) and len(identifier) > len(offset.suffix):
                return identifier[: -len(offset.suffix)]
        return None

    def get_scheduled_notifications(self) -> List[ScheduledNotification]:
        try:
            return self.backend.list_scheduled()
        except Exception:
            logger.exception("Failed to list scheduled reminders")
            return []

    def deliver_due(self, now: Optional[datetime] = None) -> List[str]:
        """Pop reminders that are due and render them per the configured handler.

        Returns:
            Rendered messages, one per delivered reminder
        """
        now = now or datetime.now(timezone.utc)
        behavior = get_notification_handler()

        try:
            due = self.backend.pop_due(now)
        except Exception:
            logger.exception("Failed to collect due reminders")
            return []

        messages = []
        remaining = len(self.get_scheduled_notifications()) if behavior.set_badge else 0
        for notification in due:
            message = f"{notification.title}: {notification.body}"
            if behavior.set_badge:
                message += f" [{remaining} pending]"
            if behavior.play_sound and notification.sound:
                message = "\a" + message
            if behavior.show_alert:
                messages.append(message)
            logger.info(f"Reminder delivered: {notification.identifier}")
        return messages
