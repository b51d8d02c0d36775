"""Assignment list management.

``AssignmentService`` ties the collaborators together: it fetches the feed,
parses it, merges persisted completion marks into the parsed records, and
keeps deadline reminders in step with completion state.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from ..ics import AssignmentRecord, ICSError, ICSFetcher, ICSSource, parse_ics
from ..notifications import NotificationScheduler
from ..storage import AssignmentStore, StoragePersistenceError

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = (
    "Failed to retrieve assignment data. Check your network connection or the configured URL."
)


class AssignmentService:
    """Holds the current assignment list and applies user actions to it.

    Attributes:
        assignments: Parsed assignments sorted by deadline, with completion merged
        completed_ids: Persisted completion marks as of the last refresh or toggle
        loading: True while a refresh is running
        error: User-facing message from the last failed refresh, else None
        has_url: Whether a feed URL is configured
        loaded_url: URL the current list was loaded from
    """

    def __init__(
        self,
        settings: Any,
        store: AssignmentStore,
        scheduler: Optional[NotificationScheduler] = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.scheduler = scheduler

        self.assignments: List[AssignmentRecord] = []
        self.completed_ids: List[str] = []
        self.loading = False
        self.error: Optional[str] = None
        self.has_url = False
        self.loaded_url: Optional[str] = None

    @property
    def pending(self) -> List[AssignmentRecord]:
        """Assignments not yet marked complete."""
        return [a for a in self.assignments if not a.completed]

    def _get_url(self) -> Optional[str]:
        return self.store.get_ical_url() or getattr(self.settings, "ics_url", None)

    def _active_scheduler(self) -> Optional[NotificationScheduler]:
        if not getattr(self.settings, "notifications_enabled", True):
            return None
        return self.scheduler

    async def _fetch_calendar(self, url: str) -> str:
        source = ICSSource(url=url, timeout=self.settings.request_timeout)
        async with ICSFetcher(self.settings) as fetcher:
            return await fetcher.fetch_calendar_text(source)

    async def refresh(self, now: Optional[datetime] = None) -> List[AssignmentRecord]:
        """Reload assignments from the feed and bring reminders in line with it.

        On failure ``error`` is set and the previous list is kept.

        Args:
            now: Reference time for reminder scheduling

        Returns:
            The current assignment list
        """
        self.loading = True
        self.error = None

        try:
            url = self._get_url()
            if not url:
                self.has_url = False
                self.assignments = []
                self.loaded_url = None
                return self.assignments
            self.has_url = True

            self.completed_ids = self.store.get_completed_ids()
            completed = set(self.completed_ids)

            content = await self._fetch_calendar(url)
            parsed = parse_ics(content)

            self.assignments = [
                assignment.model_copy(update={"completed": assignment.id in completed})
                for assignment in parsed
            ]
            self.loaded_url = url
            logger.info(
                f"Loaded {len(self.assignments)} assignments ({len(self.pending)} pending)"
            )

            scheduler = self._active_scheduler()
            if scheduler is not None:
                scheduler.cancel_orphaned_notifications(a.id for a in self.assignments)

            if self.assignments:
                self._schedule_pending(now or datetime.now(timezone.utc))

        except ICSError as e:
            logger.error(f"Failed to refresh assignments: {e.message}")
            self.error = FETCH_ERROR_MESSAGE
        except Exception:
            logger.exception("Unexpected error refreshing assignments")
            self.error = FETCH_ERROR_MESSAGE
        finally:
            self.loading = False

        return self.assignments

    def _schedule_pending(self, now: datetime) -> None:
        scheduler = self._active_scheduler()
        if scheduler is None:
            return

        if not scheduler.request_permission():
            logger.info("Notification permission denied; reminders not scheduled")
            return

        for assignment in self.assignments:
            if not assignment.completed and assignment.deadline > now:
                scheduler.schedule_notifications(assignment, now=now)

    async def refresh_if_url_changed(self, now: Optional[datetime] = None) -> bool:
        """Refresh only when the configured URL differs from the loaded one.

        Returns:
            True if a refresh ran
        """
        if self.loading:
            return False

        stored_url = self._get_url()
        if stored_url == self.loaded_url:
            return False

        logger.debug("Feed URL changed (or first load), refreshing")
        await self.refresh(now=now)
        return True

    def toggle_complete(self, assignment_id: str, now: Optional[datetime] = None) -> bool:
        """Flip the completion mark of an assignment and update its reminders.

        Completing cancels the assignment's reminders; undoing reschedules them
        when the deadline is still ahead.

        Returns:
            The new completion state

        Raises:
            StoragePersistenceError: If the completion marks cannot be saved
        """
        completed_ids = self.store.get_completed_ids()
        was_completed = assignment_id in completed_ids

        if was_completed:
            new_ids = [i for i in completed_ids if i != assignment_id]
        else:
            new_ids = [*completed_ids, assignment_id]

        try:
            self.store.save_completed_ids(new_ids)
        except StoragePersistenceError:
            logger.exception(f"Failed to save completion state for {assignment_id}")
            raise

        self.completed_ids = new_ids
        self.assignments = [
            a.model_copy(update={"completed": not was_completed}) if a.id == assignment_id else a
            for a in self.assignments
        ]

        scheduler = self._active_scheduler()
        if scheduler is not None:
            if was_completed:
                now = now or datetime.now(timezone.utc)
                target = next((a for a in self.assignments if a.id == assignment_id), None)
                if target and target.deadline > now:
                    scheduler.schedule_notifications(target, now=now)
                    logger.debug(f"Reminders rescheduled for {assignment_id}")
            else:
                scheduler.cancel_notifications_for_assignment(assignment_id)

        return not was_completed
