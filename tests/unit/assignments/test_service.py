"""Unit tests for the assignment service."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from assignmentbot.assignments import FETCH_ERROR_MESSAGE, AssignmentService
from assignmentbot.ics.exceptions import ICSNetworkError
from assignmentbot.notifications import InMemoryNotificationBackend, NotificationScheduler
from assignmentbot.storage import AssignmentStore, StoragePersistenceError
from tests.fixtures.mock_ics_data import ICSDataFactory

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
FEED_URL = "https://lms.example.edu/calendar/export.ics?token=secret"


@pytest.fixture
def store(test_settings):
    return AssignmentStore(test_settings.data_dir)


@pytest.fixture
def backend():
    return InMemoryNotificationBackend()


@pytest.fixture
def service(test_settings, store, backend):
    return AssignmentService(test_settings, store, NotificationScheduler(backend))


@pytest.fixture
def mock_fetch():
    with patch.object(AssignmentService, "_fetch_calendar", new_callable=AsyncMock) as fetch:
        fetch.return_value = ICSDataFactory.create_course_calendar()
        yield fetch


def scheduled_ids(backend):
    return sorted(n.identifier for n in backend.list_scheduled())


class TestRefresh:
    """Test loading assignments from the feed."""

    @pytest.mark.asyncio
    async def test_refresh_when_no_url_then_empty_without_fetch(self, service, mock_fetch):
        assignments = await service.refresh(now=NOW)

        assert assignments == []
        assert service.has_url is False
        assert service.error is None
        mock_fetch.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.critical_path
    async def test_refresh_merges_completion_and_schedules_pending(
        self, service, store, backend, mock_fetch
    ):
        store.save_ical_url(FEED_URL)
        store.save_completed_ids(["1002@lms.example.edu"])

        assignments = await service.refresh(now=NOW)

        mock_fetch.assert_awaited_once_with(FEED_URL)
        assert [a.id for a in assignments] == [
            "1001@lms.example.edu",
            "1002@lms.example.edu",
            "1003@lms.example.edu",
        ]
        assert [a.completed for a in assignments] == [False, True, False]
        assert [a.id for a in service.pending] == [
            "1001@lms.example.edu",
            "1003@lms.example.edu",
        ]
        assert service.has_url is True
        assert service.loaded_url == FEED_URL
        assert service.loading is False
        assert service.error is None
        # The first deadline is under 24h away, so only its 1h reminder is ahead
        assert scheduled_ids(backend) == [
            "1001@lms.example.edu_1h",
            "1003@lms.example.edu_1h",
            "1003@lms.example.edu_24h",
        ]

    @pytest.mark.asyncio
    async def test_refresh_when_only_settings_url_then_used(
        self, service, test_settings, mock_fetch
    ):
        test_settings.ics_url = "https://fallback.example.edu/feed.ics"

        await service.refresh(now=NOW)

        mock_fetch.assert_awaited_once_with("https://fallback.example.edu/feed.ics")
        assert len(service.assignments) == 3

    @pytest.mark.asyncio
    async def test_refresh_when_fetch_fails_then_error_and_previous_list_kept(
        self, service, store, mock_fetch
    ):
        store.save_ical_url(FEED_URL)
        await service.refresh(now=NOW)
        mock_fetch.side_effect = ICSNetworkError("Network error: unreachable")

        assignments = await service.refresh(now=NOW)

        assert service.error == FETCH_ERROR_MESSAGE
        assert len(assignments) == 3
        assert service.loading is False

    @pytest.mark.asyncio
    async def test_refresh_when_unexpected_error_then_error_set(self, service, store, mock_fetch):
        store.save_ical_url(FEED_URL)
        mock_fetch.side_effect = RuntimeError("boom")

        assignments = await service.refresh(now=NOW)

        assert assignments == []
        assert service.error == FETCH_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_refresh_when_notifications_disabled_then_nothing_scheduled(
        self, service, store, backend, test_settings, mock_fetch
    ):
        test_settings.notifications_enabled = False
        store.save_ical_url(FEED_URL)

        await service.refresh(now=NOW)

        assert backend.list_scheduled() == []

    @pytest.mark.asyncio
    async def test_refresh_when_permission_denied_then_nothing_scheduled(
        self, test_settings, store, mock_fetch
    ):
        scheduler = MagicMock()
        scheduler.request_permission.return_value = False
        service = AssignmentService(test_settings, store, scheduler)
        store.save_ical_url(FEED_URL)

        await service.refresh(now=NOW)

        scheduler.schedule_notifications.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_when_assignment_removed_from_feed_then_reminders_cancelled(
        self, service, store, backend, mock_fetch
    ):
        store.save_ical_url(FEED_URL)
        await service.refresh(now=NOW)
        mock_fetch.return_value = ICSDataFactory.create_calendar(
            [
                ICSDataFactory.create_event(
                    uid="1001@lms.example.edu", summary="Problem set 1", dtend="20240301T235959Z"
                )
            ]
        )

        await service.refresh(now=NOW)

        assert [a.id for a in service.assignments] == ["1001@lms.example.edu"]
        assert scheduled_ids(backend) == ["1001@lms.example.edu_1h"]

    @pytest.mark.asyncio
    async def test_refresh_fetches_through_ics_fetcher(self, service, store, test_settings):
        store.save_ical_url(FEED_URL)
        with patch("assignmentbot.assignments.service.ICSFetcher") as fetcher_class:
            fetcher = fetcher_class.return_value
            fetcher.__aenter__.return_value = fetcher
            fetcher.fetch_calendar_text = AsyncMock(
                return_value=ICSDataFactory.create_course_calendar()
            )

            await service.refresh(now=NOW)

        fetcher_class.assert_called_once_with(test_settings)
        source = fetcher.fetch_calendar_text.await_args.args[0]
        assert source.url == FEED_URL
        assert source.timeout == test_settings.request_timeout
        assert len(service.assignments) == 3


class TestRefreshIfURLChanged:
    """Test URL change detection."""

    @pytest.mark.asyncio
    async def test_refresh_if_url_changed(self, service, store, mock_fetch):
        store.save_ical_url(FEED_URL)

        assert await service.refresh_if_url_changed(now=NOW) is True
        assert await service.refresh_if_url_changed(now=NOW) is False

        store.save_ical_url("https://lms.example.edu/other.ics")
        assert await service.refresh_if_url_changed(now=NOW) is True
        assert mock_fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_refresh_if_url_changed_when_loading_then_skipped(self, service, mock_fetch):
        service.loading = True

        assert await service.refresh_if_url_changed(now=NOW) is False
        mock_fetch.assert_not_awaited()


class TestToggleComplete:
    """Test completion toggling and reminder upkeep."""

    @pytest.mark.asyncio
    @pytest.mark.critical_path
    async def test_toggle_complete_cancels_then_restores_reminders(
        self, service, store, backend, mock_fetch
    ):
        store.save_ical_url(FEED_URL)
        await service.refresh(now=NOW)
        target = "1003@lms.example.edu"

        assert service.toggle_complete(target, now=NOW) is True
        assert store.get_completed_ids() == [target]
        assert next(a for a in service.assignments if a.id == target).completed is True
        assert scheduled_ids(backend) == ["1001@lms.example.edu_1h"]

        assert service.toggle_complete(target, now=NOW) is False
        assert store.get_completed_ids() == []
        assert next(a for a in service.assignments if a.id == target).completed is False
        assert f"{target}_24h" in scheduled_ids(backend)
        assert f"{target}_1h" in scheduled_ids(backend)

    @pytest.mark.unit
    def test_toggle_complete_when_assignment_not_loaded_then_still_persisted(self, service, store):
        assert service.toggle_complete("unknown@lms", now=NOW) is True
        assert store.get_completed_ids() == ["unknown@lms"]

    @pytest.mark.unit
    def test_toggle_complete_when_save_fails_then_raises_and_state_unchanged(
        self, service, store
    ):
        with patch.object(
            store,
            "save_completed_ids",
            side_effect=StoragePersistenceError("Failed to save assignment data"),
        ):
            with pytest.raises(StoragePersistenceError):
                service.toggle_complete("1001@lms.example.edu", now=NOW)

        assert service.completed_ids == []
        assert store.get_completed_ids() == []
