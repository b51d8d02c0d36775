"""Shared test configuration and lightweight fixtures."""

from pathlib import Path
from typing import Any, Iterator

import pytest

from assignmentbot.config.settings import reset_settings
from assignmentbot.notifications import reset_notification_handler


@pytest.fixture
def test_settings(tmp_path: Path) -> Any:
    """Create lightweight test settings without touching the user's directories."""

    class MockSettings:
        def __init__(self) -> None:
            self.ics_url = None
            self.app_name = "AssignmentBot-Test"

            # Fast retries
            self.request_timeout = 5
            self.max_retries = 2
            self.retry_backoff_factor = 0.01

            # Temporary paths for isolation
            self.data_dir = tmp_path / "data"
            self.config_dir = tmp_path / "config"
            self.reminders_file = self.data_dir / "reminders.json"
            self.log_dir = self.data_dir / "logs"

            self.log_level = "ERROR"
            self.log_file = None

            self.notifications_enabled = True
            self.reminder_offsets_hours = [24, 1]

    return MockSettings()


@pytest.fixture(autouse=True)
def reset_global_state() -> Iterator[None]:
    """Reset process-wide singletons between tests."""
    reset_settings()
    reset_notification_handler()
    yield
    reset_settings()
    reset_notification_handler()


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")
