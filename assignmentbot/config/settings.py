"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional, cast

import yaml
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "ASSIGNMENTBOT_"


class AssignmentBotSettings(BaseSettings):
    """Application settings with environment variable and YAML support.

    Priority: explicit arguments > ``ASSIGNMENTBOT_*`` environment variables >
    ``config.yaml`` > defaults.
    """

    _explicit_args: set = PrivateAttr(default_factory=set)
    _env_vars_set: set = PrivateAttr(default_factory=set)

    # Feed configuration
    ics_url: Optional[str] = Field(
        default=None, description="Initial feed URL (the stored URL takes precedence)"
    )

    # Application
    app_name: str = Field(default="AssignmentBot", description="Application name")

    # Network and retry
    request_timeout: int = Field(default=30, description="HTTP request timeout in seconds")
    max_retries: int = Field(default=3, description="Maximum retry attempts")
    retry_backoff_factor: float = Field(default=1.5, description="Exponential backoff factor")

    # File paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "assignmentbot")
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "share" / "assignmentbot"
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Console log level")
    log_file: Optional[str] = Field(default=None, description="Optional log file name")

    # Notifications
    notifications_enabled: bool = Field(default=True, description="Schedule deadline reminders")
    reminder_offsets_hours: List[int] = Field(
        default_factory=lambda: [24, 1], description="Reminder offsets before each deadline"
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def __init__(self, **kwargs: Any) -> None:
        # Track which settings come from the environment so YAML does not override them
        env_vars_set = {
            key[len(ENV_PREFIX) :].lower() for key in os.environ if key.upper().startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set
        self._load_yaml_config()

    def _find_config_file(self) -> Optional[Path]:
        """Find config file, checking project directory first, then user config dir."""
        project_root = Path(__file__).parent.parent.parent
        project_config = project_root / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _apply(self, field_name: str, value: Any) -> None:
        """Apply a YAML value unless the field was set explicitly or via the environment."""
        if field_name in self._explicit_args or field_name in self._env_vars_set:
            return
        setattr(self, field_name, value)

    def _load_feed_config(self, config_data: dict) -> None:
        feed_config = config_data.get("ics") or {}
        if "url" in feed_config and not self.ics_url:
            self._apply("ics_url", feed_config["url"])

    def _load_network_settings(self, config_data: dict) -> None:
        network = config_data.get("network") or {}
        if "request_timeout" in network:
            self._apply("request_timeout", int(network["request_timeout"]))
        if "max_retries" in network:
            self._apply("max_retries", int(network["max_retries"]))
        if "retry_backoff_factor" in network:
            self._apply("retry_backoff_factor", float(network["retry_backoff_factor"]))

    def _load_logging_config(self, config_data: dict) -> None:
        logging_config = config_data.get("logging") or {}
        if "level" in logging_config:
            self._apply("log_level", str(logging_config["level"]).upper())
        if "file" in logging_config:
            self._apply("log_file", logging_config["file"])

    def _load_notification_config(self, config_data: dict) -> None:
        notifications = config_data.get("notifications") or {}
        if "enabled" in notifications:
            self._apply("notifications_enabled", bool(notifications["enabled"]))
        if "offsets_hours" in notifications:
            self._apply("reminder_offsets_hours", [int(h) for h in notifications["offsets_hours"]])

    def _load_paths(self, config_data: dict) -> None:
        if "data_dir" in config_data:
            self._apply("data_dir", Path(config_data["data_dir"]).expanduser())

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            self._load_feed_config(config_data)
            self._load_network_settings(config_data)
            self._load_logging_config(config_data)
            self._load_notification_config(config_data)
            self._load_paths(config_data)

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logger.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def config_file(self) -> Path:
        """Path to YAML configuration file."""
        return self.config_dir / "config.yaml"

    @property
    def reminders_file(self) -> Path:
        """Path to the scheduled reminders file."""
        return self.data_dir / "reminders.json"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"


_settings_instance: Optional[AssignmentBotSettings] = None


def get_settings() -> AssignmentBotSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = AssignmentBotSettings()
    return cast(AssignmentBotSettings, globals()["_settings_instance"])


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
