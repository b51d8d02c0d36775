"""Application configuration."""

from .settings import AssignmentBotSettings, get_settings, reset_settings

__all__ = ["AssignmentBotSettings", "get_settings", "reset_settings"]
