"""Data models for deadline reminders."""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class NotificationBehavior(BaseModel):
    """How delivered reminders are presented. Configured once per process."""

    show_alert: bool = Field(default=True, description="Print the reminder to the console")
    play_sound: bool = Field(default=True, description="Ring the terminal bell")
    set_badge: bool = Field(default=True, description="Include the pending reminder count")

    model_config = ConfigDict(frozen=True)


class ReminderOffset(BaseModel):
    """A reminder fired a fixed time before the deadline."""

    hours: int = Field(..., gt=0, description="Hours before the deadline")
    title_prefix: str = Field(default="", description="Prefix prepended to the assignment title")
    body: str = Field(default="", description="Reminder body text")

    model_config = ConfigDict(frozen=True)

    @property
    def delta(self) -> timedelta:
        return timedelta(hours=self.hours)

    @property
    def suffix(self) -> str:
        """Identifier suffix, e.g. ``_24h``."""
        return f"_{self.hours}h"

    def identifier_for(self, assignment_id: str) -> str:
        return assignment_id + self.suffix


class ScheduledNotification(BaseModel):
    """A reminder waiting to be delivered."""

    identifier: str
    title: str
    body: str
    trigger_at: datetime
    sound: bool = True

    @field_serializer("trigger_at")
    def serialize_trigger_at(self, dt: datetime) -> str:
        return dt.isoformat()
