"""Remaining-time calculations for deadline display."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

EXPIRED_TEXT = "Expired"

URGENT_SECONDS = 24 * 60 * 60
WARNING_SECONDS = 3 * 24 * 60 * 60


class CountdownInfo(BaseModel):
    """Remaining time until a deadline."""

    display_text: str
    total_seconds: int
    is_expired: bool
    is_urgent: bool
    is_warning: bool


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def compute_countdown(deadline: datetime, now: Optional[datetime] = None) -> CountdownInfo:
    """Compute the countdown for a deadline.

    Args:
        deadline: Timezone-aware deadline
        now: Reference time (defaults to the current UTC time)

    Returns:
        CountdownInfo; ``display_text`` looks like ``"1d 2h 30m 5s left"``
    """
    total_seconds = int((deadline - _now(now)).total_seconds())

    if total_seconds <= 0:
        return CountdownInfo(
            display_text=EXPIRED_TEXT,
            total_seconds=0,
            is_expired=True,
            is_urgent=True,
            is_warning=True,
        )

    days, remainder = divmod(total_seconds, 24 * 60 * 60)
    hours, remainder = divmod(remainder, 60 * 60)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or hours > 0 or days > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")

    return CountdownInfo(
        display_text=" ".join(parts) + " left",
        total_seconds=total_seconds,
        is_expired=False,
        is_urgent=total_seconds <= URGENT_SECONDS,
        is_warning=total_seconds <= WARNING_SECONDS,
    )


def format_deadline(deadline: datetime, now: Optional[datetime] = None) -> str:
    """Format a deadline relative to now, e.g. ``"in 3 days"``."""
    seconds = (deadline - _now(now)).total_seconds()
    if seconds < 0:
        return EXPIRED_TEXT

    minutes = round(seconds / 60)
    if minutes < 1:
        return "in less than a minute"
    if minutes < 60:
        return f"in {minutes} minute{'s' if minutes != 1 else ''}"

    hours = round(seconds / 3600)
    if hours < 24:
        return f"in about {hours} hour{'s' if hours != 1 else ''}"

    days = round(seconds / 86400)
    if days < 30:
        return f"in {days} day{'s' if days != 1 else ''}"

    months = round(days / 30)
    return f"in about {months} month{'s' if months != 1 else ''}"
