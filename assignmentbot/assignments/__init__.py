"""Assignment list management: refresh, completion state and reminders."""

from .service import FETCH_ERROR_MESSAGE, AssignmentService

__all__ = ["FETCH_ERROR_MESSAGE", "AssignmentService"]
