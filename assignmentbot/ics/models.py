"""Data models for ICS assignment processing."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ICSSource(BaseModel):
    """Configuration for the assignment calendar feed."""

    url: str = Field(..., description="ICS calendar URL")
    timeout: int = Field(default=30, description="HTTP timeout in seconds")
    custom_headers: Dict[str, str] = Field(default_factory=dict, description="Custom HTTP headers")
    validate_ssl: bool = Field(default=True, description="Validate SSL certificates")


class ICSResponse(BaseModel):
    """Response from ICS fetch operation."""

    success: bool
    content: Optional[str] = None
    status_code: Optional[int] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    error_message: Optional[str] = None
    fetch_time: datetime = Field(default_factory=datetime.now)

    @property
    def content_length(self) -> Optional[int]:
        """Get content length if available."""
        if self.content:
            return len(self.content.encode("utf-8"))
        return None


class RawFields(BaseModel):
    """Property values read from a single event block, before normalization."""

    uid: str
    summary: str
    dtend: str
    categories: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class AssignmentRecord(BaseModel):
    """An assignment with a normalized deadline."""

    id: str = Field(..., min_length=1, description="Event UID")
    title: str = Field(default="", description="Assignment title from SUMMARY")
    category_code: str = Field(default="", description="Subject code from CATEGORIES")
    deadline: datetime = Field(..., description="Timezone-aware deadline")
    completed: bool = Field(default=False, description="Marked complete by the user")

    @field_serializer("deadline")
    def serialize_deadline(self, dt: datetime) -> str:
        """Serialize deadline to ISO format."""
        return dt.isoformat()


class SkipReason(str, Enum):
    """Why an event block did not produce an assignment."""

    MISSING_UID = "missing_uid"
    MISSING_SUMMARY = "missing_summary"
    MISSING_TIMESTAMP = "missing_timestamp"
    INVALID_TIMESTAMP = "invalid_timestamp"


class SkippedEvent(BaseModel):
    """Diagnostic entry for a dropped event block."""

    index: int = Field(..., description="Position of the block in the source")
    reason: SkipReason
    uid: Optional[str] = None
    raw_value: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


class ICSParseResult(BaseModel):
    """Result of ICS parsing operation."""

    success: bool = True
    assignments: List[AssignmentRecord] = Field(default_factory=list)
    skipped: List[SkippedEvent] = Field(default_factory=list)
    event_count: int = 0
    error_message: Optional[str] = None
    parse_time: datetime = Field(default_factory=datetime.now)

    @property
    def skipped_count(self) -> int:
        """Number of event blocks that produced no assignment."""
        return len(self.skipped)
