"""ICS calendar downloading and assignment parsing module."""

from .exceptions import (
    ICSAuthError,
    ICSContentError,
    ICSError,
    ICSFetchError,
    ICSNetworkError,
    ICSTimeoutError,
)
from .fetcher import ICSFetcher, validate_ics_content
from .models import (
    AssignmentRecord,
    ICSParseResult,
    ICSResponse,
    ICSSource,
    RawFields,
    SkippedEvent,
    SkipReason,
)
from .parser import (
    ICSParser,
    build_assignment,
    build_raw_fields,
    extract_event_blocks,
    parse_ics,
    parse_ics_datetime,
    read_property,
)

__all__ = [
    "AssignmentRecord",
    "ICSAuthError",
    "ICSContentError",
    "ICSError",
    "ICSFetchError",
    "ICSFetcher",
    "ICSNetworkError",
    "ICSParseResult",
    "ICSParser",
    "ICSResponse",
    "ICSSource",
    "ICSTimeoutError",
    "RawFields",
    "SkipReason",
    "SkippedEvent",
    "build_assignment",
    "build_raw_fields",
    "extract_event_blocks",
    "parse_ics",
    "parse_ics_datetime",
    "read_property",
    "validate_ics_content",
]
