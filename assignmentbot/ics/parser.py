"""Line-oriented iCalendar parser that turns VEVENT blocks into assignments.

The parser works in three stages:

1. ``extract_event_blocks`` isolates each ``BEGIN:VEVENT`` .. ``END:VEVENT`` block.
2. ``read_property`` pulls a single property value out of a block, discarding
   parameters and decoding TEXT escapes.
3. ``build_raw_fields`` / ``build_assignment`` turn those values into an
   ``AssignmentRecord`` with a normalized, timezone-aware deadline.

Every entry point is a pure function of its input. ``parse_ics`` and
``ICSParser.parse_ics_content`` never raise; malformed input produces an
empty result and a log entry.

Folded (continuation) lines are not joined unless ``unfold`` is requested
explicitly, so a long folded SUMMARY is read only up to its first physical line.
"""

import logging
import re
from datetime import date, datetime, time, timezone
from typing import List, Optional, Union

from dateutil import parser as date_parser
from dateutil import tz

from .models import AssignmentRecord, ICSParseResult, RawFields, SkippedEvent, SkipReason

logger = logging.getLogger(__name__)

EVENT_BEGIN_MARKER = "BEGIN:VEVENT"
EVENT_END_MARKER = "END:VEVENT"

# Date-only deadlines mean "by the end of that day"
END_OF_DAY = time(23, 59, 59)

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_COMPACT_DATETIME_RE = re.compile(
    r"^([0-9]{4})([0-9]{2})([0-9]{2})(?:T([0-9]{2})([0-9]{2})([0-9]{2}))?(Z?)$"
)
_ESCAPE_RE = re.compile(r"\\([\\;,nN])")
_ESCAPES = {"n": "\n", "N": "\n", ",": ",", ";": ";", "\\": "\\"}


def _split_lines(text: str) -> List[str]:
    """Split on CRLF, CR or LF only (unlike str.splitlines, which also splits on form feeds)."""
    return _LINE_BREAK_RE.split(text)


def unfold_lines(text: str) -> str:
    """Join RFC 5545 folded lines (continuation lines start with a space or tab).

    Args:
        text: Raw calendar text

    Returns:
        Text with every logical property on one physical line, LF separated
    """
    unfolded: List[str] = []
    for line in _split_lines(text):
        if line[:1] in (" ", "\t") and unfolded:
            unfolded[-1] += line[1:]
        else:
            unfolded.append(line)
    return "\n".join(unfolded)


def extract_event_blocks(text: str) -> List[str]:
    """Return the text of every VEVENT block in source order.

    A block runs from a begin marker to the next end marker. Markers are
    compared per line after trimming surrounding whitespace, ignoring case.
    A begin marker with no matching end marker produces no block.

    Args:
        text: Raw calendar text

    Returns:
        List of blocks (begin and end marker lines included), LF separated
    """
    blocks: List[str] = []
    current: Optional[List[str]] = None

    for line in _split_lines(text):
        marker = line.strip().upper()

        if current is None:
            if marker == EVENT_BEGIN_MARKER:
                current = [line]
            continue

        current.append(line)
        if marker == EVENT_END_MARKER:
            blocks.append("\n".join(current))
            current = None

    if current is not None:
        logger.debug(f"Dropping unterminated VEVENT block ({len(current)} lines)")

    return blocks


def unescape_text(value: str) -> str:
    r"""Decode iCalendar TEXT escapes in a single left-to-right pass.

    ``\n``/``\N`` become a newline, ``\,`` a comma, ``\;`` a semicolon and
    ``\\`` a backslash. Because each escape is consumed once, ``\\n`` decodes
    to a literal backslash followed by ``n``. Unknown escapes are left alone.
    """
    if "\\" not in value:
        return value
    return _ESCAPE_RE.sub(lambda match: _ESCAPES[match.group(1)], value)


def _find_value_colon(line: str, start: int) -> int:
    """Index of the first colon at or after ``start`` outside a quoted parameter value."""
    in_quotes = False
    for index in range(start, len(line)):
        char = line[index]
        if char == '"':
            in_quotes = not in_quotes
        elif char == ":" and not in_quotes:
            return index
    return -1


def read_property(block: str, name: str) -> Optional[str]:
    """Read the first value of property ``name`` from an event block.

    Matches lines that start with the property name (case-insensitive)
    followed by ``:`` or ``;``. For parameterized lines such as
    ``DTEND;VALUE=DATE:20240315`` the parameters are discarded.

    Args:
        block: Event block text
        name: Property name, e.g. ``"SUMMARY"``

    Returns:
        Decoded and trimmed value, or None when the property is not present
    """
    target = name.upper()
    size = len(target)

    for line in _split_lines(block):
        if len(line) <= size or line[:size].upper() != target:
            continue

        separator = line[size]
        if separator == ":":
            raw_value = line[size + 1 :]
        elif separator == ";":
            colon = _find_value_colon(line, size + 1)
            if colon < 0:
                continue
            raw_value = line[colon + 1 :]
        else:
            # Longer property name sharing the prefix, e.g. UIDX
            continue

        return unescape_text(raw_value).strip()

    return None


def _strip_parameter_prefix(value: str) -> str:
    """Drop a leading ``TZID=...:`` style parameter block, if one is present."""
    head, separator, tail = value.rpartition(":")
    if separator and "=" in head:
        return tail
    return value


def parse_ics_datetime(value: str) -> Optional[datetime]:
    """Convert an iCalendar date or date-time string to an aware datetime.

    Supported forms, tried in order:

    - ``20240315T235959Z``: UTC
    - ``20240315T235959``: local time of the running process
    - ``20240315``: 23:59:59 local time on that day
    - ISO 8601 (``2024-03-15T08:30:00+09:00``); naive results are local

    Args:
        value: Raw timestamp, optionally with a parameter prefix

    Returns:
        Timezone-aware datetime, or None if the value cannot be interpreted
    """
    cleaned = _strip_parameter_prefix(value).strip()
    if not cleaned:
        return None

    match = _COMPACT_DATETIME_RE.match(cleaned)
    if match:
        year, month, day, hour, minute, second, zulu = match.groups()
        try:
            if hour is None:
                naive = datetime.combine(date(int(year), int(month), int(day)), END_OF_DAY)
            else:
                naive = datetime(
                    int(year), int(month), int(day), int(hour), int(minute), int(second)
                )
        except ValueError:
            logger.debug(f"Out-of-range compact timestamp: {cleaned}")
            return None

        return naive.replace(tzinfo=timezone.utc if zulu else tz.tzlocal())

    try:
        parsed = date_parser.isoparse(cleaned)
    except (ValueError, OverflowError):
        logger.debug(f"Unrecognized timestamp format: {cleaned}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz.tzlocal())
    return parsed


def build_raw_fields(block: str) -> Optional[RawFields]:
    """Read the assignment-relevant properties of one block.

    DTEND is preferred; DTSTART is used when DTEND is absent or empty.

    Returns:
        RawFields, or None if UID, SUMMARY or a timestamp is missing
    """
    uid = read_property(block, "UID")
    summary = read_property(block, "SUMMARY")
    dtend = read_property(block, "DTEND") or read_property(block, "DTSTART")

    if not uid or summary is None or not dtend:
        return None

    return RawFields(
        uid=uid,
        summary=summary,
        dtend=dtend,
        categories=read_property(block, "CATEGORIES"),
    )


def build_assignment(fields: RawFields) -> Optional[AssignmentRecord]:
    """Build an assignment from raw fields, or None if the deadline is unparseable."""
    deadline = parse_ics_datetime(fields.dtend)
    if deadline is None:
        logger.debug(f"Failed to parse deadline {fields.dtend!r} for event {fields.uid}")
        return None

    return AssignmentRecord(
        id=fields.uid,
        title=fields.summary,
        category_code=fields.categories or "",
        deadline=deadline,
        completed=False,
    )


def _missing_field_reason(block: str) -> SkipReason:
    if not read_property(block, "UID"):
        return SkipReason.MISSING_UID
    if read_property(block, "SUMMARY") is None:
        return SkipReason.MISSING_SUMMARY
    return SkipReason.MISSING_TIMESTAMP


class ICSParser:
    """Stateless assignment parser with an optional skip-report side channel.

    Example:
        >>> result = ICSParser().parse_ics_content(ics_text)
        >>> for assignment in result.assignments:
        ...     print(assignment.deadline, assignment.title)
    """

    def __init__(self, unfold: bool = False) -> None:
        """Initialize parser.

        Args:
            unfold: Join folded continuation lines before extraction
        """
        self.unfold = unfold

    def parse_ics_content(self, content: Union[str, bytes]) -> ICSParseResult:
        """Parse calendar text into deadline-ordered assignments.

        Never raises. Blocks that cannot produce an assignment are listed in
        ``result.skipped``; an unexpected failure yields an empty, unsuccessful
        result.

        Args:
            content: Calendar text (bytes are decoded as UTF-8)

        Returns:
            ICSParseResult with assignments sorted by deadline
        """
        try:
            if isinstance(content, bytes):
                content = content.decode("utf-8", errors="replace")
            if self.unfold:
                content = unfold_lines(content)

            blocks = extract_event_blocks(content)
            assignments: List[AssignmentRecord] = []
            skipped: List[SkippedEvent] = []

            for index, block in enumerate(blocks):
                fields = build_raw_fields(block)
                if fields is None:
                    skipped.append(
                        SkippedEvent(
                            index=index,
                            reason=_missing_field_reason(block),
                            uid=read_property(block, "UID") or None,
                        )
                    )
                    continue

                assignment = build_assignment(fields)
                if assignment is None:
                    skipped.append(
                        SkippedEvent(
                            index=index,
                            reason=SkipReason.INVALID_TIMESTAMP,
                            uid=fields.uid,
                            raw_value=fields.dtend,
                        )
                    )
                    continue

                assignments.append(assignment)

            # sorted() is stable, so equal deadlines keep block order
            assignments = sorted(assignments, key=lambda assignment: assignment.deadline)

            logger.debug(
                f"Parsed {len(assignments)} assignments from {len(blocks)} events "
                f"({len(skipped)} skipped)"
            )
            return ICSParseResult(
                success=True,
                assignments=assignments,
                skipped=skipped,
                event_count=len(blocks),
            )

        except Exception as e:
            logger.exception("Failed to parse ICS content")
            return ICSParseResult(success=False, error_message=str(e))


def parse_ics(content: Union[str, bytes], unfold: bool = False) -> List[AssignmentRecord]:
    """Parse calendar text into assignments sorted by deadline.

    Never raises; garbage input returns an empty list.
    """
    return ICSParser(unfold=unfold).parse_ics_content(content).assignments
