"""Command implementations for the AssignmentBot CLI.

Every command takes the parsed arguments and the settings object and returns
a process exit code.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ..assignments import AssignmentService
from ..countdown import compute_countdown
from ..ics import (
    AssignmentRecord,
    ICSError,
    ICSFetcher,
    ICSParser,
    ICSSource,
    extract_event_blocks,
)
from ..notifications import (
    JSONFileNotificationBackend,
    NotificationScheduler,
    reminder_offsets_from_hours,
)
from ..storage import (
    AssignmentStore,
    StoragePersistenceError,
    SubjectAliasMap,
    get_subject_display_name,
)

logger = logging.getLogger(__name__)

NO_URL_MESSAGE = "No feed URL configured. Run 'assignmentbot set-url URL' first."


def build_store(settings: Any) -> AssignmentStore:
    return AssignmentStore(Path(settings.data_dir))


def build_scheduler(settings: Any) -> NotificationScheduler:
    return NotificationScheduler(
        JSONFileNotificationBackend(settings.reminders_file),
        reminder_offsets_from_hours(settings.reminder_offsets_hours),
    )


def build_service(settings: Any) -> AssignmentService:
    return AssignmentService(settings, build_store(settings), build_scheduler(settings))


def format_assignment_line(assignment: AssignmentRecord, aliases: SubjectAliasMap) -> str:
    """One human-readable line: status, subject, title, deadline and countdown."""
    mark = "[x]" if assignment.completed else "[ ]"
    subject = get_subject_display_name(assignment.category_code, aliases)
    countdown = compute_countdown(assignment.deadline)
    deadline = assignment.deadline.astimezone().strftime("%Y-%m-%d %H:%M")
    prefix = f"{subject}: " if subject else ""
    return (
        f"{mark} {prefix}{assignment.title}  "
        f"(due {deadline}, {countdown.display_text})  id={assignment.id}"
    )


def _dump_assignments(assignments: Sequence[AssignmentRecord], aliases: SubjectAliasMap) -> str:
    payload = []
    for assignment in assignments:
        item = assignment.model_dump(mode="json")
        item["subject"] = get_subject_display_name(assignment.category_code, aliases)
        payload.append(item)
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _check_feed_url(url: str) -> bool:
    if not url.lower().startswith("https://"):
        print("Error: the feed URL must start with https://")
        return False
    return True


def run_set_url(args: Any, settings: Any) -> int:
    url = args.url.strip()
    if not _check_feed_url(url):
        return 1
    try:
        build_store(settings).save_ical_url(url)
    except StoragePersistenceError as e:
        print(f"Error: could not save the URL ({e.message})")
        return 1
    print("Feed URL saved.")
    return 0


def run_clear_url(args: Any, settings: Any) -> int:
    build_store(settings).delete_ical_url()
    print("Feed URL removed.")
    return 0


def _load_service(settings: Any) -> Optional[AssignmentService]:
    """Refresh a service from the feed, printing the reason and returning None on failure."""
    service = build_service(settings)
    asyncio.run(service.refresh())

    if service.error:
        print(service.error)
        return None
    if not service.has_url:
        print(NO_URL_MESSAGE)
        return None
    return service


def run_test_url(args: Any, settings: Any) -> int:
    url = (args.url or "").strip() or build_store(settings).get_ical_url()
    url = url or getattr(settings, "ics_url", None)
    if not url:
        print(NO_URL_MESSAGE)
        return 1
    if not _check_feed_url(url):
        return 1

    async def _fetch() -> str:
        async with ICSFetcher(settings) as fetcher:
            return await fetcher.fetch_calendar_text(
                ICSSource(url=url, timeout=settings.request_timeout)
            )

    try:
        content = asyncio.run(_fetch())
    except ICSError as e:
        logger.debug(f"Feed test failed for {url}: {e.message}")
        print(f"Connection failed: {e.message}")
        return 1

    print(f"Connection OK: {len(extract_event_blocks(content))} events found.")
    return 0


def run_list(args: Any, settings: Any) -> int:
    service = _load_service(settings)
    if service is None:
        return 1

    assignments: List[AssignmentRecord] = service.assignments if args.all else service.pending
    aliases = service.store.get_subject_aliases()

    if args.json:
        print(_dump_assignments(assignments, aliases))
        return 0

    if not assignments:
        print("No assignments.")
        return 0
    for assignment in assignments:
        print(format_assignment_line(assignment, aliases))
    return 0


def run_complete(args: Any, settings: Any) -> int:
    service = build_service(settings)
    # An undo can only reschedule reminders for an assignment that is loaded
    asyncio.run(service.refresh())
    if service.error:
        logger.warning(f"Toggling {args.id} without the current assignment list")
    try:
        completed = service.toggle_complete(args.id)
    except StoragePersistenceError as e:
        print(f"Error: could not save completion state ({e.message})")
        return 1
    print(f"{args.id} marked {'complete' if completed else 'not complete'}.")
    return 0


def run_alias(args: Any, settings: Any) -> int:
    store = build_store(settings)
    try:
        if args.remove:
            store.delete_subject_alias(args.code)
            print(f"Alias for {args.code} removed.")
            return 0
        if not args.name:
            print("Error: a display name is required (or use --remove)")
            return 1
        store.save_subject_alias(args.code, args.name)
    except StoragePersistenceError as e:
        print(f"Error: could not save aliases ({e.message})")
        return 1
    print(f"{args.code} will be shown as {args.name!r}.")
    return 0


def run_aliases(args: Any, settings: Any) -> int:
    aliases = build_store(settings).get_subject_aliases()
    if not aliases:
        print("No aliases set.")
        return 0
    for code, name in sorted(aliases.items()):
        print(f"{code}: {name}")
    return 0


def run_subjects(args: Any, settings: Any) -> int:
    service = _load_service(settings)
    if service is None:
        return 1

    codes = sorted({a.category_code for a in service.assignments if a.category_code})
    if not codes:
        print("No subjects found.")
        return 0

    aliases = service.store.get_subject_aliases()
    for code in codes:
        name = get_subject_display_name(code, aliases)
        print(f"{code}: {name}" if name != code else f"{code}  (no alias)")
    return 0


def run_parse(args: Any, settings: Any) -> int:
    path = Path(args.file)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"Error: cannot read {path}: {e}")
        return 1

    result = ICSParser(unfold=args.unfold).parse_ics_content(content)

    if args.json:
        print(result.model_dump_json(indent=2))
        return 0 if result.success else 1

    if not result.success:
        print(f"Parse failed: {result.error_message}")
        return 1

    print(
        f"{len(result.assignments)} assignments from {result.event_count} events "
        f"({result.skipped_count} skipped)"
    )
    for assignment in result.assignments:
        print(format_assignment_line(assignment, {}))
    for skipped in result.skipped:
        detail = f" value={skipped.raw_value!r}" if skipped.raw_value else ""
        print(f"  skipped event #{skipped.index}: {skipped.reason} uid={skipped.uid}{detail}")
    return 0


def run_reminders(args: Any, settings: Any) -> int:
    scheduler = build_scheduler(settings)

    if args.clear:
        scheduler.cancel_all_notifications()
        print("All reminders cancelled.")
        return 0

    if args.deliver:
        for message in scheduler.deliver_due():
            print(message)
        return 0

    scheduled = scheduler.get_scheduled_notifications()
    if not scheduled:
        print("No reminders scheduled.")
        return 0
    for notification in scheduled:
        when = notification.trigger_at.astimezone().strftime("%Y-%m-%d %H:%M")
        print(f"{when}  {notification.identifier}  {notification.title}: {notification.body}")
    return 0


COMMANDS = {
    "set-url": run_set_url,
    "clear-url": run_clear_url,
    "test-url": run_test_url,
    "list": run_list,
    "complete": run_complete,
    "alias": run_alias,
    "aliases": run_aliases,
    "subjects": run_subjects,
    "parse": run_parse,
    "reminders": run_reminders,
}
