"""Command-line argument parsing for AssignmentBot."""

import argparse

from .. import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create the command line argument parser.

    Returns:
        argparse.ArgumentParser with one subcommand per user action

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["list", "--all"])
        >>> args.command
        'list'
    """
    parser = argparse.ArgumentParser(
        prog="assignmentbot",
        description="AssignmentBot - track assignment deadlines from an ICS calendar feed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s test-url https://school.example.com/calendar/export.ics?token=...
  %(prog)s set-url https://school.example.com/calendar/export.ics?token=...
  %(prog)s list                      # Pending assignments, nearest deadline first
  %(prog)s list --all --json         # Everything, including completed, as JSON
  %(prog)s complete 1234@school      # Toggle completion of an assignment
  %(prog)s subjects                  # Subject codes in the feed and their names
  %(prog)s alias CS101 "Programming" # Show CS101 as "Programming"
  %(prog)s parse calendar.ics        # Inspect a local export
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}", help="Show version"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging and detailed output"
    )
    parser.add_argument("--log-file", metavar="FILE", help="Also write debug logs to FILE")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    set_url = subparsers.add_parser("set-url", help="Save the calendar feed URL")
    set_url.add_argument("url", help="HTTPS URL of the ICS export")

    subparsers.add_parser("clear-url", help="Forget the saved calendar feed URL")

    test_url = subparsers.add_parser(
        "test-url", help="Check that a feed URL answers with calendar events"
    )
    test_url.add_argument("url", nargs="?", help="URL to test (defaults to the saved URL)")

    list_parser = subparsers.add_parser("list", help="Fetch the feed and list assignments")
    list_parser.add_argument(
        "--all", action="store_true", help="Include completed assignments"
    )
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    complete = subparsers.add_parser("complete", help="Toggle an assignment's completion mark")
    complete.add_argument("id", help="Assignment id (the event UID)")

    alias = subparsers.add_parser("alias", help="Set or remove a subject display name")
    alias.add_argument("code", help="Subject (category) code")
    alias.add_argument("name", nargs="?", help="Display name")
    alias.add_argument("--remove", action="store_true", help="Remove the alias")

    subparsers.add_parser("aliases", help="List subject display names")
    subparsers.add_parser(
        "subjects", help="List subject codes found in the feed with their display names"
    )

    parse_parser = subparsers.add_parser("parse", help="Parse a local .ics file")
    parse_parser.add_argument("file", help="Path to the .ics file")
    parse_parser.add_argument("--json", action="store_true", help="Output JSON")
    parse_parser.add_argument(
        "--unfold", action="store_true", help="Join folded continuation lines before parsing"
    )

    reminders = subparsers.add_parser("reminders", help="List scheduled deadline reminders")
    reminders.add_argument(
        "--deliver", action="store_true", help="Print and remove reminders that are due"
    )
    reminders.add_argument("--clear", action="store_true", help="Cancel all reminders")

    return parser
