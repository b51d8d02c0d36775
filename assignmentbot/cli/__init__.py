"""CLI module for AssignmentBot.

Parses arguments, configures logging and the process-wide notification
handler, then dispatches to the requested command.
"""

import logging
from typing import Optional, Sequence

from ..config import get_settings
from ..notifications import (
    configure_notification_handler,
    get_notification_handler,
    is_notification_handler_configured,
)
from ..utils.logging import setup_logging
from .commands import COMMANDS
from .parser import create_parser

logger = logging.getLogger(__name__)


def main_entry(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with argument parsing.

    Args:
        argv: Arguments (defaults to ``sys.argv[1:]``)

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(
        "DEBUG" if args.verbose else settings.log_level,
        log_file=args.log_file or settings.log_file,
        log_dir=None if args.log_file else settings.log_dir,
    )

    if not is_notification_handler_configured():
        configure_notification_handler()
    logger.debug(f"Notification handler: {get_notification_handler()}")

    try:
        return COMMANDS[args.command](args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


__all__ = ["create_parser", "main_entry"]
