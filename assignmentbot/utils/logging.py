"""Logging configuration and setup utilities."""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import IO, Any, Optional

ROOT_LOGGER_NAME = "assignmentbot"

LEVEL_COLORS = {
    logging.DEBUG: "\033[35m",
    logging.INFO: "\033[34m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}
RESET_COLOR = "\033[0m"


def stream_supports_color(stream: Any) -> bool:
    """True if ``stream`` is a terminal and neither NO_COLOR nor TERM=dumb is set."""
    if "NO_COLOR" in os.environ or os.environ.get("TERM", "").lower() == "dumb":
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class LevelColorFormatter(logging.Formatter):
    """Console formatter that colors the level name when the stream is a terminal."""

    def __init__(
        self, fmt: str, datefmt: Optional[str] = None, stream: Optional[IO[str]] = None
    ) -> None:
        super().__init__(fmt, datefmt)
        self.use_color = stream_supports_color(stream if stream is not None else sys.stderr)

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        color = LEVEL_COLORS.get(record.levelno) if self.use_color else None
        if color:
            formatted = formatted.replace(
                record.levelname, f"{color}{record.levelname}{RESET_COLOR}", 1
            )
        return formatted


def setup_logging(
    log_level: str = "WARNING", log_file: Optional[str] = None, log_dir: Optional[Path] = None
) -> logging.Logger:
    """Set up application logging with console and optional file output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file name
        log_dir: Optional log directory path

    Returns:
        Configured ``assignmentbot`` logger
    """
    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(min(numeric_level, logging.DEBUG) if log_file else numeric_level)
    logger.handlers.clear()

    console_formatter = LevelColorFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    file_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console output goes to stderr so command output on stdout stays parseable
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        if log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / log_file
        else:
            log_path = Path(log_file)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"  # 10MB
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_path}")

    # Set third-party library log levels to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug(f"Logging initialized at {log_level} level")
    return logger
