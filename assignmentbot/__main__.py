"""Entry point for `python -m assignmentbot`."""

import sys

from assignmentbot.cli import main_entry


def main() -> None:
    """Console script entry point."""
    sys.exit(main_entry())


if __name__ == "__main__":
    main()
