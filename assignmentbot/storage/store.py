"""
JSON file-based persistence for the feed URL, completion marks and subject aliases.

The feed URL usually embeds a private access token, so it lives in its own
``credentials.json`` restricted to the owner. Completion marks and aliases
live in ``state.json``. Every write goes through a temp file and an atomic
replace so an interrupted save never leaves a truncated file behind.
"""

import contextlib
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from .exceptions import StoragePersistenceError
from .models import StoredCredentials, StoredState, SubjectAliasMap

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

CREDENTIALS_FILENAME = "credentials.json"
STATE_FILENAME = "state.json"


class AssignmentStore:
    """Persistent storage for user-held assignment state.

    Attributes:
        data_dir: Directory holding the JSON files
        credentials_file: File holding the feed URL
        state_file: File holding completion marks and aliases

    Example:
        >>> store = AssignmentStore(Path.home() / ".local" / "share" / "assignmentbot")
        >>> store.save_ical_url("https://school.example.com/calendar/export.ics?token=abc")
        >>> store.save_subject_alias("CS101", "Intro to Programming")
    """

    def __init__(self, data_dir: Path) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory for the JSON files

        Raises:
            StoragePersistenceError: If the directory cannot be created
        """
        self.data_dir = Path(data_dir)
        self.credentials_file = self.data_dir / CREDENTIALS_FILENAME
        self.state_file = self.data_dir / STATE_FILENAME

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoragePersistenceError(
                f"Failed to create storage directory: {self.data_dir}",
                operation="initialize",
                file_path=str(self.data_dir),
                original_error=e,
            ) from e

        logger.debug(f"Assignment store initialized at {self.data_dir}")

    # Feed URL

    def save_ical_url(self, url: str) -> None:
        """Persist the feed URL.

        Raises:
            StoragePersistenceError: If the file cannot be written
        """
        self._save(
            self.credentials_file,
            StoredCredentials(ical_url=url),
            operation="save_ical_url",
            private=True,
        )

    def get_ical_url(self) -> Optional[str]:
        """Return the saved feed URL, or None if not configured."""
        credentials = self._load(self.credentials_file, StoredCredentials)
        return credentials.ical_url or None

    def delete_ical_url(self) -> None:
        """Forget the feed URL. Failures are logged, not raised."""
        try:
            self.credentials_file.unlink(missing_ok=True)
        except OSError:
            logger.exception(f"Failed to delete {self.credentials_file}")

    # Completion marks

    def save_completed_ids(self, ids: Iterable[str]) -> None:
        """Persist the set of completed assignment ids, preserving first-seen order.

        Raises:
            StoragePersistenceError: If the file cannot be written
        """
        state = self._load(self.state_file, StoredState)
        state.completed_ids = list(dict.fromkeys(ids))
        self._save(self.state_file, state, operation="save_completed_ids")

    def get_completed_ids(self) -> List[str]:
        """Return completed assignment ids (empty list if none or unreadable)."""
        return self._load(self.state_file, StoredState).completed_ids

    def clear_completed_ids(self) -> None:
        """Remove every completion mark. Failures are logged, not raised."""
        try:
            self.save_completed_ids([])
        except StoragePersistenceError:
            logger.exception("Failed to clear completed assignments")

    # Subject aliases

    def get_subject_aliases(self) -> SubjectAliasMap:
        """Return the alias map (empty if none or unreadable)."""
        return self._load(self.state_file, StoredState).subject_aliases

    def save_subject_aliases(self, aliases: SubjectAliasMap) -> None:
        """Replace the whole alias map.

        Raises:
            StoragePersistenceError: If the file cannot be written
        """
        state = self._load(self.state_file, StoredState)
        state.subject_aliases = dict(aliases)
        self._save(self.state_file, state, operation="save_subject_aliases")

    def save_subject_alias(self, code: str, name: str) -> None:
        """Set the display name for one category code."""
        aliases = self.get_subject_aliases()
        aliases[code] = name
        self.save_subject_aliases(aliases)

    def delete_subject_alias(self, code: str) -> None:
        """Remove the display name for one category code, if set."""
        aliases = self.get_subject_aliases()
        if aliases.pop(code, None) is None:
            logger.debug(f"No alias to delete for {code!r}")
            return
        self.save_subject_aliases(aliases)

    # File helpers

    def _load(self, file_path: Path, model: Type[ModelT]) -> ModelT:
        """Load a model from JSON, falling back to defaults on any error."""
        if not file_path.exists():
            return model()

        try:
            with file_path.open(encoding="utf-8") as f:
                data = json.load(f)
            return model.model_validate(data)
        except json.JSONDecodeError:
            logger.exception(f"Invalid JSON in {file_path}")
        except Exception:
            logger.exception(f"Error loading {file_path}")
        return model()

    def _save(
        self, file_path: Path, data: BaseModel, operation: str, private: bool = False
    ) -> None:
        if isinstance(data, StoredState):
            data.last_modified = datetime.now()

        try:
            self._atomic_write(file_path, data, private=private)
        except Exception as e:
            raise StoragePersistenceError(
                "Failed to save assignment data",
                operation=operation,
                file_path=str(file_path),
                original_error=e,
            ) from e

    def _atomic_write(self, file_path: Path, data: BaseModel, private: bool = False) -> None:
        """Write JSON to a temp file, then atomically move it into place."""
        temp_file = file_path.with_suffix(".tmp")

        try:
            with temp_file.open("w", encoding="utf-8") as f:
                json.dump(data.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
                f.flush()

            if private:
                os.chmod(temp_file, 0o600)

            temp_file.replace(file_path)

        except Exception:
            if temp_file.exists():
                with contextlib.suppress(Exception):
                    temp_file.unlink()
            raise
