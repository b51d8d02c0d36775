"""
Storage-specific exceptions for persisted assignment state.

Reads never raise these (a missing or corrupted file yields defaults);
failed writes raise ``StoragePersistenceError`` so callers can report that
the user's change was not saved.
"""

from typing import Any, Optional


class StorageError(Exception):
    """Base exception for all storage-related errors.

    Args:
        message: Human-readable error description
        details: Optional dictionary containing additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class StoragePersistenceError(StorageError):
    """Exception raised when a storage write fails.

    Args:
        message: Human-readable persistence error description
        operation: The operation that failed (save_ical_url, save_completed_ids, ...)
        file_path: Path to the file involved in the operation
        original_error: The underlying exception that caused the failure
        details: Additional context about the persistence failure

    Example:
        >>> raise StoragePersistenceError(
        ...     "Failed to save completed assignments",
        ...     operation="save_completed_ids",
        ...     file_path="/home/user/.local/share/assignmentbot/state.json",
        ...     original_error=PermissionError("Permission denied")
        ... )
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        file_path: Optional[str] = None,
        original_error: Optional[Exception] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.operation = operation
        self.file_path = file_path
        self.original_error = original_error

        error_details = details or {}
        if operation:
            error_details["operation"] = operation
        if file_path:
            error_details["file_path"] = file_path
        if original_error:
            error_details["original_error"] = str(original_error)
            error_details["error_type"] = type(original_error).__name__

        super().__init__(message, error_details)
