"""Local persistence for the feed URL, completion marks and subject aliases."""

from .aliases import get_subject_display_name
from .exceptions import StorageError, StoragePersistenceError
from .models import StoredCredentials, StoredState, SubjectAliasMap
from .store import AssignmentStore

__all__ = [
    "AssignmentStore",
    "StorageError",
    "StoragePersistenceError",
    "StoredCredentials",
    "StoredState",
    "SubjectAliasMap",
    "get_subject_display_name",
]
