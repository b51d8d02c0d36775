"""Pydantic models for persisted assignment state."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class StoredCredentials(BaseModel):
    """Contents of the credentials file (kept separate and owner-readable only)."""

    ical_url: Optional[str] = Field(default=None, description="Assignment calendar feed URL")


class StoredState(BaseModel):
    """Non-sensitive user state: completion marks and subject aliases."""

    completed_ids: List[str] = Field(
        default_factory=list, description="UIDs of assignments marked complete"
    )
    subject_aliases: Dict[str, str] = Field(
        default_factory=dict, description="Display names keyed by category code"
    )
    last_modified: Optional[datetime] = Field(default=None, description="Last save time")


SubjectAliasMap = Dict[str, str]
