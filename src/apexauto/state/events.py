"""Editor phases and remote-merge outcomes."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EditorPhase(StrEnum):
    UNSELECTED = "unselected"
    CLEAN = "clean"
    DIRTY_PENDING = "dirty_pending"
    WRITING = "writing"
    WRITE_FAILED = "write_failed"

    @property
    def has_local_changes(self) -> bool:
        """Whether the buffer may hold edits the remote has not seen."""
        return self in (EditorPhase.DIRTY_PENDING, EditorPhase.WRITING, EditorPhase.WRITE_FAILED)


class RemoteDecision(StrEnum):
    IGNORE_ECHO = "ignore_echo"
    REPLACE = "replace"
    CONVERGED = "converged"
    DEFER_CONFLICT = "defer_conflict"


class RemoteConflict(BaseModel):
    """A remote value that diverged from unsaved local edits."""

    model_config = ConfigDict(frozen=True)

    key: str
    remote: dict[str, Any] = Field(default_factory=dict)
    local: dict[str, Any] = Field(default_factory=dict)
    conflicting_fields: tuple[str, ...] = ()
    detected_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
