"""Structured outcomes of sync runs, publishes and backups."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path  # noqa: TC003

from pydantic import BaseModel, ConfigDict, Field

from skill_sync.entities.changes import ChangeSet  # noqa: TC001
from skill_sync.entities.skills import Entity  # noqa: TC001


class PublishFailure(StrEnum):
    """Failure taxonomy for a single publish target."""

    NOT_A_VERSION_CONTROL_ROOT = "not_a_version_control_root"
    REMOTE_UNREACHABLE = "remote_unreachable"
    COMMIT_FAILED = "commit_failed"
    PUSH_FAILED = "push_failed"
    UNKNOWN = "unknown"


class SourceCounts(BaseModel):
    """Per-source delta counts for one run."""

    added: int = 0
    updated: int = 0
    removed: int = 0
    fetched: int = 0
    skipped: bool = Field(default=False, description="Source failed or was refused this run")

    @classmethod
    def from_changes(cls, changes: ChangeSet, fetched: int) -> SourceCounts:
        return cls(
            added=len(changes.added),
            updated=len(changes.updated),
            removed=len(changes.removed),
            fetched=fetched,
        )

    @property
    def total_changes(self) -> int:
        return self.added + self.updated + self.removed


class PublishResult(BaseModel):
    """Outcome of publishing the catalog to one target."""

    target: str
    success: bool
    files_changed: int = 0
    commit_id: str | None = None
    pushed: bool = False
    error: str | None = None
    failure: PublishFailure | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


class SyncResult(BaseModel):
    """Finalized record of one orchestrator run.

    Built once at the end of the run and appended to history as-is.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    sources: dict[str, SourceCounts] = Field(default_factory=dict)
    total_entities: int = 0
    success: bool = False
    errors: list[str] = Field(default_factory=list)
    publish_results: list[PublishResult] = Field(default_factory=list)
    backup_path: str | None = None
    duration_seconds: float = 0.0

    @property
    def total_changes(self) -> int:
        return sum(c.total_changes for c in self.sources.values())


class BackupSnapshot(BaseModel):
    """A timestamped, never-overwritten copy of the pre-sync entity set."""

    model_config = ConfigDict(frozen=True)

    path: Path
    timestamp: datetime
    entities: list[Entity] = Field(default_factory=list)
