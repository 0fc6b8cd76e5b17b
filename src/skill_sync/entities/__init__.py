"""Entity models for the skill-sync domain layer."""

from skill_sync.entities.changes import ChangeSet, UpdatedEntity
from skill_sync.entities.results import (
    BackupSnapshot,
    PublishFailure,
    PublishResult,
    SourceCounts,
    SyncResult,
)
from skill_sync.entities.skills import Entity, EntitySet, SourceKind, index_entities

__all__ = [
    "BackupSnapshot",
    "ChangeSet",
    "Entity",
    "EntitySet",
    "PublishFailure",
    "PublishResult",
    "SourceCounts",
    "SourceKind",
    "SyncResult",
    "UpdatedEntity",
    "index_entities",
]
