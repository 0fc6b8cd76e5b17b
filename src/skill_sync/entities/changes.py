"""Change sets produced by reconciliation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from skill_sync.entities.skills import Entity  # noqa: TC001


class UpdatedEntity(BaseModel):
    """An entity whose content differs between snapshot and upstream."""

    model_config = ConfigDict(frozen=True)

    old: Entity
    new: Entity


class ChangeSet(BaseModel):
    """Minimal delta between a snapshot and freshly fetched upstream state."""

    model_config = ConfigDict(frozen=True)

    added: list[Entity] = Field(default_factory=list)
    updated: list[UpdatedEntity] = Field(default_factory=list)
    removed: list[Entity] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_disjoint(self) -> ChangeSet:
        """An id may appear in at most one of the three lists."""
        seen: set[str] = set()
        ids = (
            [e.id for e in self.added]
            + [u.new.id for u in self.updated]
            + [e.id for e in self.removed]
        )
        for entity_id in ids:
            if entity_id in seen:
                raise ValueError(f"entity id {entity_id!r} appears in more than one change list")
            seen.add(entity_id)
        return self

    @property
    def total(self) -> int:
        """Number of changed entities."""
        return len(self.added) + len(self.updated) + len(self.removed)

    @property
    def is_empty(self) -> bool:
        return self.total == 0
