"""Domain models for syncable catalog entities."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceKind(StrEnum):
    """Upstream sources that can produce catalog entities."""

    SKILL_DIRECTORY = "skill_directory"
    TOOL_REGISTRY = "tool_registry"
    STATIC = "static"


class Entity(BaseModel):
    """A named, versionable catalog unit (a skill or a tool).

    ``id`` is the reconciliation key and stays stable across runs, so a
    rename shows up as an update rather than a remove followed by an add.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier, unique within its source namespace")
    name: str
    description: str = ""
    source: SourceKind
    enabled: bool = True
    configuration: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def strip_id(cls, v: str) -> str:
        """Reject blank ids; surrounding whitespace is not significant."""
        v = str(v).strip()
        if not v:
            raise ValueError("entity id must not be empty")
        return v

    def content_key(self) -> tuple[str, str, bool, dict[str, Any]]:
        """Return the fields that take part in change detection."""
        return (self.name, self.description, self.enabled, self.configuration)

    def content_equals(self, other: Entity) -> bool:
        """Deep-compare content fields, ignoring ``id`` and ``source``."""
        return self.content_key() == other.content_key()

    @staticmethod
    def make_id(prefix: str, raw_id: str) -> str:
        """Build a namespaced id such as ``skill-web-search``."""
        normalized = re.sub(r"\s+", "-", str(raw_id).strip()).lower()
        return f"{prefix}-{normalized}"


# Current catalog state keyed by entity id.
EntitySet = dict[str, Entity]


def index_entities(entities: list[Entity] | EntitySet) -> EntitySet:
    """Return an id -> entity mapping; later duplicates override earlier ones."""
    if isinstance(entities, dict):
        return dict(entities)
    return {entity.id: entity for entity in entities}
