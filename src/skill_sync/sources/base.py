"""Upstream source protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from skill_sync.entities.skills import Entity, SourceKind


class SourceFetchError(Exception):
    """An upstream source could not be read this run."""


@runtime_checkable
class UpstreamSource(Protocol):
    """A collaborator that returns the current entity list of one upstream.

    A raised ``SourceFetchError`` means "skip this source this run"; an
    empty list means the upstream really has nothing. Sources set
    ``empty_is_authoritative`` when an empty answer may be trusted to
    remove every previously synced entity.
    """

    kind: SourceKind
    empty_is_authoritative: bool

    async def list_entities(self) -> list[Entity]: ...
