"""In-memory and file-backed catalog sources."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from skill_sync.entities.skills import Entity, SourceKind
from skill_sync.sources.base import SourceFetchError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class StaticSource:
    """Serves a fixed list of entities, or the contents of a JSON catalog file.

    Stands in for hard-coded catalogs and doubles as a test fixture: swap
    the entity list between runs with ``set_entities`` or make the next
    fetch fail with ``fail_with``. A source built with ``from_json_file``
    re-reads its file on every fetch.
    """

    def __init__(
        self,
        entities: list[Entity] | None = None,
        kind: SourceKind = SourceKind.STATIC,
        empty_is_authoritative: bool = False,
        path: Path | None = None,
    ) -> None:
        self.kind = kind
        self.empty_is_authoritative = empty_is_authoritative
        self.path = path
        self._entities: list[Entity] = []
        self._error: Exception | None = None
        self.fetch_count = 0
        self.set_entities(entities or [])

    @classmethod
    def from_json_file(
        cls,
        path: Path,
        kind: SourceKind = SourceKind.STATIC,
        empty_is_authoritative: bool = False,
    ) -> StaticSource:
        """Serve a JSON array of entity dicts, read fresh on each fetch.

        Entries without ``source`` are tagged with ``kind``.
        """
        return cls(kind=kind, empty_is_authoritative=empty_is_authoritative, path=path)

    def _read_file(self, path: Path) -> list[Entity]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise SourceFetchError(f"{path} does not hold a JSON array")
            return [Entity.model_validate({"source": self.kind.value, **item}) for item in data]
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            raise SourceFetchError(f"cannot read catalog {path}: {e}") from e

    def set_entities(self, entities: list[Entity]) -> None:
        # Entities always carry this source's tag.
        self._entities = [
            e if e.source == self.kind else e.model_copy(update={"source": self.kind})
            for e in entities
        ]

    def fail_with(self, error: Exception | None) -> None:
        """Make every following fetch raise ``error`` (``None`` to clear)."""
        self._error = error

    async def list_entities(self) -> list[Entity]:
        self.fetch_count += 1
        if self._error is not None:
            raise SourceFetchError(str(self._error)) from self._error
        if self.path is not None:
            self.set_entities(await asyncio.to_thread(self._read_file, self.path))
            logger.debug("Read %d entities from %s", len(self._entities), self.path)
        return list(self._entities)
