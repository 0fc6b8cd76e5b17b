"""Diff a catalog snapshot against freshly fetched upstream state."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from skill_sync.entities.changes import ChangeSet, UpdatedEntity
from skill_sync.entities.skills import Entity, EntitySet

logger = logging.getLogger(__name__)


def _as_index(entities: EntitySet | Iterable[Entity]) -> EntitySet:
    if isinstance(entities, dict):
        return entities
    index: EntitySet = {}
    for entity in entities:
        if entity.id in index:
            logger.debug("Duplicate id %s in fetched entities, keeping the last one", entity.id)
        index[entity.id] = entity
    return index


def reconcile(
    current: EntitySet | Iterable[Entity],
    fetched: EntitySet | Iterable[Entity],
) -> ChangeSet:
    """Compute the minimal change set that turns ``current`` into ``fetched``.

    Single linear pass over both sides. An id absent from ``current`` is
    added; an id present in both with differing content is updated; an id
    only in ``current`` is removed. An empty ``fetched`` therefore removes
    everything, and it is up to the caller to decide whether to trust it.

    Each output list is sorted by id.
    """
    current_index = _as_index(current)
    fetched_index = _as_index(fetched)

    added: list[Entity] = []
    updated: list[UpdatedEntity] = []
    for entity_id in sorted(fetched_index):
        new = fetched_index[entity_id]
        old = current_index.get(entity_id)
        if old is None:
            added.append(new)
        elif not old.content_equals(new):
            updated.append(UpdatedEntity(old=old, new=new))

    removed = [current_index[eid] for eid in sorted(current_index) if eid not in fetched_index]

    return ChangeSet(added=added, updated=updated, removed=removed)


def apply_changes(state: EntitySet, changes: ChangeSet) -> EntitySet:
    """Return a new entity set with ``changes`` applied; ``state`` is untouched."""
    merged = dict(state)
    for entity in changes.added:
        merged[entity.id] = entity
    for update in changes.updated:
        merged[update.new.id] = update.new
    for entity in changes.removed:
        merged.pop(entity.id, None)
    return merged
