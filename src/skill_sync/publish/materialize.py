"""Render the catalog to files inside a publish target."""

from __future__ import annotations

import hashlib
import json
import logging
import re
from typing import TYPE_CHECKING

import frontmatter

if TYPE_CHECKING:
    from pathlib import Path

    from skill_sync.entities.skills import Entity, EntitySet

logger = logging.getLogger(__name__)

SKILLS_DIR = "skills"
CATALOG_FILE = "skills.json"


def sanitize_filename(entity_id: str) -> str:
    """Map an entity id to a filesystem-safe file stem.

    Ids that are already safe are used as-is. Any other id gets a short
    digest of the raw id appended, so ids differing only in case or
    punctuation still land in distinct files.
    """
    stem = re.sub(r"[^a-z0-9._-]+", "-", entity_id.strip().lower()).strip("-.") or "entity"
    if stem == entity_id:
        return stem
    digest = hashlib.sha256(entity_id.encode("utf-8")).hexdigest()[:8]
    return f"{stem}-{digest}"


def render_entity(entity: Entity) -> str:
    """Render one entity as markdown with YAML front matter.

    Output depends only on the entity, so identical input yields
    identical bytes.
    """
    config_block = json.dumps(entity.configuration, indent=2, sort_keys=True, default=str)
    body = (
        f"# {entity.name}\n\n"
        f"{entity.description}\n\n"
        "## Configuration\n\n"
        f"```json\n{config_block}\n```"
    )
    post = frontmatter.Post(
        body,
        id=entity.id,
        name=entity.name,
        description=entity.description,
        source=entity.source.value,
        enabled=entity.enabled,
    )
    return frontmatter.dumps(post) + "\n"


def _write_if_changed(path: Path, content: str) -> bool:
    if path.exists() and path.read_text(encoding="utf-8") == content:
        return False
    path.write_text(content, encoding="utf-8")
    return True


def write_catalog(entities: EntitySet, root: Path) -> int:
    """Write ``skills/<id>.md`` per entity plus ``skills.json`` under ``root``.

    Markdown files for entities that are no longer present are deleted.

    Returns:
        Number of files written or deleted.
    """
    skills_dir = root / SKILLS_DIR
    skills_dir.mkdir(parents=True, exist_ok=True)

    touched = 0
    expected: set[str] = set()
    for entity_id in sorted(entities):
        entity = entities[entity_id]
        filename = f"{sanitize_filename(entity.id)}.md"
        if filename in expected:
            raise ValueError(f"entity {entity.id!r} maps to an already used file {filename}")
        expected.add(filename)
        if _write_if_changed(skills_dir / filename, render_entity(entity)):
            touched += 1

    for stale in sorted(skills_dir.glob("*.md")):
        if stale.name not in expected:
            stale.unlink()
            touched += 1
            logger.debug("Removed stale catalog file %s", stale)

    catalog = [entities[key].model_dump(mode="json") for key in sorted(entities)]
    if _write_if_changed(root / CATALOG_FILE, json.dumps(catalog, indent=2, sort_keys=True) + "\n"):
        touched += 1

    logger.info("Materialized %d entities to %s (%d files touched)", len(entities), root, touched)
    return touched
