"""JSON-backed snapshot store for the current catalog and its backups."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from skill_sync.entities.results import BackupSnapshot
from skill_sync.entities.skills import Entity, EntitySet
from skill_sync.utils.atomic import write_json_atomic

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """The backing medium could not be read or written."""


def _backup_order(path: Path) -> tuple[str, int]:
    # backup-<stamp>.json, then backup-<stamp>-1.json, backup-<stamp>-2.json, ...
    stamp, _, seq = path.stem.removeprefix("backup-").partition("-")
    return stamp, int(seq) if seq.isdigit() else 0


def _serialize(entities: EntitySet) -> list[dict]:
    return [entities[key].model_dump(mode="json") for key in sorted(entities)]


class SnapshotStore:
    """Durable current-state file plus a directory of timestamped backups.

    The store is the only owner of the persisted catalog. Callers go
    through ``load``/``backup``/``commit``; there is no other shared state.
    """

    CURRENT_FILE = "current.json"
    BACKUP_DIR = "backups"

    def __init__(self, state_dir: Path) -> None:
        """Initialize the store.

        Args:
            state_dir: Directory holding ``current.json`` and ``backups/``.
        """
        self.state_dir = state_dir
        self.current_path = state_dir / self.CURRENT_FILE
        self.backup_dir = state_dir / self.BACKUP_DIR

    def load(self) -> EntitySet:
        """Read the current snapshot.

        Returns an empty set when no snapshot was ever written.

        Raises:
            StoreUnavailable: The file exists but cannot be read or parsed.
        """
        if not self.current_path.exists():
            logger.info("No snapshot at %s yet, starting empty", self.current_path)
            return {}

        try:
            data = json.loads(self.current_path.read_text(encoding="utf-8"))
            entities = [Entity.model_validate(item) for item in data]
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
            raise StoreUnavailable(f"cannot read snapshot {self.current_path}: {e}") from e

        logger.debug("Loaded %d entities from %s", len(entities), self.current_path)
        return {entity.id: entity for entity in entities}

    def backup(self, entities: EntitySet) -> BackupSnapshot:
        """Write an immutable timestamped copy of ``entities``.

        Raises:
            StoreUnavailable: The backup could not be written.
        """
        timestamp = datetime.now(tz=UTC)
        stamp = timestamp.strftime("%Y%m%dT%H%M%S%fZ")
        path = self.backup_dir / f"backup-{stamp}.json"
        suffix = 1
        while path.exists():
            path = self.backup_dir / f"backup-{stamp}-{suffix}.json"
            suffix += 1

        payload = {"timestamp": timestamp.isoformat(), "entities": _serialize(entities)}
        try:
            write_json_atomic(path, payload)
        except OSError as e:
            raise StoreUnavailable(f"cannot write backup {path}: {e}") from e

        logger.info("Backed up %d entities to %s", len(entities), path)
        return BackupSnapshot(
            path=path,
            timestamp=timestamp,
            entities=[entities[key] for key in sorted(entities)],
        )

    def commit(self, entities: EntitySet) -> None:
        """Atomically replace the current snapshot.

        Raises:
            StoreUnavailable: The snapshot could not be written; the previous
                snapshot is left intact.
        """
        try:
            write_json_atomic(self.current_path, _serialize(entities))
        except OSError as e:
            raise StoreUnavailable(f"cannot write snapshot {self.current_path}: {e}") from e
        logger.debug("Committed %d entities to %s", len(entities), self.current_path)

    def list_backups(self) -> list[Path]:
        """Return backup files, oldest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob("backup-*.json"), key=_backup_order)

    def prune_backups(self, keep: int) -> int:
        """Delete all but the ``keep`` newest backups. Returns the number removed."""
        if keep < 0:
            raise ValueError("keep must be >= 0")
        backups = self.list_backups()
        stale = backups[: max(len(backups) - keep, 0)]
        for path in stale:
            path.unlink(missing_ok=True)
        if stale:
            logger.info("Pruned %d old backups from %s", len(stale), self.backup_dir)
        return len(stale)

    def read_backup(self, path: Path) -> BackupSnapshot:
        """Load a backup for manual recovery."""
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return BackupSnapshot(
                path=path,
                timestamp=datetime.fromisoformat(data["timestamp"]),
                entities=[Entity.model_validate(item) for item in data["entities"]],
            )
        except (OSError, KeyError, ValueError) as e:
            raise StoreUnavailable(f"cannot read backup {path}: {e}") from e
