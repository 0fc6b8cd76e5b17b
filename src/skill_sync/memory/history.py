"""Bounded, append-only log of sync runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path  # noqa: TC003

from skill_sync.entities.results import SyncResult
from skill_sync.utils.atomic import write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAP = 100


class SyncHistory:
    """Keeps the N most recent sync results, oldest evicted first.

    Persisted as a JSON array and reloaded at construction.
    """

    def __init__(self, path: Path, cap: int = DEFAULT_HISTORY_CAP) -> None:
        """Initialize history.

        Args:
            path: JSON file backing the log.
            cap: Maximum number of results retained.
        """
        if cap < 1:
            raise ValueError("history cap must be >= 1")
        self.path = path
        self.cap = cap
        self._results: list[SyncResult] = []
        self._load()

    def _load(self) -> None:
        """Load history from disk."""
        if not self.path.exists():
            self._results = []
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self._results = [SyncResult.model_validate(item) for item in data][-self.cap :]
            logger.info("Loaded %d sync results from %s", len(self._results), self.path)
        except Exception:
            logger.exception("Failed to load sync history from %s", self.path)
            self._results = []

    def save(self) -> None:
        """Persist history to disk."""
        write_json_atomic(self.path, [r.model_dump(mode="json") for r in self._results])

    def append(self, result: SyncResult) -> None:
        """Add a finalized result, evicting the oldest entries past the cap."""
        self._results.append(result)
        overflow = len(self._results) - self.cap
        if overflow > 0:
            del self._results[:overflow]
        self.save()

    @property
    def results(self) -> list[SyncResult]:
        """All retained results, oldest first."""
        return list(self._results)

    def recent(self, n: int = 10) -> list[SyncResult]:
        return self._results[-n:] if n > 0 else []

    def last(self) -> SyncResult | None:
        return self._results[-1] if self._results else None

    def __len__(self) -> int:
        return len(self._results)
