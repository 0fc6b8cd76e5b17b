"""Memory package: durable catalog state and run history."""

from skill_sync.memory.history import DEFAULT_HISTORY_CAP, SyncHistory
from skill_sync.memory.snapshot_store import SnapshotStore, StoreUnavailable

__all__ = [
    "DEFAULT_HISTORY_CAP",
    "SnapshotStore",
    "StoreUnavailable",
    "SyncHistory",
]
