"""Pure processing nodes."""

from __future__ import annotations

from skill_sync.nodes.reconciler import apply_changes, reconcile

__all__ = [
    "apply_changes",
    "reconcile",
]
