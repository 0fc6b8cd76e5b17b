"""Shared helpers."""

from skill_sync.utils.atomic import write_json_atomic

__all__ = ["write_json_atomic"]
