"""Upstream source fetchers."""

from skill_sync.sources.base import SourceFetchError, UpstreamSource
from skill_sync.sources.http import SkillDirectorySource, ToolRegistrySource
from skill_sync.sources.static import StaticSource

__all__ = [
    "SkillDirectorySource",
    "SourceFetchError",
    "StaticSource",
    "ToolRegistrySource",
    "UpstreamSource",
]
