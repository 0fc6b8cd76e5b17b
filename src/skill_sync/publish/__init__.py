"""Publishing: materialize the catalog and push it to git targets."""

from skill_sync.publish.errors import (
    CommitFailed,
    NotAVersionControlRoot,
    PublishError,
    PushFailed,
    RemoteUnreachable,
)
from skill_sync.publish.git_ops import GitWorkTree, VersionControl
from skill_sync.publish.github import GitHubCli, GitHubCliError
from skill_sync.publish.materialize import render_entity, sanitize_filename, write_catalog
from skill_sync.publish.publisher import (
    PublishStatistics,
    PublishTarget,
    Publisher,
    PushFailurePolicy,
    generate_commit_message,
)

__all__ = [
    "CommitFailed",
    "GitHubCli",
    "GitHubCliError",
    "GitWorkTree",
    "NotAVersionControlRoot",
    "PublishError",
    "PublishStatistics",
    "PublishTarget",
    "Publisher",
    "PushFailed",
    "PushFailurePolicy",
    "RemoteUnreachable",
    "VersionControl",
    "generate_commit_message",
    "render_entity",
    "sanitize_filename",
    "write_catalog",
]
