"""Publish failure exceptions, one per failure kind."""

from __future__ import annotations

from skill_sync.entities.results import PublishFailure


class PublishError(Exception):
    """Base class for failures while publishing to a target."""

    failure = PublishFailure.UNKNOWN


class NotAVersionControlRoot(PublishError):
    """The target directory has no git repository yet."""

    failure = PublishFailure.NOT_A_VERSION_CONTROL_ROOT


class RemoteUnreachable(PublishError):
    """The remote could not be created or registered."""

    failure = PublishFailure.REMOTE_UNREACHABLE


class CommitFailed(PublishError):
    """Staging or committing the working tree failed."""

    failure = PublishFailure.COMMIT_FAILED


class PushFailed(PublishError):
    """Pushing to the remote failed."""

    failure = PublishFailure.PUSH_FAILED
