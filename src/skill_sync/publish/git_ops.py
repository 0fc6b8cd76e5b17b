"""Version-control collaborator for publish targets."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from skill_sync.publish.errors import (
    CommitFailed,
    NotAVersionControlRoot,
    PushFailed,
    RemoteUnreachable,
)
from skill_sync.publish.github import GitHubCli, GitHubCliError

logger = logging.getLogger(__name__)


@runtime_checkable
class VersionControl(Protocol):
    """Blocking version-control operations on one working tree."""

    def is_initialized(self) -> bool: ...

    def init(self, branch: str) -> None: ...

    def stage_all(self) -> None: ...

    def changed_files(self) -> int: ...

    def status_is_clean(self) -> bool: ...

    def commit(self, message: str) -> str: ...

    def push(self, remote: str, branch: str) -> None: ...

    def has_remote(self, name: str) -> bool: ...

    def add_remote(self, name: str, url: str) -> None: ...

    def create_remote(self, repo_name: str, remote_name: str, private: bool) -> None: ...

    def tag(self, name: str, message: str) -> None: ...

    def push_tag(self, remote: str, name: str) -> None: ...


class GitWorkTree:
    """GitPython-backed working tree.

    Every git failure is translated into the matching ``PublishError``
    subclass so the publisher can classify it.
    """

    def __init__(self, path: Path, github: GitHubCli | None = None) -> None:
        self.path = Path(path)
        self._github = github or GitHubCli()
        self._repo: Repo | None = None

    @property
    def repo(self) -> Repo:
        if self._repo is None:
            try:
                self._repo = Repo(self.path)
            except (InvalidGitRepositoryError, NoSuchPathError) as e:
                raise NotAVersionControlRoot(f"{self.path} is not a git repository") from e
        return self._repo

    def is_initialized(self) -> bool:
        try:
            _ = self.repo
        except NotAVersionControlRoot:
            return False
        return True

    def init(self, branch: str) -> None:
        """Create the repository with ``branch`` as its unborn HEAD."""
        self.path.mkdir(parents=True, exist_ok=True)
        repo = Repo.init(self.path)
        repo.git.symbolic_ref("HEAD", f"refs/heads/{branch}")
        self._repo = repo
        logger.info("Initialized git repository at %s (branch %s)", self.path, branch)

    def stage_all(self) -> None:
        try:
            self.repo.git.add(A=True)
        except GitCommandError as e:
            raise CommitFailed(f"git add failed in {self.path}: {e}") from e

    def _porcelain(self) -> list[str]:
        try:
            output = self.repo.git.status(porcelain=True)
        except GitCommandError as e:
            raise CommitFailed(f"git status failed in {self.path}: {e}") from e
        return [line for line in output.splitlines() if line.strip()]

    def changed_files(self) -> int:
        return len(self._porcelain())

    def status_is_clean(self) -> bool:
        return not self._porcelain()

    def commit(self, message: str) -> str:
        """Commit the staged index and return the new commit SHA."""
        try:
            commit = self.repo.index.commit(message)
        except (GitCommandError, OSError, ValueError) as e:
            raise CommitFailed(f"commit failed in {self.path}: {e}") from e
        return commit.hexsha

    def push(self, remote: str, branch: str) -> None:
        if not self.has_remote(remote):
            raise PushFailed(f"no remote {remote!r} configured for {self.path}")
        try:
            self.repo.git.push(remote, f"{branch}:{branch}")
        except GitCommandError as e:
            raise PushFailed(f"push to {remote}/{branch} failed: {e}") from e

    def has_remote(self, name: str) -> bool:
        return any(r.name == name for r in self.repo.remotes)

    def add_remote(self, name: str, url: str) -> None:
        try:
            self.repo.create_remote(name, url)
        except GitCommandError as e:
            raise RemoteUnreachable(f"cannot add remote {name} -> {url}: {e}") from e

    def create_remote(self, repo_name: str, remote_name: str, private: bool) -> None:
        """Create the hosted repository and register it as ``remote_name``."""
        try:
            self._github.create_repo(repo_name, self.path, remote_name=remote_name, private=private)
        except GitHubCliError as e:
            raise RemoteUnreachable(str(e)) from e

    def tag(self, name: str, message: str) -> None:
        try:
            self.repo.create_tag(name, message=message)
        except GitCommandError as e:
            raise CommitFailed(f"cannot create tag {name}: {e}") from e

    def push_tag(self, remote: str, name: str) -> None:
        try:
            self.repo.git.push(remote, name)
        except GitCommandError as e:
            raise PushFailed(f"push of tag {name} to {remote} failed: {e}") from e
