"""Shared test fixtures for skill-sync."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from skill_sync.entities.skills import Entity, SourceKind
from skill_sync.publish.errors import CommitFailed, PushFailed, RemoteUnreachable


def make_entity(
    entity_id: str,
    source: SourceKind = SourceKind.STATIC,
    enabled: bool = True,
    name: str | None = None,
    description: str = "",
    configuration: dict[str, Any] | None = None,
) -> Entity:
    return Entity(
        id=entity_id,
        name=name or entity_id,
        description=description,
        source=source,
        enabled=enabled,
        configuration=configuration or {},
    )


class FakeVCS:
    """In-memory stand-in for a git working tree.

    Tracks file contents at stage and commit time so change detection
    behaves like ``git status`` over the real directory.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.initialized = False
        self.branch: str | None = None
        self.remotes: dict[str, str] = {}
        self.staged: dict[str, bytes] = {}
        self.committed: dict[str, bytes] = {}
        self.commits: list[tuple[str, str]] = []
        self.pushes: list[tuple[str, str]] = []
        self.tags: list[str] = []
        self.pushed_tags: list[str] = []
        self.fail_commit: str | None = None
        self.fail_push: str | None = None
        self.fail_create_remote: str | None = None
        self.created_remotes: list[str] = []

    def _snapshot(self) -> dict[str, bytes]:
        return {
            str(p.relative_to(self.path)): p.read_bytes()
            for p in self.path.rglob("*")
            if p.is_file()
        }

    def is_initialized(self) -> bool:
        return self.initialized

    def init(self, branch: str) -> None:
        self.initialized = True
        self.branch = branch

    def stage_all(self) -> None:
        self.staged = self._snapshot()

    def changed_files(self) -> int:
        keys = set(self.staged) | set(self.committed)
        return sum(1 for k in keys if self.staged.get(k) != self.committed.get(k))

    def status_is_clean(self) -> bool:
        return self.changed_files() == 0

    def commit(self, message: str) -> str:
        if self.fail_commit:
            raise CommitFailed(self.fail_commit)
        self.committed = dict(self.staged)
        sha = f"{len(self.commits) + 1:040x}"
        self.commits.append((sha, message))
        return sha

    def push(self, remote: str, branch: str) -> None:
        if self.fail_push:
            raise PushFailed(self.fail_push)
        if remote not in self.remotes:
            raise PushFailed(f"no remote {remote}")
        self.pushes.append((remote, branch))

    def has_remote(self, name: str) -> bool:
        return name in self.remotes

    def add_remote(self, name: str, url: str) -> None:
        self.remotes[name] = url

    def create_remote(self, repo_name: str, remote_name: str, private: bool) -> None:
        if self.fail_create_remote:
            raise RemoteUnreachable(self.fail_create_remote)
        self.created_remotes.append(repo_name)
        self.remotes[remote_name] = f"https://github.com/{repo_name}.git"

    def tag(self, name: str, message: str) -> None:
        self.tags.append(name)

    def push_tag(self, remote: str, name: str) -> None:
        self.pushed_tags.append(name)


class FakeVCSFactory:
    """Hands out one persistent FakeVCS per target path."""

    def __init__(self) -> None:
        self.trees: dict[Path, FakeVCS] = {}
        self.calls = 0

    def for_path(self, path: Path) -> FakeVCS:
        path = Path(path)
        if path not in self.trees:
            self.trees[path] = FakeVCS(path)
        return self.trees[path]

    def __call__(self, path: Path) -> FakeVCS:
        self.calls += 1
        return self.for_path(path)


@pytest.fixture
def vcs_factory() -> FakeVCSFactory:
    return FakeVCSFactory()


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"
