"""Publish the catalog to independent git-backed targets.

Each target is processed on its own: any failure is recorded on that
target's ``PublishResult`` and the next target is still attempted.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from skill_sync.entities.results import PublishFailure, PublishResult
from skill_sync.memory.history import DEFAULT_HISTORY_CAP
from skill_sync.publish.errors import PublishError, PushFailed, RemoteUnreachable
from skill_sync.publish.git_ops import GitWorkTree, VersionControl
from skill_sync.publish.github import GitHubCli, GitHubCliError
from skill_sync.publish.materialize import write_catalog
from skill_sync.utils.atomic import write_json_atomic

if TYPE_CHECKING:
    from skill_sync.entities.results import SourceCounts
    from skill_sync.entities.skills import EntitySet

logger = logging.getLogger(__name__)


class PushFailurePolicy(StrEnum):
    """How a failed push after a successful local commit is reported."""

    ACCEPT_LOCAL = "accept_local"  # local commit stands, target still succeeds
    REJECT = "reject"  # target is marked failed


class PublishTarget(BaseModel):
    """One publish destination: a working tree plus its remote."""

    name: str = Field(description="Target identifier, usually owner/repo")
    path: Path = Field(description="Working tree directory")
    branch: str = Field(default="main")
    remote_name: str = Field(default="origin")
    remote_url: str | None = Field(default=None, description="Existing remote URL to register")
    create_remote: bool = Field(default=True, description="Create the hosted repo when initializing")
    private: bool = Field(default=True)
    subdirectory: str = Field(default="", description="Catalog location inside the working tree")
    commit_message: str | None = Field(default=None, description="Overrides the generated message")

    @property
    def catalog_root(self) -> Path:
        return self.path / self.subdirectory if self.subdirectory else self.path


class PublishStatistics(BaseModel):
    """Aggregate counters over the retained publish history."""

    total_publishes: int = 0
    successful: int = 0
    failed: int = 0
    total_files_changed: int = 0
    last: PublishResult | None = None


def generate_commit_message(counts: Mapping[str, SourceCounts] | None = None) -> str:
    """Summarize per-source deltas as a commit message."""
    date = datetime.now(tz=UTC).date().isoformat()
    if not counts:
        return f"chore: skills sync {date}"

    changes: list[str] = []
    for source, c in counts.items():
        if c.added:
            changes.append(f"+{c.added} {source}")
        if c.updated:
            changes.append(f"~{c.updated} {source}")
        if c.removed:
            changes.append(f"-{c.removed} {source}")

    if not changes:
        return f"chore: sync check {date}"
    return f"feat: skills sync - {', '.join(changes)} [{date}]"


class Publisher:
    """Writes the catalog into each target, then stages, commits and pushes."""

    def __init__(
        self,
        auto_commit: bool = True,
        auto_push: bool = True,
        push_failure_policy: PushFailurePolicy = PushFailurePolicy.ACCEPT_LOCAL,
        commit_message: str | None = None,
        vcs_factory: Callable[[Path], VersionControl] | None = None,
        github: GitHubCli | None = None,
        history_path: Path | None = None,
        history_cap: int = DEFAULT_HISTORY_CAP,
    ) -> None:
        """Initialize the publisher.

        Args:
            auto_commit: Commit when the working tree changed.
            auto_push: Push after a commit.
            push_failure_policy: Whether a failed push fails the target.
            commit_message: Fixed commit message for every target.
            vcs_factory: Builds the version-control collaborator for a path.
            github: GitHub CLI wrapper, shared with the default factory.
            history_path: JSON file persisting publish results across restarts.
            history_cap: Maximum number of publish results retained.
        """
        self.auto_commit = auto_commit
        self.auto_push = auto_push
        self.push_failure_policy = push_failure_policy
        self.commit_message = commit_message
        self._github = github or GitHubCli()
        self._vcs_factory = vcs_factory or (lambda path: GitWorkTree(path, github=self._github))
        self._history_path = history_path
        self._history_cap = history_cap
        self._history: list[PublishResult] = []
        self._load_history()

    def _load_history(self) -> None:
        if self._history_path is None or not self._history_path.exists():
            return
        try:
            data = json.loads(self._history_path.read_text(encoding="utf-8"))
            self._history = [PublishResult.model_validate(item) for item in data][-self._history_cap :]
            logger.info("Loaded %d publish results from %s", len(self._history), self._history_path)
        except Exception:
            logger.exception("Failed to load publish history from %s", self._history_path)
            self._history = []

    def _save_history(self) -> None:
        if self._history_path is None:
            return
        try:
            write_json_atomic(self._history_path, [r.model_dump(mode="json") for r in self._history])
        except OSError:
            logger.exception("Failed to persist publish history to %s", self._history_path)

    def check_tools(self) -> bool:
        """Warn when git or the GitHub CLI is unusable.

        Returns:
            True if both are installed (and `gh` is authenticated).
        """
        ok = True
        if shutil.which("git") is None:
            logger.warning("git executable not found, publishing will fail")
            ok = False
        if not self._github.is_available():
            logger.warning("GitHub CLI missing or not authenticated, remotes will not be created automatically")
            ok = False
        return ok

    async def publish(
        self,
        targets: list[PublishTarget],
        entities: EntitySet,
        message: str | None = None,
    ) -> list[PublishResult]:
        """Publish ``entities`` to every target, in order.

        Args:
            targets: Destinations, processed sequentially.
            entities: Full current catalog.
            message: Commit message used when neither the target nor the
                publisher configures one.

        Returns:
            One result per target, in the same order.
        """
        results: list[PublishResult] = []
        for target in targets:
            result = await self._publish_target(target, entities, message)
            self._history.append(result)
            results.append(result)

        overflow = len(self._history) - self._history_cap
        if overflow > 0:
            del self._history[:overflow]
        await asyncio.to_thread(self._save_history)

        successful = sum(1 for r in results if r.success)
        logger.info(
            "Published to %d/%d targets (%d files changed)",
            successful,
            len(results),
            sum(r.files_changed for r in results),
        )
        return results

    def _message_for(self, target: PublishTarget, message: str | None) -> str:
        return target.commit_message or self.commit_message or message or generate_commit_message()

    async def _publish_target(
        self,
        target: PublishTarget,
        entities: EntitySet,
        message: str | None,
    ) -> PublishResult:
        logger.info("Publishing %d entities to %s (%s)", len(entities), target.name, target.path)
        files_changed = 0
        commit_id: str | None = None
        try:
            await asyncio.to_thread(write_catalog, entities, target.catalog_root)

            vcs = self._vcs_factory(target.path)
            if not await asyncio.to_thread(vcs.is_initialized):
                logger.info("%s is not a git repository, initializing", target.path)
                await asyncio.to_thread(vcs.init, target.branch)
                await self._register_remote(vcs, target)

            await asyncio.to_thread(vcs.stage_all)
            files_changed = await asyncio.to_thread(vcs.changed_files)
            if files_changed == 0:
                logger.info("%s: no changes to commit", target.name)
                return PublishResult(target=target.name, success=True)

            if not self.auto_commit:
                logger.info("%s: %d files changed, auto-commit disabled", target.name, files_changed)
                return PublishResult(target=target.name, success=True, files_changed=files_changed)

            commit_id = await asyncio.to_thread(vcs.commit, self._message_for(target, message))
            logger.info("%s: committed %d files (%s)", target.name, files_changed, commit_id[:8])

            if not self.auto_push:
                return PublishResult(
                    target=target.name,
                    success=True,
                    files_changed=files_changed,
                    commit_id=commit_id,
                )

            if not await asyncio.to_thread(vcs.has_remote, target.remote_name):
                logger.warning(
                    "%s: no remote %s registered, keeping local commit %s",
                    target.name,
                    target.remote_name,
                    commit_id[:8],
                )
                return PublishResult(
                    target=target.name,
                    success=True,
                    files_changed=files_changed,
                    commit_id=commit_id,
                )

            try:
                await asyncio.to_thread(vcs.push, target.remote_name, target.branch)
            except PushFailed as e:
                return self._push_failed(target, files_changed, commit_id, e)

            logger.info("%s: pushed to %s/%s", target.name, target.remote_name, target.branch)
            return PublishResult(
                target=target.name,
                success=True,
                files_changed=files_changed,
                commit_id=commit_id,
                pushed=True,
            )

        except PublishError as e:
            logger.error("%s: publish failed (%s): %s", target.name, e.failure.value, e)
            return PublishResult(
                target=target.name,
                success=False,
                files_changed=files_changed,
                commit_id=commit_id,
                error=str(e),
                failure=e.failure,
            )
        except Exception as e:
            logger.exception("%s: unexpected publish failure", target.name)
            return PublishResult(
                target=target.name,
                success=False,
                files_changed=files_changed,
                commit_id=commit_id,
                error=f"{type(e).__name__}: {e}",
                failure=PublishFailure.UNKNOWN,
            )

    async def _register_remote(self, vcs: VersionControl, target: PublishTarget) -> None:
        """Attach a remote to a freshly initialized repo; failure is non-fatal."""
        try:
            if await asyncio.to_thread(vcs.has_remote, target.remote_name):
                return
            if target.remote_url:
                await asyncio.to_thread(vcs.add_remote, target.remote_name, target.remote_url)
            elif target.create_remote:
                await asyncio.to_thread(
                    vcs.create_remote, target.name, target.remote_name, target.private
                )
            else:
                return
            logger.info("%s: registered remote %s", target.name, target.remote_name)
        except RemoteUnreachable as e:
            logger.warning("%s: could not register remote, continuing locally: %s", target.name, e)

    def _push_failed(
        self,
        target: PublishTarget,
        files_changed: int,
        commit_id: str,
        error: PushFailed,
    ) -> PublishResult:
        if self.push_failure_policy == PushFailurePolicy.REJECT:
            logger.error("%s: push failed, marking target failed: %s", target.name, error)
            return PublishResult(
                target=target.name,
                success=False,
                files_changed=files_changed,
                commit_id=commit_id,
                error=str(error),
                failure=error.failure,
            )

        logger.warning("%s: push failed, keeping local commit %s: %s", target.name, commit_id[:8], error)
        return PublishResult(
            target=target.name,
            success=True,
            files_changed=files_changed,
            commit_id=commit_id,
        )

    async def create_release(self, target: PublishTarget, version: str, notes: str) -> None:
        """Tag HEAD of ``target``, push the tag and publish a GitHub release.

        Raises:
            PublishError: Tagging or pushing the tag failed.
            GitHubCliError: The release could not be created.
        """
        vcs = self._vcs_factory(target.path)
        await asyncio.to_thread(vcs.tag, version, notes)
        await asyncio.to_thread(vcs.push_tag, target.remote_name, version)
        try:
            await asyncio.to_thread(self._github.create_release, target.name, version, notes)
        except GitHubCliError:
            logger.exception("Failed to create release %s for %s", version, target.name)
            raise

    @property
    def history(self) -> list[PublishResult]:
        return list(self._history)

    def statistics(self) -> PublishStatistics:
        return PublishStatistics(
            total_publishes=len(self._history),
            successful=sum(1 for r in self._history if r.success),
            failed=sum(1 for r in self._history if not r.success),
            total_files_changed=sum(r.files_changed for r in self._history),
            last=self._history[-1] if self._history else None,
        )
