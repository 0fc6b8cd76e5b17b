"""Tests for Publisher using an in-memory version-control fake."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import pytest

from skill_sync.entities.results import PublishFailure, SourceCounts
from skill_sync.publish.github import GitHubCli, GitHubCliError
from skill_sync.publish.publisher import (
    Publisher,
    PublishTarget,
    PushFailurePolicy,
    generate_commit_message,
)

from conftest import FakeVCSFactory, make_entity

if TYPE_CHECKING:
    from pathlib import Path


class FakeGitHub:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.releases: list[tuple[str, str, str]] = []

    def create_release(self, repo_name: str, tag: str, notes: str) -> None:
        if self.fail:
            raise GitHubCliError("gh release create exited 1")
        self.releases.append((repo_name, tag, notes))


def _target(tmp_path: Path, name: str, **kwargs: object) -> PublishTarget:
    return PublishTarget(name=name, path=tmp_path / name.replace("/", "_"), **kwargs)


def _entities() -> dict:
    return {"a": make_entity("a"), "b": make_entity("b", enabled=False)}


class TestGenerateCommitMessage:
    def test_no_counts(self) -> None:
        assert generate_commit_message().startswith("chore: skills sync ")

    def test_all_zero(self) -> None:
        assert generate_commit_message({"static": SourceCounts()}).startswith("chore: sync check ")

    def test_summarizes_changes(self) -> None:
        message = generate_commit_message(
            {
                "skill_directory": SourceCounts(added=2, removed=1),
                "tool_registry": SourceCounts(updated=3),
            }
        )
        assert message.startswith("feat: skills sync - ")
        assert "+2 skill_directory" in message
        assert "-1 skill_directory" in message
        assert "~3 tool_registry" in message


class TestPublish:
    def test_first_publish_initializes_commits_pushes(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        publisher = Publisher(vcs_factory=vcs_factory)

        [result] = asyncio.run(publisher.publish([target], _entities(), message="sync"))

        vcs = vcs_factory.for_path(target.path)
        assert vcs.initialized
        assert vcs.branch == "main"
        assert vcs.created_remotes == ["org/catalog"]
        assert result.success
        assert result.pushed
        assert result.files_changed == 3
        assert result.commit_id == vcs.commits[0][0]
        assert vcs.commits[0][1] == "sync"
        assert vcs.pushes == [("origin", "main")]

    def test_second_publish_is_noop(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        publisher = Publisher(vcs_factory=vcs_factory)
        asyncio.run(publisher.publish([target], _entities()))

        [result] = asyncio.run(publisher.publish([target], _entities()))

        assert result.success
        assert result.files_changed == 0
        assert result.commit_id is None
        assert len(vcs_factory.for_path(target.path).commits) == 1

    def test_remote_url_registered(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog", remote_url="git@example.com:org/catalog.git")
        asyncio.run(Publisher(vcs_factory=vcs_factory).publish([target], _entities()))

        vcs = vcs_factory.for_path(target.path)
        assert vcs.remotes == {"origin": "git@example.com:org/catalog.git"}
        assert vcs.created_remotes == []

    def test_remote_creation_failure_is_not_fatal(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        vcs_factory.for_path(target.path).fail_create_remote = "gh not authenticated"
        publisher = Publisher(vcs_factory=vcs_factory, push_failure_policy=PushFailurePolicy.ACCEPT_LOCAL)

        [result] = asyncio.run(publisher.publish([target], _entities()))

        assert result.success
        assert result.commit_id is not None
        assert not result.pushed

    def test_local_only_target_succeeds_under_reject(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/local", create_remote=False)
        publisher = Publisher(vcs_factory=vcs_factory, push_failure_policy=PushFailurePolicy.REJECT)

        [result] = asyncio.run(publisher.publish([target], _entities()))

        assert result.success
        assert not result.pushed
        assert result.error is None
        assert result.commit_id is not None
        assert vcs_factory.for_path(target.path).pushes == []

    def test_remote_creation_failure_succeeds_under_reject(
        self, tmp_path: Path, vcs_factory: FakeVCSFactory
    ) -> None:
        target = _target(tmp_path, "org/catalog")
        vcs_factory.for_path(target.path).fail_create_remote = "gh not authenticated"
        publisher = Publisher(vcs_factory=vcs_factory, push_failure_policy=PushFailurePolicy.REJECT)

        first = asyncio.run(publisher.publish([target], _entities()))
        second = asyncio.run(publisher.publish([target], {"a": make_entity("a")}))

        assert [r.success for r in first + second] == [True, True]
        assert not any(r.pushed for r in first + second)
        assert len(vcs_factory.for_path(target.path).commits) == 2

    def test_auto_commit_disabled(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        [result] = asyncio.run(Publisher(auto_commit=False, vcs_factory=vcs_factory).publish([target], _entities()))

        assert result.success
        assert result.files_changed == 3
        assert result.commit_id is None
        assert vcs_factory.for_path(target.path).commits == []

    def test_auto_push_disabled(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        [result] = asyncio.run(Publisher(auto_push=False, vcs_factory=vcs_factory).publish([target], _entities()))

        assert result.success
        assert result.commit_id is not None
        assert not result.pushed
        assert vcs_factory.for_path(target.path).pushes == []

    def test_commit_failure_classified(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        vcs_factory.for_path(target.path).fail_commit = "index locked"

        [result] = asyncio.run(Publisher(vcs_factory=vcs_factory).publish([target], _entities()))

        assert not result.success
        assert result.failure == PublishFailure.COMMIT_FAILED
        assert "index locked" in result.error

    def test_commit_message_priority(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        own = _target(tmp_path, "org/own", commit_message="target message")
        plain = _target(tmp_path, "org/plain")

        asyncio.run(Publisher(vcs_factory=vcs_factory).publish([own, plain], _entities(), message="run message"))

        assert vcs_factory.for_path(own.path).commits[0][1] == "target message"
        assert vcs_factory.for_path(plain.path).commits[0][1] == "run message"

    def test_subdirectory(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog", subdirectory="catalog")
        asyncio.run(Publisher(vcs_factory=vcs_factory).publish([target], _entities()))
        assert (target.path / "catalog" / "skills.json").exists()


class TestTargetIsolation:
    @pytest.mark.parametrize(
        "policy,middle_success",
        [(PushFailurePolicy.ACCEPT_LOCAL, True), (PushFailurePolicy.REJECT, False)],
    )
    def test_push_failure_on_one_target(
        self,
        tmp_path: Path,
        vcs_factory: FakeVCSFactory,
        policy: PushFailurePolicy,
        middle_success: bool,
    ) -> None:
        targets = [_target(tmp_path, f"org/t{i}") for i in range(3)]
        vcs_factory.for_path(targets[1].path).fail_push = "connection reset"
        publisher = Publisher(vcs_factory=vcs_factory, push_failure_policy=policy)

        results = asyncio.run(publisher.publish(targets, _entities()))

        assert [r.target for r in results] == ["org/t0", "org/t1", "org/t2"]
        assert results[0].success and results[0].pushed
        assert results[2].success and results[2].pushed
        assert results[1].success is middle_success
        assert not results[1].pushed
        assert results[1].commit_id is not None
        if middle_success:
            assert results[1].error is None
        else:
            assert results[1].failure == PublishFailure.PUSH_FAILED
            assert "connection reset" in results[1].error

    def test_unexpected_error_does_not_stop_others(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        blocked = tmp_path / "blocked"
        blocked.write_text("not a directory")
        targets = [
            PublishTarget(name="org/blocked", path=blocked),
            _target(tmp_path, "org/ok"),
        ]

        results = asyncio.run(Publisher(vcs_factory=vcs_factory).publish(targets, _entities()))

        assert not results[0].success
        assert results[0].failure == PublishFailure.UNKNOWN
        assert results[1].success


class TestStatisticsAndRelease:
    def test_statistics(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        ok = _target(tmp_path, "org/ok")
        bad = _target(tmp_path, "org/bad")
        vcs_factory.for_path(bad.path).fail_commit = "nope"
        publisher = Publisher(vcs_factory=vcs_factory)

        asyncio.run(publisher.publish([ok, bad], _entities()))
        stats = publisher.statistics()

        assert stats.total_publishes == 2
        assert stats.successful == 1
        assert stats.failed == 1
        assert stats.total_files_changed == 6
        assert stats.last.target == "org/bad"
        assert len(publisher.history) == 2

    def test_create_release(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        github = FakeGitHub()
        publisher = Publisher(vcs_factory=vcs_factory, github=github)

        asyncio.run(publisher.create_release(target, "v1.0.0", "First release"))

        vcs = vcs_factory.for_path(target.path)
        assert vcs.tags == ["v1.0.0"]
        assert vcs.pushed_tags == ["v1.0.0"]
        assert github.releases == [("org/catalog", "v1.0.0", "First release")]

    def test_create_release_failure_propagates(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        target = _target(tmp_path, "org/catalog")
        publisher = Publisher(vcs_factory=vcs_factory, github=FakeGitHub(fail=True))
        with pytest.raises(GitHubCliError):
            asyncio.run(publisher.create_release(target, "v1.0.0", "notes"))


class TestPersistenceAndTools:
    def test_history_survives_restart(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        history_path = tmp_path / "state" / "publish-history.json"
        target = _target(tmp_path, "org/catalog")
        asyncio.run(Publisher(vcs_factory=vcs_factory, history_path=history_path).publish([target], _entities()))

        restarted = Publisher(vcs_factory=vcs_factory, history_path=history_path)

        stats = restarted.statistics()
        assert stats.total_publishes == 1
        assert stats.successful == 1
        assert stats.total_files_changed == 3
        assert stats.last.commit_id == vcs_factory.for_path(target.path).commits[0][0]

    def test_history_cap(self, tmp_path: Path, vcs_factory: FakeVCSFactory) -> None:
        history_path = tmp_path / "publish-history.json"
        publisher = Publisher(vcs_factory=vcs_factory, history_path=history_path, history_cap=2)
        targets = [_target(tmp_path, f"org/t{i}") for i in range(3)]

        asyncio.run(publisher.publish(targets, _entities()))

        assert [r.target for r in publisher.history] == ["org/t1", "org/t2"]
        assert len(json.loads(history_path.read_text())) == 2

    def test_corrupt_history_starts_empty(self, tmp_path: Path) -> None:
        history_path = tmp_path / "publish-history.json"
        history_path.write_text("{nope")
        assert Publisher(history_path=history_path).statistics().total_publishes == 0

    def test_check_tools_reports_missing_gh(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("skill_sync.publish.publisher.shutil.which", lambda _name: "/usr/bin/git")
        publisher = Publisher(github=GitHubCli(executable="skill-sync-no-such-gh"))
        assert publisher.check_tools() is False

    def test_check_tools_ok(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class AvailableGitHub(FakeGitHub):
            def is_available(self) -> bool:
                return True

        monkeypatch.setattr("skill_sync.publish.publisher.shutil.which", lambda _name: "/usr/bin/git")
        assert Publisher(github=AvailableGitHub()).check_tools() is True

    def test_check_tools_reports_missing_git(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class AvailableGitHub(FakeGitHub):
            def is_available(self) -> bool:
                return True

        monkeypatch.setattr("skill_sync.publish.publisher.shutil.which", lambda _name: None)
        assert Publisher(github=AvailableGitHub()).check_tools() is False
