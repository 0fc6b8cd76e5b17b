"""
GitHub CLI wrapper for remote repository and release creation.

Wraps the GitHub CLI (`gh`). Requires `gh` to be installed and
authenticated; every failure surfaces as ``GitHubCliError``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path  # noqa: TC003

logger = logging.getLogger(__name__)


class GitHubCliError(Exception):
    """Error from a `gh` invocation."""


class GitHubCli:
    """Thin wrapper over `gh` for the operations the publisher needs."""

    def __init__(self, executable: str = "gh", timeout: float = 120.0) -> None:
        self.executable = executable
        self.timeout = timeout

    def _run(self, args: list[str], cwd: Path | None = None) -> str:
        cmd = [self.executable, *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GitHubCliError(f"failed to run {' '.join(cmd)}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.strip() or result.stdout.strip()
            raise GitHubCliError(f"{' '.join(cmd)} exited {result.returncode}: {stderr}")
        return result.stdout.strip()

    def is_available(self) -> bool:
        """Check if GitHub CLI is installed and authenticated."""
        try:
            self._run(["auth", "status"])
        except GitHubCliError:
            return False
        return True

    def create_repo(
        self,
        repo_name: str,
        source_dir: Path,
        remote_name: str = "origin",
        private: bool = True,
    ) -> None:
        """Create ``repo_name`` on GitHub and register it as ``remote_name``."""
        visibility = "--private" if private else "--public"
        self._run(
            ["repo", "create", repo_name, visibility, "--source=.", f"--remote={remote_name}"],
            cwd=source_dir,
        )
        logger.info("Created GitHub repository %s", repo_name)

    def create_release(self, repo_name: str, tag: str, notes: str) -> None:
        """Publish a GitHub release for an already pushed tag."""
        self._run(["release", "create", tag, "--repo", repo_name, "--title", tag, "--notes", notes])
        logger.info("Created release %s for %s", tag, repo_name)
