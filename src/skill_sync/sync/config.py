"""Configuration for skill sync."""

from __future__ import annotations

import json
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from skill_sync.entities.skills import SourceKind
from skill_sync.memory.history import DEFAULT_HISTORY_CAP
from skill_sync.publish.publisher import PublishTarget, PushFailurePolicy

DEFAULT_STATE_DIR = Path.home() / ".skill-sync"


class ConfigError(Exception):
    """The configuration file is missing or invalid."""


class SyncSettings(BaseModel):
    """Scheduling, persistence and notification settings."""

    # Scheduling
    interval_seconds: int = Field(default=24 * 60 * 60, gt=0, description="Sync interval (default: 24 hours)")
    run_on_start: bool = Field(default=True, description="Run one sync immediately on start")
    enabled: bool = Field(default=True, description="Arm the recurring timer")

    # Storage
    state_dir: Path = Field(default_factory=lambda: DEFAULT_STATE_DIR, description="Snapshot, backup and history location")
    backup_before_sync: bool = Field(default=True, description="Back up the snapshot before committing")
    backup_retention: int | None = Field(default=None, ge=1, description="Keep only this many backups")
    history_cap: int = Field(default=DEFAULT_HISTORY_CAP, ge=1, description="Sync results kept in history")

    # Notification
    notify_on_changes: bool = Field(default=True, description="Send a summary when anything changed")
    notify_webhook_url: str | None = Field(default=None, description="POST summaries here instead of logging")

    # Manual trigger server
    trigger_host: str = Field(default="127.0.0.1")
    trigger_port: int = Field(default=9848, description="Port for the manual trigger server")

    @property
    def history_path(self) -> Path:
        return self.state_dir / "sync-history.json"

    @property
    def publish_history_path(self) -> Path:
        return self.state_dir / "publish-history.json"


class PublishSettings(BaseModel):
    """Publisher behaviour and the list of targets."""

    auto_commit: bool = Field(default=True)
    auto_push: bool = Field(default=True)
    push_failure_policy: PushFailurePolicy = Field(default=PushFailurePolicy.ACCEPT_LOCAL)
    commit_message: str | None = Field(default=None, description="Fixed commit message for all targets")
    targets: list[PublishTarget] = Field(default_factory=list)


class SourceType(StrEnum):
    """Source implementations that can be built from configuration."""

    SKILL_DIRECTORY = "skill_directory"
    TOOL_REGISTRY = "tool_registry"
    STATIC_FILE = "static_file"


class SourceSettings(BaseModel):
    """One upstream source."""

    type: SourceType
    url: str | None = Field(default=None, description="API endpoint or server URL")
    auth_token: str | None = Field(default=None)
    path: Path | None = Field(default=None, description="Catalog file for static_file sources")
    kind: SourceKind | None = Field(default=None, description="Entity source tag for static_file sources")
    empty_is_authoritative: bool = Field(default=False, description="Trust an empty answer as 'everything removed'")
    timeout_seconds: float = Field(default=30.0, gt=0)


class AppConfig(BaseModel):
    """Top-level configuration file."""

    sync: SyncSettings = Field(default_factory=SyncSettings)
    publish: PublishSettings = Field(default_factory=PublishSettings)
    sources: list[SourceSettings] = Field(default_factory=list)


def load_config(path: Path) -> AppConfig:
    """Load an ``AppConfig`` from a JSON or YAML file.

    Raises:
        ConfigError: The file cannot be read or does not validate.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config {path}: {e}") from e

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e


# Default configuration
SYNC_SETTINGS = SyncSettings()
