"""Sync module: scheduling, orchestration, notification and manual triggers."""

from skill_sync.sync.config import (
    SYNC_SETTINGS,
    AppConfig,
    ConfigError,
    PublishSettings,
    SourceSettings,
    SourceType,
    SyncSettings,
    load_config,
)
from skill_sync.sync.notifier import (
    LogSink,
    NotificationSink,
    SyncNotifier,
    WebhookSink,
    format_summary,
    has_changes,
)
from skill_sync.sync.orchestrator import SkillSyncOrchestrator, SyncStatus, build_source
from skill_sync.sync.scheduler import AlreadyRunning, SchedulerState, SyncScheduler
from skill_sync.sync.server import TriggerServer

__all__ = [
    "AlreadyRunning",
    "AppConfig",
    "ConfigError",
    "LogSink",
    "NotificationSink",
    "PublishSettings",
    "SYNC_SETTINGS",
    "SchedulerState",
    "SkillSyncOrchestrator",
    "SourceSettings",
    "SourceType",
    "SyncNotifier",
    "SyncScheduler",
    "SyncSettings",
    "SyncStatus",
    "TriggerServer",
    "WebhookSink",
    "build_source",
    "format_summary",
    "has_changes",
    "load_config",
]
