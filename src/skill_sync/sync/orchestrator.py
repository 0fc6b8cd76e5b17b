"""Sync orchestrator: fetch, reconcile, persist, publish, record, notify."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from skill_sync.entities.results import SourceCounts, SyncResult
from skill_sync.entities.skills import SourceKind
from skill_sync.memory.history import SyncHistory
from skill_sync.memory.snapshot_store import SnapshotStore, StoreUnavailable
from skill_sync.nodes.reconciler import apply_changes, reconcile
from skill_sync.publish.publisher import (
    Publisher,
    PublishStatistics,
    PublishTarget,
    generate_commit_message,
)
from skill_sync.sources.http import SkillDirectorySource, ToolRegistrySource
from skill_sync.sources.static import StaticSource
from skill_sync.sync.config import AppConfig, SourceSettings, SourceType, SyncSettings
from skill_sync.sync.notifier import SyncNotifier, WebhookSink, has_changes
from skill_sync.sync.scheduler import SchedulerState, SyncScheduler

if TYPE_CHECKING:
    from skill_sync.entities.results import PublishResult
    from skill_sync.entities.skills import EntitySet
    from skill_sync.sources.base import UpstreamSource

logger = logging.getLogger(__name__)


class SyncStatus(BaseModel):
    """Point-in-time view of the sync system."""

    state: SchedulerState
    auto_sync_enabled: bool
    last_sync: datetime | None = None
    next_sync: datetime | None = None
    total_syncs: int = 0
    skipped_fires: int = 0
    recent_results: list[SyncResult] = Field(default_factory=list)
    publish: PublishStatistics = Field(default_factory=PublishStatistics)


def build_source(settings: SourceSettings) -> UpstreamSource:
    """Instantiate the source described by ``settings``."""
    if settings.type == SourceType.SKILL_DIRECTORY:
        if not settings.url:
            raise ValueError("skill_directory source requires 'url'")
        return SkillDirectorySource(
            settings.url,
            auth_token=settings.auth_token,
            empty_is_authoritative=settings.empty_is_authoritative,
            timeout=settings.timeout_seconds,
        )
    if settings.type == SourceType.TOOL_REGISTRY:
        if not settings.url:
            raise ValueError("tool_registry source requires 'url'")
        return ToolRegistrySource(
            settings.url,
            empty_is_authoritative=settings.empty_is_authoritative,
            timeout=settings.timeout_seconds,
        )
    if not settings.path:
        raise ValueError("static_file source requires 'path'")
    return StaticSource.from_json_file(
        settings.path,
        kind=settings.kind or SourceKind.STATIC,
        empty_is_authoritative=settings.empty_is_authoritative,
    )


class SkillSyncOrchestrator:
    """Wires sources, store, reconciler, publisher, history and notifier
    into a single ``sync()`` operation.

    Only one run is ever active: every run goes through the scheduler,
    whose idle/running guard is the sole concurrency control for the
    snapshot store and the history log.
    """

    def __init__(
        self,
        settings: SyncSettings,
        sources: list[UpstreamSource],
        store: SnapshotStore,
        history: SyncHistory,
        publisher: Publisher,
        targets: list[PublishTarget] | None = None,
        notifier: SyncNotifier | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            settings: Scheduling, persistence and notification settings.
            sources: Upstream sources, reconciled in this order.
            store: Snapshot store.
            history: Run history.
            publisher: Publisher for the targets.
            targets: Publish targets, published in this order.
            notifier: Change notifier (defaults to logging).

        Raises:
            ValueError: Two sources share the same kind.
        """
        kinds = [s.kind for s in sources]
        duplicates = sorted({k.value for k in kinds if kinds.count(k) > 1})
        if duplicates:
            raise ValueError(f"duplicate source kinds: {', '.join(duplicates)}")

        self.settings = settings
        self.sources = list(sources)
        self.store = store
        self.history = history
        self.publisher = publisher
        self.targets = list(targets or [])
        self.notifier = notifier or SyncNotifier()
        self.scheduler: SyncScheduler[SyncResult] = SyncScheduler(
            self._run,
            interval_seconds=settings.interval_seconds,
            run_on_start=settings.run_on_start,
            enabled=settings.enabled,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> SkillSyncOrchestrator:
        """Build an orchestrator with real collaborators from configuration."""
        settings = config.sync
        notifier = SyncNotifier(WebhookSink(settings.notify_webhook_url)) if settings.notify_webhook_url else None
        return cls(
            settings=settings,
            sources=[build_source(s) for s in config.sources],
            store=SnapshotStore(settings.state_dir),
            history=SyncHistory(settings.history_path, cap=settings.history_cap),
            publisher=Publisher(
                auto_commit=config.publish.auto_commit,
                auto_push=config.publish.auto_push,
                push_failure_policy=config.publish.push_failure_policy,
                commit_message=config.publish.commit_message,
                history_path=settings.publish_history_path,
                history_cap=settings.history_cap,
            ),
            targets=config.publish.targets,
            notifier=notifier,
        )

    async def sync(self) -> SyncResult:
        """Run one sync now.

        Raises:
            AlreadyRunning: A run is already in progress.
        """
        return await self.scheduler.trigger_now()

    trigger_now = sync

    async def check_tools(self) -> bool:
        """Warn once if the publish tooling is unusable. No-op without targets."""
        if not self.targets:
            return True
        return await asyncio.to_thread(self.publisher.check_tools)

    async def start(self) -> None:
        await self.check_tools()
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    def get_status(self) -> SyncStatus:
        last = self.history.last()
        next_sync = self.scheduler.next_fire_at
        return SyncStatus(
            state=self.scheduler.state,
            auto_sync_enabled=self.scheduler.is_armed,
            last_sync=last.timestamp if last else None,
            next_sync=next_sync,
            total_syncs=len(self.history),
            skipped_fires=self.scheduler.skipped_fires,
            recent_results=self.history.recent(10),
            publish=self.publisher.statistics(),
        )

    async def _fetch_and_reconcile(
        self,
        current: EntitySet,
        errors: list[str],
    ) -> tuple[EntitySet, dict[str, SourceCounts]]:
        merged = dict(current)
        counts: dict[str, SourceCounts] = {}

        for source in self.sources:
            name = source.kind.value
            try:
                fetched = await source.list_entities()
            except Exception as e:
                logger.error("Fetch from %s failed, skipping it this run: %s", name, e)
                errors.append(f"{name}: fetch failed: {e}")
                counts[name] = SourceCounts(skipped=True)
                continue

            scoped = {eid: e for eid, e in current.items() if e.source == source.kind}
            if not fetched and scoped:
                if not source.empty_is_authoritative:
                    logger.warning(
                        "%s returned no entities but %d are synced; refusing mass removal "
                        "(likely an upstream outage)",
                        name,
                        len(scoped),
                    )
                    errors.append(f"{name}: empty result refused, {len(scoped)} entities kept")
                    counts[name] = SourceCounts(skipped=True)
                    continue
                logger.warning("%s returned no entities, removing all %d synced entities", name, len(scoped))

            changes = reconcile(scoped, fetched)
            merged = apply_changes(merged, changes)
            counts[name] = SourceCounts.from_changes(changes, fetched=len(fetched))

            for entity in changes.added:
                logger.info("  + %s (%s)", entity.name, entity.id)
            for update in changes.updated:
                logger.info("  ~ %s (%s)", update.new.name, update.new.id)
            for entity in changes.removed:
                logger.info("  - %s (%s)", entity.name, entity.id)
            logger.info(
                "%s: fetched %d, +%d ~%d -%d",
                name,
                len(fetched),
                len(changes.added),
                len(changes.updated),
                len(changes.removed),
            )

        return merged, counts

    async def _run(self) -> SyncResult:
        logger.info("=== Starting skills sync ===")
        timestamp = datetime.now(tz=UTC)
        started = time.monotonic()
        errors: list[str] = []
        counts: dict[str, SourceCounts] = {}
        publish_results: list[PublishResult] = []
        backup_path: str | None = None
        total_entities = 0
        committed = False
        success = False

        try:
            current = await asyncio.to_thread(self.store.load)
        except StoreUnavailable as e:
            logger.error("Cannot load snapshot, aborting run: %s", e)
            errors.append(f"store: {e}")
        else:
            merged, counts = await self._fetch_and_reconcile(current, errors)
            total_entities = len(merged)

            try:
                if self.settings.backup_before_sync:
                    backup = await asyncio.to_thread(self.store.backup, current)
                    backup_path = str(backup.path)
                await asyncio.to_thread(self.store.commit, merged)
            except StoreUnavailable as e:
                logger.error("Snapshot persistence failed, not publishing: %s", e)
                errors.append(f"store: {e}")
                total_entities = len(current)
            else:
                committed = success = True
                if self.settings.backup_retention is not None:
                    try:
                        await asyncio.to_thread(self.store.prune_backups, self.settings.backup_retention)
                    except OSError as e:
                        logger.warning("Backup pruning failed: %s", e)

                if self.targets:
                    publish_results = await self.publisher.publish(
                        self.targets,
                        merged,
                        message=generate_commit_message(counts),
                    )
                    for r in publish_results:
                        if not r.success:
                            errors.append(f"{r.target}: {r.error}")
                    if not any(r.success for r in publish_results):
                        logger.error("Publishing failed for every target")
                        success = False

        result = SyncResult(
            timestamp=timestamp,
            sources=counts,
            total_entities=total_entities,
            success=success,
            errors=errors,
            publish_results=publish_results,
            backup_path=backup_path,
            duration_seconds=round(time.monotonic() - started, 3),
        )

        try:
            await asyncio.to_thread(self.history.append, result)
        except OSError:
            logger.exception("Failed to persist sync history")

        if committed and self.settings.notify_on_changes and has_changes(result):
            await self.notifier.notify(result)

        logger.info(
            "=== Sync %s in %.2fs: %d changes, %d entities, %d errors ===",
            "completed" if result.success else "failed",
            result.duration_seconds,
            result.total_changes,
            result.total_entities,
            len(result.errors),
        )
        return result
