"""Tests for the manual trigger HTTP server."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from aiohttp import test_utils

from skill_sync.memory.history import SyncHistory
from skill_sync.memory.snapshot_store import SnapshotStore
from skill_sync.publish.publisher import Publisher
from skill_sync.sources.static import StaticSource
from skill_sync.sync.config import SyncSettings
from skill_sync.sync.orchestrator import SkillSyncOrchestrator
from skill_sync.sync.server import TriggerServer

from conftest import FakeVCSFactory, make_entity

if TYPE_CHECKING:
    from pathlib import Path


class BlockingSource(StaticSource):
    def __init__(self) -> None:
        super().__init__([make_entity("a")])
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def list_entities(self):  # type: ignore[override]
        self.started.set()
        await self.release.wait()
        return await super().list_entities()


def _orchestrator(state_dir: Path, source: StaticSource) -> SkillSyncOrchestrator:
    settings = SyncSettings(state_dir=state_dir, run_on_start=False)
    return SkillSyncOrchestrator(
        settings=settings,
        sources=[source],
        store=SnapshotStore(state_dir),
        history=SyncHistory(settings.history_path),
        publisher=Publisher(vcs_factory=FakeVCSFactory()),
    )


class TestTriggerServer:
    def test_health(self, state_dir: Path) -> None:
        async def run() -> None:
            server = TriggerServer(_orchestrator(state_dir, StaticSource()))
            async with test_utils.TestClient(test_utils.TestServer(server.build_app())) as client:
                response = await client.get("/health")
                assert response.status == 200
                assert await response.text() == "OK"

        asyncio.run(run())

    def test_sync_returns_result(self, state_dir: Path) -> None:
        async def run() -> None:
            server = TriggerServer(_orchestrator(state_dir, StaticSource([make_entity("a")])))
            async with test_utils.TestClient(test_utils.TestServer(server.build_app())) as client:
                response = await client.post("/sync")
                assert response.status == 200
                body = await response.json()
                assert body["success"] is True
                assert body["sources"]["static"]["added"] == 1

        asyncio.run(run())

    def test_sync_conflict_while_running(self, state_dir: Path) -> None:
        source = BlockingSource()
        orchestrator = _orchestrator(state_dir, source)

        async def run() -> None:
            server = TriggerServer(orchestrator)
            async with test_utils.TestClient(test_utils.TestServer(server.build_app())) as client:
                first = asyncio.create_task(client.post("/sync"))
                await source.started.wait()

                second = await client.post("/sync")
                assert second.status == 409
                assert await second.json() == {"error": "already running"}

                source.release.set()
                response = await first
                assert response.status == 200

        asyncio.run(run())
        assert len(orchestrator.history) == 1

    def test_status(self, state_dir: Path) -> None:
        orchestrator = _orchestrator(state_dir, StaticSource([make_entity("a")]))

        async def run() -> None:
            await orchestrator.sync()
            server = TriggerServer(orchestrator)
            async with test_utils.TestClient(test_utils.TestServer(server.build_app())) as client:
                response = await client.get("/status")
                assert response.status == 200
                body = await response.json()
                assert body["state"] == "idle"
                assert body["total_syncs"] == 1
                assert len(body["recent_results"]) == 1
                assert body["publish"]["total_publishes"] == 0

        asyncio.run(run())

    def test_start_and_stop(self, state_dir: Path) -> None:
        async def run() -> None:
            server = TriggerServer(_orchestrator(state_dir, StaticSource()), port=0)
            await server.start()
            await server.stop()
            await server.stop()

        asyncio.run(run())
