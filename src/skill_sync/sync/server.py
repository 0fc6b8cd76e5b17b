"""HTTP surface for manual sync triggers and status."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiohttp import web

from skill_sync.sync.scheduler import AlreadyRunning

if TYPE_CHECKING:
    from skill_sync.sync.orchestrator import SkillSyncOrchestrator

logger = logging.getLogger(__name__)


class TriggerServer:
    """Exposes ``POST /sync``, ``GET /status`` and ``GET /health``.

    ``POST /sync`` answers 200 with the run's SyncResult, or 409 when a
    run is already in progress.
    """

    def __init__(
        self,
        orchestrator: SkillSyncOrchestrator,
        host: str = "127.0.0.1",
        port: int = 9848,
    ) -> None:
        self._orchestrator = orchestrator
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/sync", self._handle_sync)
        app.router.add_get("/status", self._handle_status)
        app.router.add_get("/health", self._handle_health)
        return app

    async def _handle_sync(self, _request: web.Request) -> web.Response:
        """Run a sync and return its result."""
        logger.info("Manual sync requested")
        try:
            result = await self._orchestrator.sync()
        except AlreadyRunning:
            logger.warning("Manual sync rejected: a run is already in progress")
            return web.json_response({"error": "already running"}, status=409)
        return web.json_response(result.model_dump(mode="json"), status=200)

    async def _handle_status(self, _request: web.Request) -> web.Response:
        status = self._orchestrator.get_status()
        return web.json_response(status.model_dump(mode="json"), status=200)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.Response(text="OK", status=200)

    async def start(self) -> None:
        """Bind the trigger routes on host:port."""
        runner = web.AppRunner(self.build_app())
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        await site.start()
        self._runner, self._site = runner, site
        logger.info("Trigger server listening on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        # cleanup() also stops every site bound to the runner
        await self._runner.cleanup()
        self._runner = self._site = None
        logger.info("Trigger server stopped")
