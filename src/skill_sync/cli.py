"""Command line entry point.

Usage:
    skill-sync --config sync.yaml run
    skill-sync --config sync.yaml serve
    skill-sync --config sync.yaml status
    skill-sync --config sync.yaml history --limit 5
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from pathlib import Path

from skill_sync.sync.config import AppConfig, ConfigError, load_config
from skill_sync.sync.notifier import format_summary
from skill_sync.sync.orchestrator import SkillSyncOrchestrator
from skill_sync.sync.server import TriggerServer

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    # stderr only, stdout carries command output
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skill-sync", description="Sync and publish the skill catalog")
    parser.add_argument("--config", type=Path, default=None, help="JSON or YAML config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Run one sync and exit")
    sub.add_parser("serve", help="Run the scheduler and the manual trigger server")
    sub.add_parser("status", help="Print sync status as JSON")
    history = sub.add_parser("history", help="Print recent sync results")
    history.add_argument("--limit", type=int, default=10, help="Number of results")
    return parser


async def _serve(orchestrator: SkillSyncOrchestrator) -> None:
    settings = orchestrator.settings
    server = TriggerServer(orchestrator, host=settings.trigger_host, port=settings.trigger_port)
    await server.start()
    try:
        await orchestrator.start()
        while True:
            await asyncio.sleep(3600)
    finally:
        await orchestrator.stop()
        await orchestrator.scheduler.wait_idle()
        await server.stop()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(args.config) if args.config else AppConfig()
        orchestrator = SkillSyncOrchestrator.from_config(config)
    except (ConfigError, ValueError, OSError) as e:
        logger.error("Configuration error: %s", e)
        return 2

    if args.command == "run":
        asyncio.run(orchestrator.check_tools())
        result = asyncio.run(orchestrator.sync())
        print(format_summary(result))
        for error in result.errors:
            print(f"error: {error}")
        return 0 if result.success else 1

    if args.command == "serve":
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(_serve(orchestrator))
        return 0

    if args.command == "status":
        print(orchestrator.get_status().model_dump_json(indent=2))
        return 0

    results = orchestrator.history.recent(args.limit)
    print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
