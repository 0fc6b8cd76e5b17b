"""Human-readable change summaries and best-effort delivery."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

if TYPE_CHECKING:
    from skill_sync.entities.results import SyncResult

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationSink(Protocol):
    """Delivers a summary somewhere a human will see it."""

    async def send(self, summary: str) -> None: ...


class LogSink:
    """Default sink: writes the summary to the log."""

    async def send(self, summary: str) -> None:
        logger.info("%s", summary)


class WebhookSink:
    """POSTs ``{"text": summary}`` to a chat webhook (Slack, Discord, ...)."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._timeout = timeout
        self._transport = transport

    async def send(self, summary: str) -> None:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self.url, json={"text": summary})
            response.raise_for_status()


def has_changes(result: SyncResult) -> bool:
    """True iff any source reported a nonzero add, update or remove count."""
    return any(c.total_changes > 0 for c in result.sources.values())


def format_summary(result: SyncResult) -> str:
    lines = ["Skills sync completed", ""]
    for source, counts in result.sources.items():
        if counts.skipped:
            lines.append(f"- {source}: skipped")
        else:
            lines.append(f"- {source}: +{counts.added} ~{counts.updated} -{counts.removed}")
    lines.append(f"- Total skills: {result.total_entities}")

    failed = [r.target for r in result.publish_results if not r.success]
    if failed:
        lines.append(f"- Failed targets: {', '.join(failed)}")

    lines.append("")
    lines.append(f"Timestamp: {result.timestamp.isoformat()}")
    return "\n".join(lines)


class SyncNotifier:
    """Formats run summaries and hands them to a sink.

    Delivery is best-effort: sink failures are logged and never fail the run.
    """

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self.sink = sink or LogSink()

    async def notify(self, result: SyncResult) -> bool:
        """Send a summary of ``result``. Returns False if delivery failed."""
        summary = format_summary(result)
        try:
            await self.sink.send(summary)
        except Exception:
            logger.exception("Failed to deliver sync notification")
            return False
        return True
