"""HTTP-backed upstream sources: a chat-bot skill directory and a tool registry."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from skill_sync.entities.skills import Entity, SourceKind
from skill_sync.sources.base import SourceFetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

# Skill directory fields that are not first-class entity fields.
_SKILL_EXTRA_FIELDS = ("version", "author", "category", "dependencies")


class SkillDirectorySource:
    """Fetches skills from a chat-bot's ``GET /skills`` endpoint.

    The endpoint answers ``{"skills": [{"id", "name", "description",
    "enabled", "configuration", ...}]}``.
    """

    kind = SourceKind.SKILL_DIRECTORY

    def __init__(
        self,
        api_endpoint: str,
        auth_token: str | None = None,
        id_prefix: str = "skill",
        empty_is_authoritative: bool = False,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            api_endpoint: Base URL of the skill directory API.
            auth_token: Optional bearer token.
            id_prefix: Namespace prefix for entity ids.
            empty_is_authoritative: Trust an empty answer as "all removed".
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (for tests).
        """
        self.api_endpoint = api_endpoint.rstrip("/")
        self.empty_is_authoritative = empty_is_authoritative
        self._auth_token = auth_token
        self._id_prefix = id_prefix
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    def _to_entity(self, raw: dict[str, Any]) -> Entity:
        configuration = dict(raw.get("configuration") or {})
        for key in _SKILL_EXTRA_FIELDS:
            if raw.get(key) not in (None, "", []):
                configuration.setdefault(key, raw[key])
        return Entity(
            id=Entity.make_id(self._id_prefix, raw["id"]),
            name=raw.get("name") or str(raw["id"]),
            description=raw.get("description") or "",
            source=self.kind,
            enabled=bool(raw.get("enabled", True)),
            configuration=configuration,
        )

    async def list_entities(self) -> list[Entity]:
        url = f"{self.api_endpoint}/skills"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, headers=self._headers())
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise SourceFetchError(f"skill directory request failed: {e}") from e
        except ValueError as e:
            raise SourceFetchError(f"skill directory returned invalid JSON: {e}") from e

        raw_skills = payload.get("skills") if isinstance(payload, dict) else None
        if not isinstance(raw_skills, list):
            raise SourceFetchError("skill directory response has no 'skills' list")

        try:
            entities = [self._to_entity(item) for item in raw_skills]
        except (KeyError, TypeError, ValueError) as e:
            raise SourceFetchError(f"malformed skill entry: {e}") from e

        logger.info("Fetched %d skills from %s", len(entities), url)
        return entities


class ToolRegistrySource:
    """Lists tools from an MCP-style registry via JSON-RPC ``tools/list``."""

    kind = SourceKind.TOOL_REGISTRY

    def __init__(
        self,
        server_url: str,
        id_prefix: str = "tool",
        empty_is_authoritative: bool = False,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.server_url = server_url
        self.empty_is_authoritative = empty_is_authoritative
        self._id_prefix = id_prefix
        self._timeout = timeout
        self._transport = transport

    def _to_entity(self, raw: dict[str, Any]) -> Entity:
        name = raw["name"]
        return Entity(
            id=Entity.make_id(self._id_prefix, name),
            name=name,
            description=raw.get("description") or "",
            source=self.kind,
            enabled=True,
            configuration={"inputSchema": raw.get("inputSchema") or {}},
        )

    async def list_entities(self) -> list[Entity]:
        request = {"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self.server_url, json=request)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise SourceFetchError(f"tool registry request failed: {e}") from e
        except ValueError as e:
            raise SourceFetchError(f"tool registry returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise SourceFetchError("tool registry returned a non-object response")
        if payload.get("error"):
            raise SourceFetchError(f"tool registry error: {payload['error']}")

        tools = (payload.get("result") or {}).get("tools")
        if not isinstance(tools, list):
            raise SourceFetchError("tool registry response has no 'result.tools' list")

        try:
            entities = [self._to_entity(tool) for tool in tools]
        except (KeyError, TypeError, ValueError) as e:
            raise SourceFetchError(f"malformed tool entry: {e}") from e

        logger.info("Fetched %d tools from %s", len(entities), self.server_url)
        return entities
