"""MCP (Model Context Protocol) server connections.

Connects to every configured MCP server over stdio (``command``) or SSE
(``url``) using the official SDK, caches each server's tool list at startup
and forwards tool calls. A server that fails to connect is logged and
skipped; the rest keep working.
"""

from __future__ import annotations

import asyncio
import json
import os
from contextlib import AsyncExitStack
from typing import Any

from mcp import ClientSession, StdioServerParameters, types
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client

from lingti_bot.config import McpServerConfig
from lingti_bot.core.errors import ToolExecutionError
from lingti_bot.log import get_logger
from lingti_bot.services.base import Service

logger = get_logger(__name__)


class McpManager(Service):
    """Owns the client sessions for all configured MCP servers."""

    def __init__(self, servers: list[McpServerConfig], connect_timeout: float = 30.0) -> None:
        self._configs = servers
        self._connect_timeout = connect_timeout
        self._exit_stack = AsyncExitStack()
        self._sessions: dict[str, ClientSession] = {}
        self._tools: dict[str, list[types.Tool]] = {}

    @property
    def service_name(self) -> str:
        return "mcp"

    # ── lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        for cfg in self._configs:
            try:
                await self._connect(cfg)
            except Exception as e:
                logger.error("mcp_server_connect_failed", server=cfg.name, error=str(e))
        logger.info(
            "mcp_started",
            connected=len(self._sessions),
            configured=len(self._configs),
            tools=sum(len(t) for t in self._tools.values()),
        )

    async def stop(self) -> None:
        await self._exit_stack.aclose()
        self._exit_stack = AsyncExitStack()
        self._sessions.clear()
        self._tools.clear()
        logger.info("mcp_stopped")

    async def health_check(self) -> bool:
        return len(self._sessions) == len(self._configs)

    async def _connect(self, cfg: McpServerConfig) -> None:
        if not cfg.url and not cfg.command:
            raise ValueError(f"MCP server '{cfg.name}' needs either 'command' or 'url'")

        stack = AsyncExitStack()
        try:
            if cfg.url:
                read, write = await stack.enter_async_context(sse_client(cfg.url))
            else:
                params = StdioServerParameters(
                    command=cfg.command,
                    args=cfg.args,
                    env={**os.environ, **cfg.env} if cfg.env else None,
                )
                read, write = await stack.enter_async_context(stdio_client(params))
            session = await stack.enter_async_context(ClientSession(read, write))
            await asyncio.wait_for(session.initialize(), timeout=self._connect_timeout)
            listed = await asyncio.wait_for(session.list_tools(), timeout=self._connect_timeout)
        except Exception:
            await stack.aclose()
            raise

        await self._exit_stack.enter_async_context(stack)
        self._sessions[cfg.name] = session
        self._tools[cfg.name] = list(listed.tools)
        logger.info("mcp_server_connected", server=cfg.name, tools=len(listed.tools))

    # ── public API ──────────────────────────────────────────────

    def tools(self) -> dict[str, list[types.Tool]]:
        """Cached tool listings per connected server."""
        return {name: list(tools) for name, tools in self._tools.items()}

    def servers(self) -> list[str]:
        return list(self._sessions)

    async def call_tool(
        self, server: str, name: str, arguments: dict[str, Any] | None = None
    ) -> tuple[str, bool]:
        """Call *name* on *server*, returning (content, is_error)."""
        session = self._sessions.get(server)
        if session is None:
            raise ToolExecutionError(f"MCP server '{server}' is not connected")

        logger.debug("mcp_call_tool", server=server, tool=name)
        result = await session.call_tool(name, arguments or {})
        return render_content(result.content), bool(result.isError)


def render_content(content: list[Any]) -> str:
    """Flatten MCP content items into the text handed back to the model."""
    parts: list[str] = []
    for item in content:
        match getattr(item, "type", None):
            case "text":
                parts.append(item.text)
            case "image" | "audio":
                parts.append(f"[{item.type} content: {item.mimeType}]")
            case _:
                parts.append(json.dumps(item.model_dump(mode="json", exclude_none=True), ensure_ascii=False))
    return "\n".join(parts)
