"""Tool bridge: one sanitized, de-duplicated tool list over local and MCP tools.

Provider tool-name grammars are narrow (roughly ``^[a-zA-Z0-9_-]{1,64}$``), so
every name is sanitized before it is offered to a model. The bridge keeps a
reverse table from each sanitized name to its (source, original name) so a
call can be dispatched to the right executor.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any

from lingti_bot.ai.models import ToolCall, ToolDefinition, ToolResult, ToolRoute
from lingti_bot.ai.tools.registry import ToolRegistry
from lingti_bot.core.types import LOCAL_TOOL_SOURCE
from lingti_bot.log import get_logger

if TYPE_CHECKING:
    from lingti_bot.services.mcp_manager import McpManager

logger = get_logger(__name__)

MCP_TOOL_PREFIX = "mcp_"
MAX_TOOL_NAME_LENGTH = 64

_DISALLOWED = re.compile(r"[^a-z0-9_]")


def is_mcp_tool(name: str) -> bool:
    """Whether *name* carries the prefix reserved for MCP-hosted tools."""
    return name.startswith(MCP_TOOL_PREFIX)


def sanitize_name(name: str) -> str:
    """Lower-case *name* and replace every disallowed character with ``_``."""
    return _DISALLOWED.sub("_", name.lower())[:MAX_TOOL_NAME_LENGTH]


def mcp_tool_name(server: str, tool: str) -> str:
    return sanitize_name(f"{MCP_TOOL_PREFIX}{server}_{tool}")


class ToolBridge:
    """Assembles tool definitions and routes tool calls to their executors."""

    def __init__(
        self,
        registry: ToolRegistry,
        mcp: McpManager | None = None,
        enabled: list[str] | None = None,
    ):
        self._registry = registry
        self._mcp = mcp
        self._enabled = list(enabled) if enabled else None
        self._definitions: list[ToolDefinition] = []
        self._routes: dict[str, ToolRoute] = {}
        self.refresh()

    def refresh(self) -> None:
        """Rebuild the tool list from the registry and the MCP servers' cached listings."""
        definitions: list[ToolDefinition] = []
        routes: dict[str, ToolRoute] = {}

        def _add(raw_name: str, description: str, schema: dict[str, Any], route: ToolRoute) -> None:
            name = _unique(raw_name, routes)
            if name != raw_name:
                logger.warning(
                    "tool_name_collision",
                    original=route.original_name,
                    source=route.source,
                    renamed=name,
                )
            routes[name] = route
            definitions.append(ToolDefinition(name, description, schema, route))

        if self._enabled is None:
            local_tools = self._registry.all_tools()
        else:
            local_tools = self._registry.get_tools_by_names(self._enabled)
        for tool in local_tools:
            _add(
                sanitize_name(tool.name),
                tool.description,
                tool.input_schema,
                ToolRoute(LOCAL_TOOL_SOURCE, tool.name),
            )

        if self._mcp is not None:
            listings = self._mcp.tools()
            for server in sorted(listings):
                for tool in listings[server]:
                    _add(
                        mcp_tool_name(server, tool.name),
                        tool.description or "",
                        dict(tool.inputSchema or {"type": "object", "properties": {}}),
                        ToolRoute(server, tool.name),
                    )

        self._definitions = definitions
        self._routes = routes
        logger.debug("tool_bridge_refreshed", count=len(definitions))

    def definitions(self) -> list[ToolDefinition]:
        return list(self._definitions)

    def resolve(self, name: str) -> ToolRoute | None:
        return self._routes.get(name)

    async def execute(self, call: ToolCall, timeout: float) -> ToolResult:
        """Run one tool call under *timeout* seconds.

        Never raises for tool failures: unknown tools, executor exceptions and
        timeouts come back as error results so the model can react to them.
        """
        route = self._routes.get(call.name)
        if route is None:
            return ToolResult(call.id, f"Error: unknown tool '{call.name}'", is_error=True)

        try:
            content, is_error = await asyncio.wait_for(self._dispatch(route, call.input), timeout)
        except TimeoutError:
            logger.warning("tool_timeout", tool=call.name, timeout=timeout)
            return ToolResult(
                call.id, f"Error: tool '{call.name}' timed out after {timeout:g} seconds", is_error=True
            )
        except Exception as e:
            logger.error("tool_execution_error", tool=call.name, source=route.source, error=str(e))
            return ToolResult(call.id, f"Error executing {call.name}: {e}", is_error=True)

        return ToolResult(call.id, content, is_error=is_error)

    async def _dispatch(self, route: ToolRoute, arguments: dict[str, Any]) -> tuple[str, bool]:
        if route.is_local:
            tool = self._registry.get(route.original_name)
            if tool is None:
                return f"Error: tool '{route.original_name}' is no longer registered", True
            return await tool.execute(**arguments), False

        if self._mcp is None:
            return f"Error: no MCP manager for server '{route.source}'", True
        return await self._mcp.call_tool(route.source, route.original_name, arguments)


def _unique(name: str, taken: dict[str, ToolRoute]) -> str:
    if name not in taken:
        return name
    n = 2
    while True:
        suffix = f"_{n}"
        candidate = name[: MAX_TOOL_NAME_LENGTH - len(suffix)] + suffix
        if candidate not in taken:
            return candidate
        n += 1
