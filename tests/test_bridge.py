"""Tests for tool name sanitization, collision handling and call dispatch."""

from __future__ import annotations

import asyncio

import pytest
from mcp import types

from lingti_bot.ai.models import ToolCall
from lingti_bot.ai.tools.base import FunctionTool
from lingti_bot.ai.tools.bridge import (
    MAX_TOOL_NAME_LENGTH,
    ToolBridge,
    is_mcp_tool,
    mcp_tool_name,
    sanitize_name,
)
from lingti_bot.ai.tools.registry import ToolRegistry
from lingti_bot.core.errors import ToolExecutionError


class FakeMcp:
    """Stands in for McpManager: cached listings plus a recorded call_tool."""

    def __init__(self, listings: dict[str, list[types.Tool]]):
        self._listings = listings
        self.calls: list[tuple[str, str, dict]] = []

    def tools(self) -> dict[str, list[types.Tool]]:
        return self._listings

    async def call_tool(self, server: str, name: str, arguments: dict | None = None) -> tuple[str, bool]:
        self.calls.append((server, name, arguments or {}))
        if name == "explode":
            raise ToolExecutionError("server went away")
        return f"{server}/{name} ok", name == "fails"


def _mcp_tool(name: str) -> types.Tool:
    return types.Tool(name=name, description=f"{name} tool", inputSchema={"type": "object", "properties": {}})


def _local(name: str, func=lambda **kw: "done") -> FunctionTool:
    return FunctionTool(name, f"{name} tool", {"type": "object", "properties": {}}, func)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("mcp_chrome_snapshot", True),
        ("mcp_", True),
        ("browser_click", False),
        ("", False),
    ],
)
def test_is_mcp_tool(name, expected):
    assert is_mcp_tool(name) is expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("chrome-devtools", "chrome_devtools"),
        ("My Tool", "my_tool"),
        ("UPPER", "upper"),
        ("already_ok", "already_ok"),
        ("read.file/v2", "read_file_v2"),
    ],
)
def test_sanitize_name(raw, expected):
    assert sanitize_name(raw) == expected


def test_sanitize_truncates():
    assert len(sanitize_name("x" * 100)) == MAX_TOOL_NAME_LENGTH


@pytest.mark.parametrize(
    "raw",
    ["chrome-devtools", "My Tool", "UPPER", "already_ok", "Ünïcode Näme", "a-" * 50, "", "___"],
)
def test_sanitize_is_idempotent(raw):
    once = sanitize_name(raw)
    assert sanitize_name(once) == once
    assert len(once) <= MAX_TOOL_NAME_LENGTH


def test_mcp_tool_name():
    assert mcp_tool_name("chrome-devtools", "take_snapshot") == "mcp_chrome_devtools_take_snapshot"


class TestToolBridge:
    def test_local_then_mcp_definitions(self, registry):
        mcp = FakeMcp({"zeta": [_mcp_tool("b")], "alpha": [_mcp_tool("read-file")]})
        bridge = ToolBridge(registry, mcp)

        names = [d.name for d in bridge.definitions()]
        assert names == ["echo", "mcp_alpha_read_file", "mcp_zeta_b"]

        route = bridge.resolve("mcp_alpha_read_file")
        assert route.source == "alpha"
        assert route.original_name == "read-file"
        assert not route.is_local
        assert bridge.resolve("echo").is_local

    def test_collisions_get_suffixes(self):
        reg = ToolRegistry()
        reg.register(_local("Get-Time"))
        reg.register(_local("get_time"))
        reg.register(_local("GET TIME"))
        bridge = ToolBridge(reg)

        names = [d.name for d in bridge.definitions()]
        assert names == ["get_time", "get_time_2", "get_time_3"]
        assert len(set(names)) == len(names)
        assert bridge.resolve("get_time_2").original_name == "get_time"

    def test_enabled_filter(self, registry):
        registry.register(_local("other"))
        bridge = ToolBridge(registry, enabled=["other"])
        assert [d.name for d in bridge.definitions()] == ["other"]

    def test_refresh_picks_up_new_tools(self, registry):
        bridge = ToolBridge(registry)
        registry.register(_local("late"))
        assert len(bridge.definitions()) == 1
        bridge.refresh()
        assert len(bridge.definitions()) == 2

    @pytest.mark.asyncio
    async def test_execute_local(self, registry):
        bridge = ToolBridge(registry)
        result = await bridge.execute(ToolCall("c1", "echo", {"text": "hi"}), timeout=5)
        assert result.tool_call_id == "c1"
        assert result.content == "echo: hi"
        assert result.is_error is False

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self, registry):
        result = await ToolBridge(registry).execute(ToolCall("c1", "nope"), timeout=5)
        assert result.is_error
        assert "unknown tool" in result.content

    @pytest.mark.asyncio
    async def test_execute_local_exception(self):
        def broken(**kwargs):
            raise RuntimeError("disk full")

        reg = ToolRegistry()
        reg.register(_local("broken", broken))
        result = await ToolBridge(reg).execute(ToolCall("c1", "broken"), timeout=5)
        assert result.is_error
        assert "disk full" in result.content

    @pytest.mark.asyncio
    async def test_execute_timeout(self):
        async def slow(**kwargs):
            await asyncio.sleep(5)
            return "late"

        reg = ToolRegistry()
        reg.register(_local("slow", slow))
        result = await ToolBridge(reg).execute(ToolCall("c1", "slow"), timeout=0.05)
        assert result.is_error
        assert "timed out" in result.content

    @pytest.mark.asyncio
    async def test_execute_mcp(self, registry):
        mcp = FakeMcp({"chrome-devtools": [_mcp_tool("take_snapshot"), _mcp_tool("fails"), _mcp_tool("explode")]})
        bridge = ToolBridge(registry, mcp)

        ok = await bridge.execute(
            ToolCall("c1", "mcp_chrome_devtools_take_snapshot", {"full": True}), timeout=5
        )
        assert ok.content == "chrome-devtools/take_snapshot ok"
        assert not ok.is_error
        assert mcp.calls[0] == ("chrome-devtools", "take_snapshot", {"full": True})

        failed = await bridge.execute(ToolCall("c2", "mcp_chrome_devtools_fails"), timeout=5)
        assert failed.is_error

        exploded = await bridge.execute(ToolCall("c3", "mcp_chrome_devtools_explode"), timeout=5)
        assert exploded.is_error
        assert "server went away" in exploded.content
