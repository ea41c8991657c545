"""Shared fixtures: scripted providers and local tools, no network."""

from __future__ import annotations

import asyncio

import pytest

from lingti_bot.ai.models import ChatRequest, ChatResponse, ToolCall
from lingti_bot.ai.providers.base import Provider
from lingti_bot.ai.tools.base import FunctionTool
from lingti_bot.ai.tools.registry import ToolRegistry
from lingti_bot.core.types import FinishReason
from lingti_bot.messenger.models import IncomingMessage


class ScriptedProvider(Provider):
    """Replays queued responses; the last one repeats once the queue runs dry."""

    def __init__(
        self,
        *responses: ChatResponse,
        native_thinking: bool = False,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ):
        self._responses = list(responses) or [ChatResponse(content="ok")]
        self._native_thinking = native_thinking
        self._error = error
        self._gate = gate
        self.requests: list[ChatRequest] = []

    @property
    def name(self) -> str:
        return "stub"

    @property
    def model(self) -> str:
        return "stub-model"

    @property
    def supports_thinking(self) -> bool:
        return self._native_thinking

    async def chat(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]


def tool_use(name: str = "echo", content: str = "", **arguments: object) -> ChatResponse:
    return ChatResponse(
        content=content,
        tool_calls=[ToolCall(id=f"call_{name}", name=name, input=dict(arguments))],
        finish_reason=FinishReason.TOOL_USE,
    )


def make_message(text: str, platform: str = "test", channel_id: str = "c1", user_id: str = "u1") -> IncomingMessage:
    return IncomingMessage(
        platform=platform,
        channel_id=channel_id,
        user_id=user_id,
        username="tester",
        text=text,
    )


@pytest.fixture
def echo_tool() -> FunctionTool:
    return FunctionTool(
        name="echo",
        description="Echo the given text back",
        input_schema={"type": "object", "properties": {"text": {"type": "string"}}},
        func=lambda text="": f"echo: {text}",
    )


@pytest.fixture
def registry(echo_tool: FunctionTool) -> ToolRegistry:
    reg = ToolRegistry()
    reg.register(echo_tool)
    return reg
