"""Provider-neutral chat data model shared by the agent, memory, tools and providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lingti_bot.core.types import LOCAL_TOOL_SOURCE, FinishReason, Role


@dataclass(frozen=True, slots=True)
class ToolCall:
    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult:
    tool_call_id: str
    content: str
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class Message:
    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_result: ToolResult | None = None
    # Opaque provider reasoning blocks (e.g. Claude thinking) echoed back within one loop.
    reasoning: tuple[dict[str, Any], ...] = ()

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def from_tool_result(cls, result: ToolResult) -> Message:
        return cls(role=Role.USER, tool_result=result)


@dataclass(frozen=True, slots=True)
class ToolRoute:
    """Where a sanitized tool name dispatches to."""

    source: str  # "local" or an MCP server id
    original_name: str

    @property
    def is_local(self) -> bool:
        return self.source == LOCAL_TOOL_SOURCE


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict[str, Any]
    route: ToolRoute | None = None


@dataclass(slots=True)
class ChatRequest:
    messages: list[Message]
    tools: list[ToolDefinition] = field(default_factory=list)
    system_prompt: str = ""
    max_tokens: int = 0
    thinking_budget: int = 0
    thinking_prompt: str = ""


@dataclass(slots=True)
class ChatResponse:
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: FinishReason = FinishReason.STOP
    reasoning: tuple[dict[str, Any], ...] = ()
    input_tokens: int = 0
    output_tokens: int = 0
