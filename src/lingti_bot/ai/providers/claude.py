"""Anthropic Claude backend, including the OAuth setup-token transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import anthropic
from anthropic import Omit

from lingti_bot.ai.models import ChatRequest, ChatResponse, Message, ToolCall, ToolDefinition
from lingti_bot.ai.providers.base import DEFAULT_MAX_TOKENS, Provider, effective_max_tokens
from lingti_bot.config import AIConfig
from lingti_bot.core.errors import MissingAPIKeyError, ProviderError
from lingti_bot.core.types import FinishReason, Role
from lingti_bot.log import get_logger

logger = get_logger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"

OAUTH_TOKEN_PREFIX = "sk-ant-oat01-"
OAUTH_TOKEN_MIN_LENGTH = 80
CLAUDE_CODE_VERSION = "2.1.2"
CLAUDE_CODE_SYSTEM_PREFIX = "You are Claude Code, Anthropic's official CLI for Claude."

_OAUTH_HEADERS = MappingProxyType(
    {
        "anthropic-beta": "claude-code-20250219,oauth-2025-04-20",
        "User-Agent": f"claude-cli/{CLAUDE_CODE_VERSION} (external, cli)",
        "x-app": "cli",
        "anthropic-dangerous-direct-browser-access": "true",
    }
)

# Anthropic rejects thinking budgets below this.
_MIN_THINKING_BUDGET = 1024


def is_oauth_token(key: str) -> bool:
    """Whether *key* looks like a temporary OAuth setup token rather than a static API key."""
    return key.startswith(OAUTH_TOKEN_PREFIX) and len(key) >= OAUTH_TOKEN_MIN_LENGTH


@dataclass(frozen=True, slots=True)
class ClaudeTransport:
    """How requests are authenticated and sent, fixed once per provider.

    Setup tokens are only accepted when the request looks like it came from the
    Claude Code CLI: bearer auth, its header set, a streaming call and its
    identity as the first system block.
    """

    oauth: bool
    streaming: bool
    headers: Mapping[str, str] = field(default_factory=dict)
    system_prefix: str = ""

    @classmethod
    def for_key(cls, api_key: str) -> ClaudeTransport:
        if is_oauth_token(api_key):
            return cls(
                oauth=True,
                streaming=True,
                headers=_OAUTH_HEADERS,
                system_prefix=CLAUDE_CODE_SYSTEM_PREFIX,
            )
        return cls(oauth=False, streaming=False)

    def client_kwargs(self, api_key: str) -> dict[str, Any]:
        if not self.oauth:
            return {"api_key": api_key}
        return {
            "api_key": None,
            "auth_token": api_key,
            # Never send X-Api-Key alongside the bearer token.
            "default_headers": {**self.headers, "X-Api-Key": Omit()},
        }

    def system(self, prompt: str) -> str | list[dict[str, Any]]:
        if not self.system_prefix:
            return prompt
        blocks = [{"type": "text", "text": self.system_prefix}]
        if prompt:
            blocks.append({"type": "text", "text": prompt})
        return blocks


class ClaudeProvider(Provider):
    """Anthropic API backend using the official SDK."""

    def __init__(self, config: AIConfig):
        if not config.api_key:
            raise MissingAPIKeyError("claude")

        self._model = config.model or DEFAULT_CLAUDE_MODEL
        self._temperature = config.temperature
        self._native_thinking = config.thinking
        self.transport = ClaudeTransport.for_key(config.api_key)

        self._client = anthropic.AsyncAnthropic(
            base_url=config.base_url or None,
            max_retries=config.max_retries,
            timeout=config.timeout,
            **self.transport.client_kwargs(config.api_key),
        )
        logger.info(
            "claude_provider_created",
            model=self._model,
            oauth=self.transport.oauth,
            streaming=self.transport.streaming,
        )

    @property
    def name(self) -> str:
        return "claude"

    @property
    def model(self) -> str:
        return self._model

    @property
    def supports_thinking(self) -> bool:
        return self._native_thinking

    def build_params(self, request: ChatRequest) -> dict[str, Any]:
        """Translate a ChatRequest into Messages API keyword arguments."""
        max_tokens = effective_max_tokens(request.max_tokens)
        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": to_anthropic_messages(request.messages),
        }
        system = self.transport.system(request.system_prompt)
        if system:
            params["system"] = system
        if request.tools:
            params["tools"] = [to_anthropic_tool(t) for t in request.tools]

        budget = request.thinking_budget
        if self._native_thinking and budget >= _MIN_THINKING_BUDGET:
            params["thinking"] = {"type": "enabled", "budget_tokens": budget}
            # max_tokens must leave room for the answer on top of the budget.
            params["max_tokens"] = max(max_tokens, budget + DEFAULT_MAX_TOKENS)
        else:
            params["temperature"] = self._temperature
        return params

    async def chat(self, request: ChatRequest) -> ChatResponse:
        params = self.build_params(request)
        logger.debug(
            "api_request",
            provider=self.name,
            model=self._model,
            message_count=len(request.messages),
            tool_count=len(request.tools),
            streaming=self.transport.streaming,
        )
        try:
            if self.transport.streaming:
                async with self._client.messages.stream(**params) as stream:
                    response = await stream.get_final_message()
            else:
                response = await self._client.messages.create(**params)
        except anthropic.APIError as e:
            raise ProviderError(self.name, str(e)) from e

        logger.debug(
            "api_response",
            provider=self.name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=response.stop_reason,
        )
        return from_anthropic_response(response)


def to_anthropic_tool(tool: ToolDefinition) -> dict[str, Any]:
    return {
        "name": tool.name,
        "description": tool.description,
        "input_schema": tool.input_schema,
    }


def to_anthropic_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert messages to the Messages API format.

    Consecutive tool results are grouped into a single user turn, as the API
    expects every result for one assistant turn to arrive together.
    """
    out: list[dict[str, Any]] = []
    for msg in messages:
        if msg.tool_result is not None:
            block = {
                "type": "tool_result",
                "tool_use_id": msg.tool_result.tool_call_id,
                "content": msg.tool_result.content,
                "is_error": msg.tool_result.is_error,
            }
            if out and _is_tool_result_turn(out[-1]):
                out[-1]["content"].append(block)
            else:
                out.append({"role": "user", "content": [block]})

        elif msg.role == Role.ASSISTANT and (msg.tool_calls or msg.reasoning):
            content: list[dict[str, Any]] = list(msg.reasoning)
            if msg.content:
                content.append({"type": "text", "text": msg.content})
            for call in msg.tool_calls:
                content.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": call.input or {},
                    }
                )
            out.append({"role": "assistant", "content": content})

        elif msg.content.strip():
            out.append({"role": msg.role.value, "content": msg.content})
        else:
            # The API rejects turns with empty content.
            logger.debug("empty_turn_skipped", role=msg.role.value)
    return out


def _is_tool_result_turn(turn: dict[str, Any]) -> bool:
    content = turn.get("content")
    return (
        turn.get("role") == "user"
        and isinstance(content, list)
        and all(block.get("type") == "tool_result" for block in content)
    )


def from_anthropic_response(response: Any) -> ChatResponse:
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    reasoning: list[dict[str, Any]] = []

    for block in response.content:
        match block.type:
            case "text":
                text_parts.append(block.text)
            case "tool_use":
                tool_calls.append(ToolCall(id=block.id, name=block.name, input=dict(block.input or {})))
            case "thinking":
                reasoning.append(
                    {"type": "thinking", "thinking": block.thinking, "signature": block.signature}
                )
            case "redacted_thinking":
                reasoning.append({"type": "redacted_thinking", "data": block.data})

    finish = FinishReason.TOOL_USE if response.stop_reason == "tool_use" else FinishReason.STOP
    return ChatResponse(
        content="".join(text_parts),
        tool_calls=tool_calls,
        finish_reason=finish,
        reasoning=tuple(reasoning),
        input_tokens=response.usage.input_tokens,
        output_tokens=response.usage.output_tokens,
    )
