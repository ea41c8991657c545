"""OpenAI-compatible backends (DeepSeek, Kimi, Qwen, OpenAI, Zhipu, Gemini, xAI, Ollama)."""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import openai
from openai import AsyncOpenAI

from lingti_bot.ai.models import ChatRequest, ChatResponse, Message, ToolCall, ToolDefinition
from lingti_bot.ai.providers.base import Provider, effective_max_tokens
from lingti_bot.config import AIConfig
from lingti_bot.core.errors import MissingAPIKeyError, ProviderError
from lingti_bot.core.types import FinishReason, Role
from lingti_bot.log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Vendor:
    name: str
    base_url: str
    model: str
    requires_key: bool = True


VENDORS = MappingProxyType(
    {
        "deepseek": Vendor("deepseek", "https://api.deepseek.com/v1", "deepseek-chat"),
        "kimi": Vendor("kimi", "https://api.moonshot.cn/v1", "moonshot-v1-8k"),
        "qwen": Vendor("qwen", "https://dashscope.aliyuncs.com/compatible-mode/v1", "qwen-plus"),
        "openai": Vendor("openai", "https://api.openai.com/v1", "gpt-4o"),
        "zhipu": Vendor("zhipu", "https://open.bigmodel.cn/api/paas/v4", "glm-4-flash"),
        "gemini": Vendor(
            "gemini", "https://generativelanguage.googleapis.com/v1beta/openai/", "gemini-2.0-flash"
        ),
        "xai": Vendor("xai", "https://api.x.ai/v1", "grok-3"),
        "ollama": Vendor("ollama", "http://localhost:11434/v1", "llama3.2", requires_key=False),
    }
)

# Ollama ignores the key but the SDK insists on one.
_PLACEHOLDER_KEY = "ollama"


class OpenAICompatibleProvider(Provider):
    """Provider for any vendor speaking the OpenAI chat-completions protocol."""

    def __init__(self, vendor: Vendor, config: AIConfig):
        if vendor.requires_key and not config.api_key:
            raise MissingAPIKeyError(vendor.name)

        self._vendor = vendor
        self._model = config.model or vendor.model
        self._temperature = config.temperature
        self._client = AsyncOpenAI(
            api_key=config.api_key or _PLACEHOLDER_KEY,
            base_url=config.base_url or vendor.base_url,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )
        logger.info("openai_compat_provider_created", provider=vendor.name, model=self._model)

    @property
    def name(self) -> str:
        return self._vendor.name

    @property
    def model(self) -> str:
        return self._model

    def build_params(self, request: ChatRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": self._model,
            "messages": to_openai_messages(request.system_prompt, request.messages),
            "max_tokens": effective_max_tokens(request.max_tokens),
            "temperature": self._temperature,
        }
        if request.tools:
            params["tools"] = [to_openai_tool(t) for t in request.tools]
            params["tool_choice"] = "auto"
        return params

    async def chat(self, request: ChatRequest) -> ChatResponse:
        params = self.build_params(request)
        logger.debug(
            "api_request",
            provider=self.name,
            model=self._model,
            message_count=len(request.messages),
            tool_count=len(request.tools),
        )
        try:
            response = await self._client.chat.completions.create(**params)
        except openai.APIError as e:
            raise ProviderError(self.name, str(e)) from e

        if not response.choices:
            raise ProviderError(self.name, "empty response (no choices)")
        return from_openai_response(response)


def to_openai_tool(tool: ToolDefinition) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.input_schema,
        },
    }


def to_openai_messages(system: str, messages: list[Message]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    if system:
        out.append({"role": "system", "content": system})

    for msg in messages:
        if msg.tool_result is not None:
            # The wire format has no error flag; error text travels in the content.
            out.append(
                {
                    "role": "tool",
                    "tool_call_id": msg.tool_result.tool_call_id,
                    "content": msg.tool_result.content,
                }
            )
        elif msg.role == Role.ASSISTANT and msg.tool_calls:
            out.append(
                {
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {
                                "name": call.name,
                                "arguments": json.dumps(call.input or {}, ensure_ascii=False),
                            },
                        }
                        for call in msg.tool_calls
                    ],
                }
            )
        else:
            out.append({"role": msg.role.value, "content": msg.content})
    return out


def from_openai_response(response: Any) -> ChatResponse:
    message = response.choices[0].message
    tool_calls: list[ToolCall] = []
    for call in message.tool_calls or []:
        tool_calls.append(
            ToolCall(id=call.id, name=call.function.name, input=_parse_arguments(call.function.arguments))
        )

    usage = response.usage
    return ChatResponse(
        content=message.content or "",
        tool_calls=tool_calls,
        finish_reason=FinishReason.TOOL_USE if tool_calls else FinishReason.STOP,
        input_tokens=usage.prompt_tokens if usage else 0,
        output_tokens=usage.completion_tokens if usage else 0,
    )


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("tool_arguments_invalid_json", raw=raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {"value": parsed}
