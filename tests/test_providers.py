"""Tests for the provider factory and the Claude / OpenAI-compatible translations."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import openai
import pytest

from lingti_bot.ai.models import ChatRequest, Message, ToolCall, ToolDefinition, ToolResult
from lingti_bot.ai.providers import create_provider, resolve_provider_name
from lingti_bot.ai.providers.claude import (
    CLAUDE_CODE_SYSTEM_PREFIX,
    ClaudeProvider,
    ClaudeTransport,
    from_anthropic_response,
    is_oauth_token,
    to_anthropic_messages,
)
from lingti_bot.ai.providers.openai_compat import (
    VENDORS,
    OpenAICompatibleProvider,
    from_openai_response,
    to_openai_messages,
)
from lingti_bot.config import AIConfig
from lingti_bot.core.errors import MissingAPIKeyError, ProviderError, UnknownProviderError
from lingti_bot.core.types import FinishReason, Role

OAUTH_TOKEN = "sk-ant-oat01-" + "a" * 90


def _tool_exchange() -> list[Message]:
    calls = (
        ToolCall(id="t1", name="echo", input={"text": "a"}),
        ToolCall(id="t2", name="echo", input={"text": "b"}),
    )
    return [
        Message.user("run both"),
        Message(role=Role.ASSISTANT, content="running", tool_calls=calls),
        Message.from_tool_result(ToolResult("t1", "echo: a")),
        Message.from_tool_result(ToolResult("t2", "boom", is_error=True)),
    ]


def _anthropic_response(*blocks, stop_reason="end_turn"):
    return SimpleNamespace(
        content=list(blocks),
        stop_reason=stop_reason,
        usage=SimpleNamespace(input_tokens=12, output_tokens=34),
    )


class _FakeStream:
    def __init__(self, response):
        self._response = response

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get_final_message(self):
        return self._response


class TestFactory:
    @pytest.mark.parametrize(
        "name", ["claude", "deepseek", "kimi", "qwen", "openai", "zhipu", "gemini", "xai"]
    )
    def test_valid_providers(self, name):
        provider = create_provider(AIConfig(provider=name, api_key="test-key"))
        assert provider.name == name

    @pytest.mark.parametrize(
        ("alias", "canonical"),
        [
            ("anthropic", "claude"),
            ("moonshot", "kimi"),
            ("qianwen", "qwen"),
            ("tongyi", "qwen"),
            ("gpt", "openai"),
            ("chatgpt", "openai"),
            ("glm", "zhipu"),
            ("google", "gemini"),
            (" DeepSeek ", "deepseek"),
        ],
    )
    def test_aliases(self, alias, canonical):
        assert resolve_provider_name(alias) == canonical
        assert create_provider(AIConfig(provider=alias, api_key="test-key")).name == canonical

    def test_empty_defaults_to_claude(self):
        provider = create_provider(AIConfig(api_key="test-key"))
        assert provider.name == "claude"
        assert provider.model.startswith("claude-")

    def test_unknown(self):
        with pytest.raises(UnknownProviderError, match="unknown provider"):
            create_provider(AIConfig(provider="nonexistent", api_key="test-key"))

    def test_ollama_needs_no_key(self):
        provider = create_provider(AIConfig(provider="ollama"))
        assert provider.name == "ollama"
        assert provider.model == "llama3.2"

    @pytest.mark.parametrize("name", ["claude", "deepseek"])
    def test_missing_key(self, name):
        with pytest.raises(MissingAPIKeyError):
            create_provider(AIConfig(provider=name))

    def test_vendor_defaults_and_overrides(self):
        default = create_provider(AIConfig(provider="deepseek", api_key="k"))
        assert default.model == VENDORS["deepseek"].model
        custom = create_provider(AIConfig(provider="deepseek", api_key="k", model="deepseek-reasoner"))
        assert custom.model == "deepseek-reasoner"


class TestClaudeTransport:
    def test_oauth_detection(self):
        assert is_oauth_token(OAUTH_TOKEN)
        assert not is_oauth_token("sk-ant-oat01-short")
        assert not is_oauth_token("sk-ant-api03-" + "a" * 90)

    def test_api_key_transport(self):
        transport = ClaudeTransport.for_key("sk-ant-api03-xyz")
        assert not transport.oauth and not transport.streaming
        assert transport.client_kwargs("sk-ant-api03-xyz") == {"api_key": "sk-ant-api03-xyz"}
        assert transport.system("be brief") == "be brief"

    def test_oauth_transport(self):
        transport = ClaudeTransport.for_key(OAUTH_TOKEN)
        assert transport.oauth and transport.streaming

        kwargs = transport.client_kwargs(OAUTH_TOKEN)
        assert kwargs["api_key"] is None
        assert kwargs["auth_token"] == OAUTH_TOKEN
        headers = kwargs["default_headers"]
        assert "oauth-2025-04-20" in headers["anthropic-beta"]
        assert headers["User-Agent"].startswith("claude-cli/")
        assert isinstance(headers["X-Api-Key"], anthropic.Omit)

    def test_oauth_system_blocks(self):
        blocks = ClaudeTransport.for_key(OAUTH_TOKEN).system("be brief")
        assert blocks[0]["text"] == CLAUDE_CODE_SYSTEM_PREFIX
        assert blocks[1]["text"] == "be brief"
        assert len(ClaudeTransport.for_key(OAUTH_TOKEN).system("")) == 1


class TestClaudeProvider:
    def test_tool_results_grouped_into_one_turn(self):
        turns = to_anthropic_messages(_tool_exchange())
        assert [t["role"] for t in turns] == ["user", "assistant", "user"]

        assistant = turns[1]["content"]
        assert assistant[0] == {"type": "text", "text": "running"}
        assert [b["id"] for b in assistant[1:]] == ["t1", "t2"]

        results = turns[2]["content"]
        assert [b["tool_use_id"] for b in results] == ["t1", "t2"]
        assert results[1]["is_error"] is True

    def test_reasoning_blocks_echoed_first(self):
        thinking = {"type": "thinking", "thinking": "hmm", "signature": "sig"}
        msg = Message(
            role=Role.ASSISTANT,
            tool_calls=(ToolCall("t1", "echo"),),
            reasoning=(thinking,),
        )
        content = to_anthropic_messages([msg])[0]["content"]
        assert content[0] == thinking
        assert content[1]["type"] == "tool_use"

    def test_empty_plain_turns_are_skipped(self):
        turns = to_anthropic_messages(
            [Message.user("hi"), Message.assistant(""), Message.assistant("  "), Message.user("again")]
        )
        assert turns == [
            {"role": "user", "content": "hi"},
            {"role": "user", "content": "again"},
        ]

    def test_build_params_with_native_thinking(self):
        provider = ClaudeProvider(AIConfig(api_key="test-key", max_tokens=2048))
        params = provider.build_params(
            ChatRequest(messages=[Message.user("hi")], max_tokens=2048, thinking_budget=16384)
        )
        assert params["thinking"] == {"type": "enabled", "budget_tokens": 16384}
        assert params["max_tokens"] > 16384
        assert "temperature" not in params

    def test_build_params_small_budget_skips_thinking(self):
        provider = ClaudeProvider(AIConfig(api_key="test-key"))
        params = provider.build_params(
            ChatRequest(messages=[Message.user("hi")], system_prompt="sys", thinking_budget=0)
        )
        assert "thinking" not in params
        assert params["temperature"] == 0.7
        assert params["system"] == "sys"
        assert params["max_tokens"] == 4096

    def test_thinking_disabled_by_config(self):
        provider = ClaudeProvider(AIConfig(api_key="test-key", thinking=False))
        assert provider.supports_thinking is False
        params = provider.build_params(ChatRequest(messages=[Message.user("hi")], thinking_budget=4096))
        assert "thinking" not in params

    def test_response_parsing(self):
        response = _anthropic_response(
            SimpleNamespace(type="thinking", thinking="plan", signature="sig"),
            SimpleNamespace(type="text", text="let me check"),
            SimpleNamespace(type="tool_use", id="t1", name="echo", input={"text": "x"}),
            stop_reason="tool_use",
        )
        parsed = from_anthropic_response(response)
        assert parsed.finish_reason == FinishReason.TOOL_USE
        assert parsed.content == "let me check"
        assert parsed.tool_calls == [ToolCall("t1", "echo", {"text": "x"})]
        assert parsed.reasoning[0]["signature"] == "sig"
        assert (parsed.input_tokens, parsed.output_tokens) == (12, 34)

    @pytest.mark.asyncio
    async def test_chat_uses_create_for_api_keys(self):
        provider = ClaudeProvider(AIConfig(api_key="test-key"))
        provider._client = MagicMock()
        provider._client.messages.create = AsyncMock(
            return_value=_anthropic_response(SimpleNamespace(type="text", text="hello"))
        )

        response = await provider.chat(ChatRequest(messages=[Message.user("hi")]))
        assert response.content == "hello"
        assert response.finish_reason == FinishReason.STOP
        provider._client.messages.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_chat_streams_for_oauth_tokens(self):
        provider = ClaudeProvider(AIConfig(api_key=OAUTH_TOKEN))
        provider._client = MagicMock()
        provider._client.messages.stream = MagicMock(
            return_value=_FakeStream(_anthropic_response(SimpleNamespace(type="text", text="streamed")))
        )

        response = await provider.chat(ChatRequest(messages=[Message.user("hi")], system_prompt="sys"))
        assert response.content == "streamed"
        params = provider._client.messages.stream.call_args.kwargs
        assert params["system"][0]["text"] == CLAUDE_CODE_SYSTEM_PREFIX

    @pytest.mark.asyncio
    async def test_chat_wraps_api_errors(self):
        provider = ClaudeProvider(AIConfig(api_key="test-key"))
        provider._client = MagicMock()
        provider._client.messages.create = AsyncMock(
            side_effect=anthropic.APIConnectionError(request=MagicMock())
        )
        with pytest.raises(ProviderError, match="claude API error"):
            await provider.chat(ChatRequest(messages=[Message.user("hi")]))


class TestOpenAICompatible:
    def test_messages_translation(self):
        out = to_openai_messages("sys", _tool_exchange())
        assert out[0] == {"role": "system", "content": "sys"}
        assert out[1] == {"role": "user", "content": "run both"}

        assistant = out[2]
        assert assistant["role"] == "assistant"
        assert json.loads(assistant["tool_calls"][0]["function"]["arguments"]) == {"text": "a"}

        assert out[3] == {"role": "tool", "tool_call_id": "t1", "content": "echo: a"}
        assert out[4]["tool_call_id"] == "t2"

    def test_no_system_message_when_empty(self):
        assert to_openai_messages("", [Message.user("hi")]) == [{"role": "user", "content": "hi"}]

    def test_response_parsing_tool_calls(self):
        call = SimpleNamespace(
            id="c1", function=SimpleNamespace(name="echo", arguments='{"text": "hi"}')
        )
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None, tool_calls=[call]))],
            usage=None,
        )
        parsed = from_openai_response(response)
        assert parsed.finish_reason == FinishReason.TOOL_USE
        assert parsed.content == ""
        assert parsed.tool_calls == [ToolCall("c1", "echo", {"text": "hi"})]
        assert parsed.input_tokens == 0

    def test_response_parsing_bad_arguments(self):
        call = SimpleNamespace(id="c1", function=SimpleNamespace(name="echo", arguments="{not json"))
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="", tool_calls=[call]))],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=4),
        )
        parsed = from_openai_response(response)
        assert parsed.tool_calls[0].input == {}
        assert parsed.output_tokens == 4

    def test_build_params_includes_tools(self):
        provider = OpenAICompatibleProvider(VENDORS["openai"], AIConfig(provider="openai", api_key="k"))
        tool = ToolDefinition("echo", "Echo", {"type": "object", "properties": {}})
        params = provider.build_params(
            ChatRequest(messages=[Message.user("hi")], tools=[tool], thinking_budget=4096)
        )
        assert params["tools"][0]["function"]["name"] == "echo"
        assert params["tool_choice"] == "auto"
        assert "thinking" not in params
        assert provider.supports_thinking is False

    @pytest.mark.asyncio
    async def test_chat_wraps_api_errors(self):
        provider = OpenAICompatibleProvider(VENDORS["deepseek"], AIConfig(provider="deepseek", api_key="k"))
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=MagicMock())
        )
        with pytest.raises(ProviderError, match="deepseek API error"):
            await provider.chat(ChatRequest(messages=[Message.user("hi")]))

    @pytest.mark.asyncio
    async def test_chat_rejects_empty_choices(self):
        provider = OpenAICompatibleProvider(VENDORS["deepseek"], AIConfig(provider="deepseek", api_key="k"))
        provider._client = MagicMock()
        provider._client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(choices=[], usage=None)
        )
        with pytest.raises(ProviderError, match="no choices"):
            await provider.chat(ChatRequest(messages=[Message.user("hi")]))
