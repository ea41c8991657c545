"""Agent: receives a message, answers built-in commands or runs the tool-calling loop."""

from __future__ import annotations

import asyncio

from lingti_bot.ai.commands import BuiltinCommands
from lingti_bot.ai.memory import ConversationMemory
from lingti_bot.ai.models import Message
from lingti_bot.ai.providers import Provider, create_provider
from lingti_bot.ai.tool_runner import run_tool_loop
from lingti_bot.ai.tools.bridge import ToolBridge
from lingti_bot.ai.tools.registry import ToolRegistry
from lingti_bot.config import AIConfig
from lingti_bot.core.errors import friendly_error
from lingti_bot.core.locks import KeyedLock
from lingti_bot.core.session import SessionStore, thinking_budget_tokens, thinking_prompt
from lingti_bot.core.types import BusyPolicy, LoopState
from lingti_bot.log import get_logger
from lingti_bot.messenger.models import IncomingMessage

logger = get_logger(__name__)

BUSY_NOTICE = "⏳ Still working on your previous message, please wait for it to finish."
EMPTY_REPLY_NOTICE = "✅ Done. (The AI finished without a text reply.)"


class Agent:
    """Handles the full flow: message -> command or history -> model -> tools -> reply.

    One loop runs per conversation key at a time; different keys run
    concurrently. Missing collaborators are created from *config*.
    """

    def __init__(
        self,
        config: AIConfig,
        provider: Provider | None = None,
        memory: ConversationMemory | None = None,
        sessions: SessionStore | None = None,
        bridge: ToolBridge | None = None,
        locks: KeyedLock | None = None,
    ):
        self._config = config
        self._provider = provider or create_provider(config)
        self._memory = memory or ConversationMemory()
        self._sessions = sessions or SessionStore()
        self._bridge = bridge or ToolBridge(ToolRegistry())
        self._locks = locks or KeyedLock()
        self._commands = BuiltinCommands(self)

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def memory(self) -> ConversationMemory:
        return self._memory

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def bridge(self) -> ToolBridge:
        return self._bridge

    def handle_builtin_command(self, msg: IncomingMessage) -> tuple[str, bool]:
        return self._commands.handle(msg)

    async def handle_message(self, msg: IncomingMessage) -> str:
        """Return the reply for *msg*.

        Provider failures come back as a friendly message rather than an
        exception; only cancellation propagates.
        """
        reply, handled = self.handle_builtin_command(msg)
        if handled:
            return reply

        text = msg.text.strip()
        if not text:
            return ""

        key = msg.conversation_key
        if self._config.busy_policy == BusyPolicy.REJECT and self._locks.locked(key):
            logger.info("conversation_busy", key=key)
            return BUSY_NOTICE

        async with self._locks.hold(key):
            return await self._respond(key, text)

    async def _respond(self, key: str, text: str) -> str:
        settings = self._sessions.get(key)
        budget = thinking_budget_tokens(settings.thinking_level)
        instruction = thinking_prompt(settings.thinking_level)

        system = self._config.system_prompt
        if instruction and not self._provider.supports_thinking:
            system = f"{system}\n\n{instruction}" if system else instruction

        user_msg = Message.user(text)
        generation = self._memory.generation(key)
        messages = [*self._memory.get_history(key), user_msg]

        logger.info(
            "agent_request",
            key=key,
            provider=self._provider.name,
            history=len(messages) - 1,
            thinking=settings.thinking_level.value,
        )
        try:
            outcome = await run_tool_loop(
                provider=self._provider,
                bridge=self._bridge,
                messages=messages,
                system=system,
                tools=self._bridge.definitions(),
                max_tokens=self._config.max_tokens,
                max_rounds=self._config.max_rounds,
                tool_timeout=self._config.tool_timeout,
                request_timeout=self._config.request_timeout,
                thinking_budget=budget,
                thinking_prompt=instruction,
                verbose=settings.verbose,
            )
        except asyncio.CancelledError:
            logger.info("agent_cancelled", key=key)
            raise
        except Exception as e:
            logger.error("ai_error", key=key, error=str(e), error_type=type(e).__name__)
            return friendly_error(e)

        if outcome.state != LoopState.DONE:
            return outcome.text
        if not outcome.text.strip():
            # History never holds an empty assistant turn.
            logger.warning("empty_reply", key=key, rounds=outcome.rounds)
            return EMPTY_REPLY_NOTICE

        stored = self._memory.add_exchange(
            key, user_msg, Message.assistant(outcome.text), generation=generation
        )
        if not stored:
            logger.info("exchange_dropped_after_reset", key=key)
        return outcome.text
