"""Built-in slash commands answered without calling the model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from lingti_bot.ai.models import ToolDefinition
from lingti_bot.core.session import parse_thinking_level, thinking_budget_tokens
from lingti_bot.log import get_logger
from lingti_bot.messenger.models import IncomingMessage

if TYPE_CHECKING:
    from lingti_bot.ai.agent import Agent

logger = get_logger(__name__)

HELP_TEXT = """Available commands:
/help - show this help
/new - start a new conversation (clears history)
/status - show the current session status
/whoami - show who you are to the bot
/model - show the AI provider and model
/tools - list the tools the AI can use
/think <off|low|medium|high> - set how hard the AI thinks
/verbose <on|off> - show tool activity while the AI works"""

_ON = {"on", "true", "yes", "1"}
_OFF = {"off", "false", "no", "0"}


class BuiltinCommands:
    """Dispatches ``/command [arg]`` text to handlers operating on the agent's state."""

    def __init__(self, agent: Agent):
        self._agent = agent
        self._handlers: dict[str, Callable[[IncomingMessage, str], str]] = {
            "/help": self._help,
            "/new": self._new,
            "/reset": self._new,
            "/status": self._status,
            "/whoami": self._whoami,
            "/model": self._model,
            "/tools": self._tools,
            "/think": self._think,
            "/verbose": self._verbose,
        }

    def handle(self, msg: IncomingMessage) -> tuple[str, bool]:
        """Return (reply, handled). Unrecognized text returns ("", False)."""
        text = msg.text.strip()
        if not text.startswith("/"):
            return "", False

        command, _, arg = text.partition(" ")
        handler = self._handlers.get(command.lower())
        if handler is None:
            return "", False

        logger.info("builtin_command", command=command.lower(), key=msg.conversation_key)
        return handler(msg, arg.strip()), True

    def _help(self, msg: IncomingMessage, arg: str) -> str:
        return HELP_TEXT

    def _new(self, msg: IncomingMessage, arg: str) -> str:
        self._agent.memory.clear(msg.conversation_key)
        return "🆕 Started a new conversation. Previous history has been cleared."

    def _status(self, msg: IncomingMessage, arg: str) -> str:
        key = msg.conversation_key
        settings = self._agent.sessions.get(key)
        provider = self._agent.provider
        history = self._agent.memory.get_history(key)
        return (
            "📊 Session status\n"
            f"Provider: {provider.name}\n"
            f"Model: {provider.model}\n"
            f"Thinking: {settings.thinking_level.value} "
            f"({thinking_budget_tokens(settings.thinking_level)} tokens)\n"
            f"Verbose: {'on' if settings.verbose else 'off'}\n"
            f"History: {len(history)}/{self._agent.memory.max_messages} messages\n"
            f"Tools: {len(self._agent.bridge.definitions())}"
        )

    def _whoami(self, msg: IncomingMessage, arg: str) -> str:
        return (
            f"👤 User: {msg.username or '(unknown)'}\n"
            f"User ID: {msg.user_id}\n"
            f"Platform: {msg.platform}\n"
            f"Channel: {msg.channel_id}"
        )

    def _model(self, msg: IncomingMessage, arg: str) -> str:
        provider = self._agent.provider
        return f"🤖 Provider: {provider.name}\nModel: {provider.model}"

    def _tools(self, msg: IncomingMessage, arg: str) -> str:
        definitions = self._agent.bridge.definitions()
        if not definitions:
            return "🔧 No tools available."
        local = [d.name for d in definitions if _is_local(d)]
        mcp = [d.name for d in definitions if not _is_local(d)]
        lines = [f"🔧 {len(definitions)} tools available"]
        if local:
            lines.append(f"Local ({len(local)}): " + ", ".join(local))
        if mcp:
            lines.append(f"MCP ({len(mcp)}): " + ", ".join(mcp))
        return "\n".join(lines)

    def _think(self, msg: IncomingMessage, arg: str) -> str:
        key = msg.conversation_key
        if not arg:
            current = self._agent.sessions.get(key).thinking_level
            return f"Thinking level: {current.value}\nUsage: /think <off|low|medium|high>"
        try:
            level = parse_thinking_level(arg)
        except ValueError:
            return f"Unknown thinking level '{arg}'.\nUsage: /think <off|low|medium|high>"
        self._agent.sessions.set_thinking_level(key, level)
        return f"🧠 Thinking level set to {level.value} ({thinking_budget_tokens(level)} tokens)."

    def _verbose(self, msg: IncomingMessage, arg: str) -> str:
        key = msg.conversation_key
        value = arg.lower()
        if value in _ON:
            self._agent.sessions.set_verbose(key, True)
            return "🔊 Verbose mode on: tool activity will be shown."
        if value in _OFF:
            self._agent.sessions.set_verbose(key, False)
            return "🔇 Verbose mode off."
        current = "on" if self._agent.sessions.get(key).verbose else "off"
        return f"Verbose: {current}\nUsage: /verbose <on|off>"


def _is_local(definition: ToolDefinition) -> bool:
    return definition.route is None or definition.route.is_local
