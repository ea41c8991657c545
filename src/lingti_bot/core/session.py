"""Per-conversation session settings (thinking depth, verbosity)."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace

from lingti_bot.core.types import ThinkingLevel
from lingti_bot.log import get_logger

logger = get_logger(__name__)

_BUDGETS = {
    ThinkingLevel.OFF: 0,
    ThinkingLevel.LOW: 1024,
    ThinkingLevel.MEDIUM: 4096,
    ThinkingLevel.HIGH: 16384,
}

_PROMPTS = {
    ThinkingLevel.OFF: "",
    ThinkingLevel.LOW: (
        "Think briefly before answering: make sure you understood the request, "
        "then answer directly."
    ),
    ThinkingLevel.MEDIUM: (
        "Think step by step before answering. Break the request into parts, "
        "consider which tools you need, and check your answer before replying."
    ),
    ThinkingLevel.HIGH: (
        "Think deeply and carefully before answering. Break the problem into steps, "
        "consider alternative approaches and edge cases, plan your tool usage, "
        "verify intermediate results, and double-check the final answer for "
        "correctness and completeness before replying."
    ),
}

_LEVEL_ALIASES = {
    "none": ThinkingLevel.OFF,
    "min": ThinkingLevel.LOW,
    "med": ThinkingLevel.MEDIUM,
    "max": ThinkingLevel.HIGH,
}


def thinking_budget_tokens(level: ThinkingLevel) -> int:
    """Reasoning-token budget requested from providers with native extended thinking."""
    return _BUDGETS[level]


def thinking_prompt(level: ThinkingLevel) -> str:
    """System-prompt instruction used for providers without native thinking support."""
    return _PROMPTS[level]


def parse_thinking_level(text: str) -> ThinkingLevel:
    value = text.strip().lower()
    if value in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[value]
    return ThinkingLevel(value)


@dataclass(frozen=True, slots=True)
class SessionSettings:
    thinking_level: ThinkingLevel = ThinkingLevel.MEDIUM
    verbose: bool = False


class SessionStore:
    """Manages ephemeral settings per conversation key."""

    def __init__(self) -> None:
        self._settings: dict[str, SessionSettings] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> SessionSettings:
        """Get the settings for *key*, creating defaults on first access."""
        with self._lock:
            if key not in self._settings:
                self._settings[key] = SessionSettings()
                logger.debug("session_created", key=key)
            return self._settings[key]

    def set_thinking_level(self, key: str, level: ThinkingLevel) -> None:
        with self._lock:
            current = self._settings.get(key, SessionSettings())
            self._settings[key] = replace(current, thinking_level=level)
        logger.info("session_thinking_level", key=key, level=level.value)

    def set_verbose(self, key: str, verbose: bool) -> None:
        with self._lock:
            current = self._settings.get(key, SessionSettings())
            self._settings[key] = replace(current, verbose=verbose)
        logger.info("session_verbose", key=key, verbose=verbose)

    def clear(self, key: str) -> None:
        """Reset *key* back to default settings."""
        with self._lock:
            self._settings.pop(key, None)
        logger.info("session_reset", key=key)
