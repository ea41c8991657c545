"""Exception hierarchy and user-facing error classification."""

from __future__ import annotations

from dataclasses import dataclass


class LingtiError(Exception):
    """Base class for all lingti-bot errors."""


class ConfigurationError(LingtiError):
    """Invalid or incomplete configuration, raised at construction time."""


class UnknownProviderError(ConfigurationError):
    def __init__(self, name: str):
        super().__init__(f"unknown provider: {name!r}")
        self.name = name


class MissingAPIKeyError(ConfigurationError):
    def __init__(self, provider: str):
        super().__init__(f"API key is required for provider '{provider}'")
        self.provider = provider


class ProviderError(LingtiError):
    """A vendor API or transport call failed during a chat round."""

    def __init__(self, provider: str, detail: str):
        super().__init__(f"{provider} API error: {detail}")
        self.provider = provider


class ToolExecutionError(LingtiError):
    """A tool executor reported a failure."""


@dataclass(frozen=True, slots=True)
class FriendlyRule:
    """Maps any of *patterns* (lower-case substrings) to a user-facing *message*."""

    patterns: tuple[str, ...]
    message: str

    def matches(self, text: str) -> bool:
        return any(p in text for p in self.patterns)


GENERIC_ERROR_MESSAGE = "⚠️ Sorry, an error occurred while processing your message. Please try again later."

_RULES: list[FriendlyRule] = [
    FriendlyRule(
        patterns=(
            "overdue-payment",
            "overdue payment",
            "insufficient_balance",
            "insufficient balance",
            "insufficient_quota",
            "credit balance is too low",
            "billing",
        ),
        message="💳 The AI service account is out of credit or has an overdue payment. Please recharge (top up) the account.",
    ),
    FriendlyRule(
        patterns=(
            "invalid_api_key",
            "invalid api key",
            "invalid x-api-key",
            "incorrect api key",
            "authentication_error",
        ),
        message="🔑 Invalid API key. Please check the API key in your configuration.",
    ),
    FriendlyRule(
        patterns=("rate limit", "rate_limit", "too many requests", "429"),
        message="⏳ The AI service is rate limited right now. Please wait a moment and try again.",
    ),
    FriendlyRule(
        patterns=(
            "only authorized for use with claude code",
            "oauth authentication is currently not supported",
        ),
        message=(
            "🔐 This OAuth Setup Token is only accepted for Claude Code requests. "
            "Generate a new token with `claude setup-token` or use a regular API key."
        ),
    ),
    FriendlyRule(
        patterns=("unexpected eof", "eof", "connection reset", "connection error"),
        message="🔌 The connection to the AI service was interrupted. Please try again.",
    ),
    FriendlyRule(
        patterns=("timed out", "timeout", "deadline exceeded"),
        message="⌛ The AI service took too long to respond (request timed out). Please try again.",
    ),
]


def register_rule(rule: FriendlyRule) -> None:
    """Append a classification rule after all existing ones."""
    _RULES.append(rule)


def friendly_error(exc: BaseException) -> str:
    """Classify a raw failure into a user-safe message (first matching rule wins)."""
    text = (str(exc) or type(exc).__name__).lower()
    for rule in _RULES:
        if rule.matches(text):
            return rule.message
    return GENERIC_ERROR_MESSAGE
