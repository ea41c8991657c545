"""Alias-resolving provider factory."""

from __future__ import annotations

from types import MappingProxyType

from lingti_bot.ai.providers.base import Provider
from lingti_bot.ai.providers.claude import ClaudeProvider
from lingti_bot.ai.providers.openai_compat import VENDORS, OpenAICompatibleProvider
from lingti_bot.config import AIConfig
from lingti_bot.core.errors import UnknownProviderError

PROVIDER_ALIASES = MappingProxyType(
    {
        "": "claude",
        "claude": "claude",
        "anthropic": "claude",
        "deepseek": "deepseek",
        "kimi": "kimi",
        "moonshot": "kimi",
        "qwen": "qwen",
        "qianwen": "qwen",
        "tongyi": "qwen",
        "openai": "openai",
        "gpt": "openai",
        "chatgpt": "openai",
        "zhipu": "zhipu",
        "glm": "zhipu",
        "gemini": "gemini",
        "google": "gemini",
        "xai": "xai",
        "ollama": "ollama",
    }
)


def resolve_provider_name(name: str) -> str:
    """Map a configured provider name or alias to its canonical name."""
    try:
        return PROVIDER_ALIASES[name.strip().lower()]
    except KeyError:
        raise UnknownProviderError(name) from None


def create_provider(config: AIConfig) -> Provider:
    """Create the provider named by ``config.provider``.

    Raises UnknownProviderError for unrecognized names and MissingAPIKeyError
    when a provider other than ollama has no API key.
    """
    canonical = resolve_provider_name(config.provider)
    if canonical == "claude":
        return ClaudeProvider(config)
    return OpenAICompatibleProvider(VENDORS[canonical], config)
