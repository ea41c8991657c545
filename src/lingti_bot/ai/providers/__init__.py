"""LLM provider backends."""

from lingti_bot.ai.providers.base import Provider
from lingti_bot.ai.providers.factory import create_provider, resolve_provider_name

__all__ = ["Provider", "create_provider", "resolve_provider_name"]
