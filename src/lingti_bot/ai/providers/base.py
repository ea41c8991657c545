"""Provider interface shared by every LLM backend."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lingti_bot.ai.models import ChatRequest, ChatResponse

DEFAULT_MAX_TOKENS = 4096


def effective_max_tokens(requested: int) -> int:
    return requested if requested > 0 else DEFAULT_MAX_TOKENS


class Provider(ABC):
    """Abstract base class for LLM backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Canonical provider name, e.g. ``claude`` or ``deepseek``."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        ...

    @property
    def supports_thinking(self) -> bool:
        """Whether the backend honours ``ChatRequest.thinking_budget`` natively.

        Backends that don't get the thinking instruction appended to the system
        prompt instead.
        """
        return False

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send one chat round and return the normalized response.

        Raises ProviderError on vendor/transport failures.
        """
        ...
