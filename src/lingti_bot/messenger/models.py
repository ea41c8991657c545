"""Inbound message envelope shared by all platform adapters."""

from __future__ import annotations

from dataclasses import dataclass

from lingti_bot.ai.memory import conversation_key


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    platform: str
    channel_id: str
    user_id: str
    username: str
    text: str

    @property
    def conversation_key(self) -> str:
        return conversation_key(self.platform, self.channel_id, self.user_id)
