"""Bounded, TTL-expiring conversation history keyed by conversation."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from lingti_bot.ai.models import Message
from lingti_bot.log import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_MESSAGES = 50
DEFAULT_TTL_SECONDS = 3600.0


def conversation_key(platform: str, channel_id: str, user_id: str) -> str:
    """Build the key identifying one logical conversation."""
    return f"{platform}:{channel_id}:{user_id}"


@dataclass
class _Entry:
    messages: list[Message] = field(default_factory=list)
    updated_at: float = 0.0


class ConversationMemory:
    """In-memory history per conversation key.

    TTL applies to a whole key: once nothing has been written for longer than
    ``ttl`` seconds the entire history is treated as gone and is evicted on the
    next access. Keys that are never read again stay until :meth:`purge_expired`
    runs (see ``MemorySweeper``).
    """

    def __init__(
        self,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_messages <= 0:
            raise ValueError("max_messages must be positive")
        self._max = max_messages
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def max_messages(self) -> int:
        return self._max

    @property
    def ttl(self) -> float:
        return self._ttl

    def add_message(self, key: str, msg: Message) -> None:
        self._append(key, (msg,))

    def add_exchange(
        self,
        key: str,
        user_msg: Message,
        assistant_msg: Message,
        generation: int | None = None,
    ) -> bool:
        """Append a user message and its reply as one update.

        With *generation*, the write is skipped (returning False) when the key
        was cleared after that generation was read.
        """
        with self._lock:
            if generation is not None and self._generations.get(key, 0) != generation:
                return False
            self._append_locked(key, (user_msg, assistant_msg))
        return True

    def generation(self, key: str) -> int:
        """Counter bumped by every :meth:`clear` of *key*."""
        with self._lock:
            return self._generations.get(key, 0)

    def get_history(self, key: str) -> list[Message]:
        with self._lock:
            entry = self._live_entry(key, self._clock())
            return list(entry.messages) if entry else []

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1

    def purge_expired(self) -> int:
        """Drop every expired key, returning how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("memory_purged", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _append(self, key: str, msgs: tuple[Message, ...]) -> None:
        with self._lock:
            self._append_locked(key, msgs)

    def _append_locked(self, key: str, msgs: tuple[Message, ...]) -> None:
        now = self._clock()
        entry = self._live_entry(key, now)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.messages.extend(msgs)
        if len(entry.messages) > self._max:
            del entry.messages[: len(entry.messages) - self._max]
        entry.updated_at = now

    def _live_entry(self, key: str, now: float) -> _Entry | None:
        # Caller holds the lock.
        entry = self._entries.get(key)
        if entry is not None and self._is_expired(entry, now):
            del self._entries[key]
            logger.debug("memory_expired", key=key)
            return None
        return entry

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        return self._ttl > 0 and now - entry.updated_at > self._ttl
