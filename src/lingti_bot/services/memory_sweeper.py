"""Periodic purge of expired conversation memory."""

from __future__ import annotations

import asyncio
from typing import Any

from lingti_bot.ai.memory import ConversationMemory
from lingti_bot.log import get_logger
from lingti_bot.services.base import Service

logger = get_logger(__name__)


class MemorySweeper(Service):
    """Runs ``ConversationMemory.purge_expired`` every *interval* seconds.

    Expiry is already enforced lazily on access; this only bounds memory held
    by keys that are never read again.
    """

    def __init__(self, memory: ConversationMemory, interval: float):
        self._memory = memory
        self._interval = interval
        self._task: asyncio.Task[Any] | None = None

    @property
    def service_name(self) -> str:
        return "memory_sweeper"

    async def start(self) -> None:
        if self._interval <= 0 or self._task is not None:
            return
        self._task = asyncio.create_task(self._run(), name="memory-sweeper")
        logger.info("memory_sweeper_started", interval=self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("memory_sweeper_stopped")

    async def health_check(self) -> bool:
        return self._interval <= 0 or (self._task is not None and not self._task.done())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            removed = self._memory.purge_expired()
            if removed:
                logger.info("memory_swept", removed=removed, remaining=len(self._memory))
