"""Service lifecycle manager."""

from __future__ import annotations

from lingti_bot.ai.memory import ConversationMemory
from lingti_bot.config import AppConfig
from lingti_bot.log import get_logger
from lingti_bot.services.mcp_manager import McpManager
from lingti_bot.services.memory_sweeper import MemorySweeper

logger = get_logger(__name__)


class ServiceManager:
    """Manages startup and shutdown of all services."""

    def __init__(self, config: AppConfig, memory: ConversationMemory):
        self._mcp = McpManager(config.mcp_servers)
        self._sweeper = MemorySweeper(memory, config.memory.sweep_interval)

    def get_mcp(self) -> McpManager:
        return self._mcp

    async def start_all(self) -> None:
        """Start all services. MCP servers that fail to connect are logged, not fatal."""
        await self._mcp.start()
        await self._sweeper.start()
        logger.info("all_services_started")

    async def stop_all(self) -> None:
        """Stop all services gracefully."""
        await self._sweeper.stop()
        await self._mcp.stop()
        logger.info("all_services_stopped")

    async def health_check_all(self) -> dict[str, bool]:
        """Check health of all services."""
        return {
            "mcp": await self._mcp.health_check(),
            "memory_sweeper": await self._sweeper.health_check(),
        }
