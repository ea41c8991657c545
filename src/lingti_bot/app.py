"""Application orchestrator - wires all components and manages lifecycle."""

from __future__ import annotations

from lingti_bot.ai.agent import Agent
from lingti_bot.ai.memory import ConversationMemory
from lingti_bot.ai.tools.base import Tool
from lingti_bot.ai.tools.bridge import ToolBridge
from lingti_bot.ai.tools.registry import ToolRegistry
from lingti_bot.config import AIConfig, AppConfig
from lingti_bot.core.locks import KeyedLock
from lingti_bot.core.session import SessionStore
from lingti_bot.log import get_logger
from lingti_bot.messenger.models import IncomingMessage
from lingti_bot.services.service_manager import ServiceManager

logger = get_logger(__name__)


class LingtiApp:
    """Top-level application orchestrator.

    All agents share one memory, session store and tool bridge; a separate
    agent exists per distinct provider override so each platform/channel talks
    to the provider configured for it.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.memory = ConversationMemory(config.memory.max_messages, config.memory.ttl_seconds)
        self.sessions = SessionStore()
        self.locks = KeyedLock()
        self.tool_registry = ToolRegistry()
        self.service_manager = ServiceManager(config, self.memory)
        self.bridge = ToolBridge(
            self.tool_registry,
            self.service_manager.get_mcp(),
            enabled=config.ai.tools or None,
        )
        self._agents: dict[tuple[str, str, str, str], Agent] = {}
        # Fail fast on a bad default provider.
        self.default_agent = self._agent_for_config(config.ai)

    async def start(self) -> None:
        """Initialize and start all components."""
        await self.service_manager.start_all()
        self.bridge.refresh()
        logger.info(
            "lingti_bot_started",
            provider=self.default_agent.provider.name,
            model=self.default_agent.provider.model,
            tools=len(self.bridge.definitions()),
        )

    async def stop(self) -> None:
        """Gracefully shut down all components."""
        await self.service_manager.stop_all()
        logger.info("lingti_bot_stopped")

    def register_tool(self, tool: Tool) -> None:
        self.tool_registry.register(tool)
        self.bridge.refresh()

    def agent_for(self, platform: str, channel_id: str = "") -> Agent:
        return self._agent_for_config(self.config.resolve_ai(platform, channel_id))

    async def handle(self, message: IncomingMessage) -> str:
        """Process an incoming message end-to-end and return the reply text."""
        agent = self.agent_for(message.platform, message.channel_id)
        return await agent.handle_message(message)

    def _agent_for_config(self, ai: AIConfig) -> Agent:
        cache_key = (ai.provider, ai.api_key, ai.base_url, ai.model)
        agent = self._agents.get(cache_key)
        if agent is None:
            agent = Agent(
                ai,
                memory=self.memory,
                sessions=self.sessions,
                bridge=self.bridge,
                locks=self.locks,
            )
            self._agents[cache_key] = agent
            logger.info("agent_created", provider=agent.provider.name, model=agent.provider.model)
        return agent
