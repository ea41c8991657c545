"""lingti-bot: conversational agent core with multi-provider LLM and MCP tool support."""

__version__ = "0.1.0"
