"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from lingti_bot.core.types import BusyPolicy


class AIOverride(BaseModel):
    """Per-platform (optionally per-channel) replacement of AI settings."""

    platform: str
    channel_id: str = ""
    provider: str = ""
    api_key: str = ""
    base_url: str = ""
    model: str = ""


class AIConfig(BaseModel):
    provider: str = ""  # empty means claude
    api_key: str = ""
    base_url: str = ""
    model: str = ""  # empty means the provider's default model
    max_tokens: int = 4096
    max_rounds: int = 10
    temperature: float = 0.7
    system_prompt: str = "You are a helpful assistant. Use the available tools when they help."
    thinking: bool = True  # native extended thinking where the provider supports it
    max_retries: int = 3
    timeout: int = 120  # SDK HTTP timeout, seconds
    request_timeout: float = 300.0  # one whole provider round, seconds
    tool_timeout: float = 60.0
    busy_policy: BusyPolicy = BusyPolicy.QUEUE
    tools: list[str] = Field(default_factory=list)  # enabled local tools; empty means all
    overrides: list[AIOverride] = Field(default_factory=list)


class MemoryConfig(BaseModel):
    max_messages: int = 50
    ttl_seconds: float = 3600.0
    sweep_interval: float = 0.0  # seconds; 0 disables the background sweeper


class McpServerConfig(BaseModel):
    name: str
    command: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    url: str = ""  # SSE endpoint; used instead of command when set


class AppConfig(BaseModel):
    log_level: str = "INFO"
    log_json: bool = False
    ai: AIConfig = Field(default_factory=AIConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    mcp_servers: list[McpServerConfig] = Field(default_factory=list)

    def resolve_ai(self, platform: str, channel_id: str = "") -> AIConfig:
        """Return AI settings for a platform/channel, most specific override first."""
        for override in self.ai.overrides:
            if override.platform == platform and override.channel_id and override.channel_id == channel_id:
                return _apply_override(self.ai, override)
        for override in self.ai.overrides:
            if override.platform == platform and not override.channel_id:
                return _apply_override(self.ai, override)
        return self.ai


def _apply_override(base: AIConfig, override: AIOverride) -> AIConfig:
    changes: dict[str, object] = {"overrides": []}
    if override.provider and override.provider != base.provider:
        # New provider: don't carry the old provider's endpoint or model over.
        changes.update(provider=override.provider, base_url="", model="")
    if override.api_key:
        changes["api_key"] = override.api_key
    if override.base_url:
        changes["base_url"] = override.base_url
    if override.model:
        changes["model"] = override.model
    return base.model_copy(update=changes)


_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


def _interpolate_env_vars(text: str, extra: dict[str, str] | None = None) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        if extra and var_name in extra:
            return extra[var_name]
        value = os.environ.get(var_name)
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def load_config(
    config_path: str | Path = "config.yaml", env_path: Optional[str | Path] = ".env"
) -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation."""
    if env_path is not None:
        env_file = Path(env_path)
        if env_file.exists():
            load_dotenv(env_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    raw_text = config_file.read_text(encoding="utf-8")
    data = yaml.safe_load(_interpolate_env_vars(raw_text)) or {}

    return AppConfig(**data)
