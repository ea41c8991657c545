"""CLI entry point for lingti-bot."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys

from lingti_bot.app import LingtiApp
from lingti_bot.config import AppConfig, load_config
from lingti_bot.core.errors import ConfigurationError
from lingti_bot.core.progress import progress_scope
from lingti_bot.log import setup_logging
from lingti_bot.messenger.models import IncomingMessage

CLI_PLATFORM = "cli"
CLI_CHANNEL = "local"
_EXIT_WORDS = {"/exit", "/quit"}


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="lingti-bot",
        description="Conversational agent with multi-provider LLM and MCP tool support",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("chat", "Chat with the agent in this terminal"),
        ("config-check", "Validate configuration"),
        ("model-info", "Show provider and model per platform override"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
        sub.add_argument("-e", "--env", default=".env", help="Path to .env file")
        sub.add_argument("--log-level", default=None, help="Override the configured log level")

    args = parser.parse_args()

    if args.command is None:
        # Default to chat
        args.command = "chat"
        args.config = "config.yaml"
        args.env = ".env"
        args.log_level = None

    if args.command == "config-check":
        _check_config(args.config, args.env)
    elif args.command == "model-info":
        _model_info(args.config, args.env)
    elif args.command == "chat":
        _chat(args.config, args.env, args.log_level)


def _load_or_exit(config_path: str, env_path: str) -> AppConfig:
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Copy config.example.yaml to config.yaml and edit it first.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_config(config_path: str, env_path: str) -> None:
    """Validate configuration and print summary."""
    config = _load_or_exit(config_path, env_path)
    try:
        setup_logging("error")
        app = LingtiApp(config)
    except (ConfigurationError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    provider = app.default_agent.provider
    print(f"Configuration valid: {config_path}")
    print(f"  Provider: {provider.name} ({provider.model})")
    print(f"  Max rounds: {config.ai.max_rounds}")
    print(f"  Memory: {config.memory.max_messages} messages, TTL {config.memory.ttl_seconds:g}s")
    print(f"  Overrides: {len(config.ai.overrides)}")
    print(f"  MCP servers: {len(config.mcp_servers)}")
    for server in config.mcp_servers:
        target = server.url or " ".join([server.command, *server.args])
        print(f"    - {server.name}: {target}")


def _model_info(config_path: str, env_path: str) -> None:
    """Show AI provider information for the default config and each override."""
    config = _load_or_exit(config_path, env_path)
    setup_logging("error")
    try:
        app = LingtiApp(config)
    except (ConfigurationError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    print("AI Model Configuration")
    print("=" * 50)
    targets = [("(default)", "", "")] + [
        (f"{o.platform}{':' + o.channel_id if o.channel_id else ''}", o.platform, o.channel_id)
        for o in config.ai.overrides
    ]
    for label, platform, channel_id in targets:
        try:
            agent = app.agent_for(platform, channel_id) if platform else app.default_agent
        except ConfigurationError as e:
            print(f"\n  {label}: error: {e}")
            continue
        print(f"\n  {label}")
        print(f"    Provider : {agent.provider.name}")
        print(f"    Model    : {agent.provider.model}")
        print(f"    Thinking : {'native' if agent.provider.supports_thinking else 'prompt'}")
    print()


def _chat(config_path: str, env_path: str, log_level: str | None) -> None:
    """Load config and run an interactive terminal conversation."""
    config = _load_or_exit(config_path, env_path)
    try:
        setup_logging(log_level or config.log_level, config.log_json)
        app = LingtiApp(config)
    except (ConfigurationError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    user = getpass.getuser()

    async def _async_main() -> None:
        await app.start()
        try:
            with progress_scope(lambda text: print(text, file=sys.stderr)):
                while True:
                    try:
                        line = await asyncio.to_thread(input, "you> ")
                    except EOFError:
                        break
                    if line.strip().lower() in _EXIT_WORDS:
                        break
                    reply = await app.handle(
                        IncomingMessage(
                            platform=CLI_PLATFORM,
                            channel_id=CLI_CHANNEL,
                            user_id=user,
                            username=user,
                            text=line,
                        )
                    )
                    if reply:
                        print(f"bot> {reply}")
        finally:
            await app.stop()

    try:
        asyncio.run(_async_main())
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
