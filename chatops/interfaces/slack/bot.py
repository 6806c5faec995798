# chatops/interfaces/slack/bot.py
"""Slack bot implementation with AsyncApp and AsyncSocketModeHandler.

Provides event handlers for:
- @mentions (app_mention event)
- Direct messages (message event, channel_type="im")
- The configured slash command
- Submit/cancel clicks on command forms (block_actions)

The command registry and dispatcher are built before the socket handler
is created, and are read-only afterwards.
"""

import asyncio
import logging
import re

from dotenv import load_dotenv
from slack_bolt.async_app import AsyncApp
from slack_sdk.web.async_client import AsyncWebClient

# Load environment variables from .env file
load_dotenv()
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler

from chatops.config import Settings, settings
from chatops.core.commands.builtin import HelpCommand
from chatops.core.commands.models import Processor
from chatops.core.commands.registry import (
    CommandRegistry,
    get_processors,
    load_processor_modules,
)
from chatops.interfaces.slack.dispatcher import SlackDispatcher, set_dispatcher
from chatops.interfaces.slack.handlers import (
    ack_action,
    ack_command,
    ack_mention,
    handle_message,
    process_action,
    process_command,
    process_mention,
)
from chatops.utils.logging import configure_logging
from chatops.utils.observability import setup_logfire

logger = logging.getLogger(__name__)


# ============================================================================
# Registry
# ============================================================================


def build_registry(config: Settings) -> CommandRegistry:
    """Load processor modules and build the command registry.

    The built-in help command is added at root level unless a processor
    already provides a root command with the configured help name.

    Args:
        config: Application settings.

    Returns:
        CommandRegistry for the dispatcher.
    """
    load_processor_modules(config.processor_module_list)
    processors = get_processors()

    help_name = config.slack_help_command
    if help_name and not any(
        not p.name and any(c.name == help_name for c in p.commands) for p in processors
    ):
        processors.append(Processor(name="", commands=(HelpCommand(help_name),)))

    return CommandRegistry.build(
        processors,
        default_command=config.slack_default_command,
        help_command=help_name,
    )


# ============================================================================
# Event Registration
# ============================================================================


def register_handlers(app: AsyncApp, registry: CommandRegistry, config: Settings) -> None:
    """Register event, command and action listeners on the app."""
    # Register with lazy listener pattern
    app.event("app_mention")(ack=ack_mention, lazy=[process_mention])
    app.event("message")(handle_message)

    if config.slack_slash_command:
        app.command(config.slack_slash_command)(ack=ack_command, lazy=[process_command])

    for interaction_id in registry.interactions:
        app.action({"block_id": interaction_id, "action_id": re.compile(".*")})(
            ack=ack_action, lazy=[process_action]
        )


# ============================================================================
# Bot Factory and Startup Functions
# ============================================================================


def create_bot(
    bot_token: str | None = None,
    app_token: str | None = None,
    config: Settings = settings,
) -> tuple[AsyncApp, AsyncSocketModeHandler]:
    """Create and configure the Slack bot.

    Args:
        bot_token: Slack bot token (xoxb-*). Defaults to SLACK_BOT_TOKEN env var.
        app_token: Slack app token (xapp-*). Defaults to SLACK_APP_TOKEN env var.
        config: Application settings.

    Returns:
        Tuple of (AsyncApp instance, AsyncSocketModeHandler instance).
    """
    resolved_bot_token = bot_token or config.slack_bot_token
    resolved_app_token = app_token or config.slack_app_token

    registry = build_registry(config)
    set_dispatcher(SlackDispatcher.from_settings(registry, config))

    if config.slack_debug:
        logging.getLogger("slack_bolt").setLevel(logging.DEBUG)
        logging.getLogger("slack_sdk").setLevel(logging.DEBUG)

    client = AsyncWebClient(token=resolved_bot_token, timeout=config.slack_timeout)
    app = AsyncApp(client=client)
    register_handlers(app, registry, config)

    handler = AsyncSocketModeHandler(app, resolved_app_token)
    return app, handler


async def start_bot(bot_token: str | None = None, app_token: str | None = None) -> None:
    """Start the Slack bot with Socket Mode."""
    _, handler = create_bot(bot_token, app_token)

    logger.info("Starting Slack bot with Socket Mode...")
    try:
        await handler.start_async()
    except asyncio.CancelledError:
        logger.info("Received shutdown signal")
    finally:
        await handler.close_async()
        logger.info("Slack bot stopped")


def main() -> None:
    """Entry point with graceful shutdown handling."""
    configure_logging(settings.log_level, settings.log_format)
    setup_logfire()

    try:
        asyncio.run(start_bot())
    except KeyboardInterrupt:
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
