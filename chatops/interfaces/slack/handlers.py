# chatops/interfaces/slack/handlers.py
"""Event handlers for Slack bot.

Provides handlers for:
- @mentions (app_mention event)
- Direct messages (message event, channel_type="im")
- The bot's slash command
- Form button clicks (block_actions)

Uses lazy listener pattern to ack within 3s and process in background.
Every handler turns its payload into a MessageInfo (or passes the raw
block_actions body) and hands it to the dispatcher together with a
SlackTransport bound to the listener's client.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from chatops.config import settings
from chatops.core.commands.parser import (
    APP_MENTION_TYPE,
    MESSAGE_TYPE,
    SLASH_COMMAND_TYPE,
    MessageInfo,
)
from chatops.interfaces.slack.dispatcher import get_dispatcher
from chatops.interfaces.slack.slack_api import SlackTransport
from chatops.utils.logging import set_request_id

logger = logging.getLogger(__name__)


def _create_transport(client: Any) -> SlackTransport:
    return SlackTransport(client, public_channel=settings.slack_public_channel)


def message_from_event(event: dict[str, Any], event_type: str) -> MessageInfo:
    """Build a MessageInfo from an Events API payload.

    Args:
        event: app_mention or message event.
        event_type: Type to record on the message.

    Returns:
        MessageInfo for the event.
    """
    return MessageInfo(
        type=event_type,
        text=event.get("text", ""),
        user_id=event.get("user", ""),
        channel_id=event.get("channel", ""),
        timestamp=event.get("ts", ""),
        thread_timestamp=event.get("thread_ts", ""),
    )


def message_from_command(command: dict[str, Any]) -> MessageInfo:
    """Build a MessageInfo from a slash command payload.

    Slash commands have no message, so the timestamp stays empty.
    """
    return MessageInfo(
        type=SLASH_COMMAND_TYPE,
        text=command.get("text", ""),
        user_id=command.get("user_id", ""),
        channel_id=command.get("channel_id", ""),
    )


async def _run_safely(event_type: str, handler: Callable[[], Awaitable[None]]) -> None:
    # Listener tasks must never raise back into bolt
    try:
        await handler()
    except Exception as e:
        logger.exception("Error processing %s: %s", event_type, e)


# ============================================================================
# App Mention Handler (Lazy Listener Pattern)
# ============================================================================


async def ack_mention(ack: Callable) -> None:
    """Acknowledge app_mention event immediately.

    Args:
        ack: Slack ack function to acknowledge receipt.
    """
    await ack()


async def process_mention(event: dict[str, Any], client: Any) -> None:
    """Dispatch a command addressed to the bot with an @mention."""
    set_request_id(event.get("ts"))
    message = message_from_event(event, APP_MENTION_TYPE)
    await _run_safely(
        "mention",
        lambda: get_dispatcher().dispatch(
            message, _create_transport(client), event.get("user_profile")
        ),
    )


# ============================================================================
# DM Message Handler
# ============================================================================


async def process_dm(event: dict[str, Any], client: Any) -> None:
    """Dispatch a command sent as a direct message."""
    if event.get("bot_id") or event.get("subtype"):
        return

    set_request_id(event.get("ts"))
    message = message_from_event(event, MESSAGE_TYPE)
    await _run_safely(
        "DM",
        lambda: get_dispatcher().dispatch(
            message, _create_transport(client), event.get("user_profile")
        ),
    )


async def handle_message(event: dict[str, Any], ack: Callable, client: Any) -> None:
    """Handle message events, filtering for DMs."""
    await ack()
    if event.get("channel_type") == "im":
        await process_dm(event, client)


# ============================================================================
# Slash Command Handler (Lazy Listener Pattern)
# ============================================================================


async def ack_command(ack: Callable) -> None:
    """Acknowledge slash command immediately."""
    await ack()


async def process_command(command: dict[str, Any], client: Any) -> None:
    """Dispatch a slash command."""
    set_request_id(command.get("trigger_id"))
    message = message_from_command(command)
    await _run_safely(
        "slash command",
        lambda: get_dispatcher().dispatch(message, _create_transport(client)),
    )


# ============================================================================
# Form Action Handler (Lazy Listener Pattern)
# ============================================================================


async def ack_action(ack: Callable) -> None:
    """Acknowledge block action immediately."""
    await ack()


async def process_action(body: dict[str, Any], client: Any) -> None:
    """Resume a command from a form submit or cancel click."""
    set_request_id(body.get("trigger_id"))
    await _run_safely(
        "interaction",
        lambda: get_dispatcher().handle_interaction(body, _create_transport(client)),
    )
