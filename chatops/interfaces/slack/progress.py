# chatops/interfaces/slack/progress.py
"""Progress feedback through emoji reactions on the originating message.

A dispatch that reaches execution gets the `doing` reaction, then either
`done` or `failed` while `doing` is removed. A pending form is signalled
with the separate `dialog` reaction.
"""

import logging
from dataclasses import dataclass

from chatops.core.commands.parser import SLASH_COMMAND_TYPE, MessageInfo
from chatops.core.errors import TransportError
from chatops.interfaces.slack.slack_api import SlackTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reactions:
    """Emoji names used as status markers."""

    doing: str = "eyes"
    done: str = "white_check_mark"
    failed: str = "x"
    dialog: str = "speech_balloon"


def _is_addressable(message: MessageInfo) -> bool:
    # Slash commands have no message to react to
    return message.type != SLASH_COMMAND_TYPE and bool(message.timestamp)


class ProgressReactor:
    """Adds and removes status reactions.

    Reaction failures are logged and never interrupt the caller.
    """

    def __init__(self, transport: SlackTransport, reactions: Reactions) -> None:
        self.transport = transport
        self.reactions = reactions

    async def add(self, message: MessageInfo, name: str) -> None:
        if not name or not _is_addressable(message):
            return
        try:
            await self.transport.add_reaction(message.channel_id, message.timestamp, name)
        except TransportError as e:
            logger.error("Slack adding reaction error: %s", e)

    async def remove(self, message: MessageInfo, name: str) -> None:
        if not name or not _is_addressable(message):
            return
        try:
            await self.transport.remove_reaction(
                message.channel_id, message.timestamp, name
            )
        except TransportError as e:
            logger.error("Slack removing reaction error: %s", e)

    async def swap(self, message: MessageInfo, first: str, second: str) -> None:
        """Add the first reaction, then remove the second."""
        await self.add(message, first)
        await self.remove(message, second)

    async def start(self, message: MessageInfo) -> None:
        await self.add(message, self.reactions.doing)

    async def finish(self, message: MessageInfo, success: bool) -> None:
        """Mark the execution as done or failed and clear `doing`."""
        outcome = self.reactions.done if success else self.reactions.failed
        await self.swap(message, outcome, self.reactions.doing)
