# chatops/interfaces/slack/dispatcher.py
"""Command dispatch: permission check, parameters, forms, execution, reply.

The SlackDispatcher holds only read-only state (registry, rules, options),
so one instance serves every concurrent event. Everything tied to a single
event (the transport and its reactor) is passed per call.

Flow for a message or slash command:
    resolve command -> permission check -> usage counter -> parameters
    -> form (suspend) or execute -> reply -> done/failed reaction

Flow for a form callback:
    decode token -> hide form -> clear dialog -> execute -> reply
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from chatops.config import Settings
from chatops.core.commands.models import Attachment, AttachmentType, ChatUser, ExecuteParams, Response
from chatops.core.commands.parser import MessageInfo, find_params, get_event_text_command
from chatops.core.commands.registry import CommandEntry, CommandRegistry
from chatops.core.errors import ExecutionError, TransportError
from chatops.core.permissions import PermissionEvaluator
from chatops.interfaces.slack.blocks import (
    build_error_attachment,
    build_image_attachment,
    build_reply_blocks,
    build_text_attachment,
    limit_text,
)
from chatops.interfaces.slack.forms import FormManager, FormState, needs_form
from chatops.interfaces.slack.progress import ProgressReactor, Reactions
from chatops.interfaces.slack.slack_api import SlackTransport
from chatops.utils.observability import UsageCounter, request_labels

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOptions:
    """Rendering options of replies."""

    attachment_color: str = "#555555"
    error_color: str = "#ff0000"


def _log_fields(entry: CommandEntry, message: MessageInfo) -> dict[str, str]:
    return {
        "command": entry.name,
        "group": entry.group,
        "user_id": message.user_id,
        "channel_id": message.channel_id,
    }


class SlackDispatcher:
    """Routes dispatch events to commands and replies with their output.

    Attributes:
        registry: Commands available to the bot.
        evaluator: Permission evaluator.
        reactions: Status reaction names.
        options: Reply rendering options.
        counter: Usage counter.
        forms: Form manager.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        evaluator: PermissionEvaluator,
        reactions: Reactions,
        options: DispatchOptions | None = None,
        counter: UsageCounter | None = None,
    ) -> None:
        self.registry = registry
        self.evaluator = evaluator
        self.reactions = reactions
        self.options = options or DispatchOptions()
        self.counter = counter or UsageCounter()
        self.forms = FormManager(reactions.dialog, reactions.failed)

    @classmethod
    def from_settings(
        cls, registry: CommandRegistry, config: Settings
    ) -> "SlackDispatcher":
        """Create a dispatcher from application settings."""
        return cls(
            registry=registry,
            evaluator=PermissionEvaluator.from_config(config.slack_permissions),
            reactions=Reactions(
                doing=config.slack_reaction_doing,
                done=config.slack_reaction_done,
                failed=config.slack_reaction_failed,
                dialog=config.slack_reaction_dialog,
            ),
            options=DispatchOptions(
                attachment_color=config.slack_attachment_color,
                error_color=config.slack_error_color,
            ),
        )

    def _reactor(self, transport: SlackTransport) -> ProgressReactor:
        return ProgressReactor(transport, self.reactions)

    def _is_privileged(self, entry: CommandEntry) -> bool:
        return entry is self.registry.default_command or entry is self.registry.help_command

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        message: MessageInfo,
        transport: SlackTransport,
        profile: dict[str, Any] | None = None,
    ) -> None:
        """Handle a message or slash command.

        Args:
            message: Incoming message.
            transport: Slack transport for this event.
            profile: Profile of the sender when the event carries one.
        """
        text, _ = get_event_text_command(message)
        resolved = self.registry.resolve(text)
        if resolved is None:
            await self.handle_unsupported(message, transport, profile)
            return

        entry, token = resolved
        await self.handle_command(entry, token, message, transport, profile)

    async def handle_interaction(
        self, body: dict[str, Any], transport: SlackTransport
    ) -> None:
        """Handle a form submit or cancel click.

        Args:
            body: block_actions payload.
            transport: Slack transport for this event.
        """
        reactor = self._reactor(transport)
        outcome = await self.forms.resume(body, transport, reactor)
        if outcome is None or outcome.state is not FormState.SUBMITTED:
            return

        entry = self.registry.find_interaction(outcome.interaction_id)
        if entry is None:
            logger.error(
                "Unknown interaction %s",
                outcome.interaction_id,
                extra={
                    "interaction_id": outcome.interaction_id,
                    "user_id": outcome.message.user_id,
                    "channel_id": outcome.message.channel_id,
                },
            )
            await reactor.add(outcome.message, self.reactions.failed)
            return

        await self.post_command(
            entry, outcome.message, transport, outcome.params, outcome.profile
        )

    # ------------------------------------------------------------------
    # Command handling
    # ------------------------------------------------------------------

    async def handle_command(
        self,
        entry: CommandEntry,
        token: str,
        message: MessageInfo,
        transport: SlackTransport,
        profile: dict[str, Any] | None = None,
        failed: bool = False,
    ) -> None:
        """Run a resolved command, collecting missing fields with a form.

        Args:
            entry: Command to run.
            token: Token the command was invoked by.
            message: Incoming message.
            transport: Slack transport for this event.
            profile: Profile of the sender, if known.
            failed: End with the failed reaction even on success.
        """
        command = entry.command
        qualified_name = entry.qualified_name

        if not self._is_privileged(entry):
            denied = await self.evaluator.deny_access(
                message.user_id, qualified_name, transport.list_user_groups
            )
            if denied:
                logger.debug(
                    "Slack user %s is not permitted to execute %s",
                    message.user_id,
                    qualified_name,
                    extra=_log_fields(entry, message),
                )
                await self.handle_unsupported(message, transport, profile)
                return

        text, _ = get_event_text_command(message)
        self.counter.inc(request_labels(entry.group, command.name, text, message.user_id))

        params = find_params(token, list(command.params), message)
        if needs_form(list(command.fields), params):
            reactor = self._reactor(transport)
            try:
                state = await self.forms.issue(entry, params, message, transport, reactor)
            except TransportError as e:
                await self.reply_error(message, transport, e)
                await reactor.finish(message, success=False)
                return
            if state is FormState.ISSUED:
                return

        await self.post_command(entry, message, transport, params, profile, failed)

    async def handle_unsupported(
        self,
        message: MessageInfo,
        transport: SlackTransport,
        profile: dict[str, Any] | None = None,
    ) -> None:
        """Handle input that maps to no permitted command.

        Empty input shows help; anything else goes to the default command,
        which ends with the failed reaction. Without either, only the usage
        counter is updated.
        """
        text, _ = get_event_text_command(message)

        help_entry = self.registry.help_command
        if not text and help_entry is not None:
            await self.handle_command(help_entry, help_entry.name, message, transport, profile)
            return

        default_entry = self.registry.default_command
        if default_entry is not None:
            await self.handle_command(
                default_entry, default_entry.name, message, transport, profile, failed=True
            )
            return

        self.counter.inc(request_labels("", "", text, message.user_id))

    async def post_command(
        self,
        entry: CommandEntry,
        message: MessageInfo,
        transport: SlackTransport,
        params: ExecuteParams,
        profile: dict[str, Any] | None = None,
        failed: bool = False,
    ) -> bool:
        """Execute a command and reply with its output.

        Returns:
            True if the command ran and the reply was posted.
        """
        command = entry.command
        reactor = self._reactor(transport)
        user = ChatUser(id=message.user_id, name=(profile or {}).get("display_name", ""))

        await reactor.start(message)
        start = time.monotonic()
        try:
            output, attachments = await command.execute(self, user, params)
        except Exception as e:
            logger.exception(
                "Command %s failed", entry.qualified_name, extra=_log_fields(entry, message)
            )
            error = ExecutionError(str(e) or type(e).__name__, command.name)
            await self.reply_error(message, transport, error)
            await reactor.finish(message, success=False)
            return False

        elapsed = time.monotonic() - start
        try:
            await self.reply(
                message, transport, output, attachments or [], command.response, elapsed
            )
        except TransportError as e:
            await self.reply_error(message, transport, e)
            await reactor.finish(message, success=False)
            return False

        await reactor.finish(message, success=not failed)
        return True

    # ------------------------------------------------------------------
    # Replies
    # ------------------------------------------------------------------

    async def build_attachments(
        self, attachments: list[Attachment], transport: SlackTransport
    ) -> list[dict]:
        """Render command attachments, uploading images.

        Raises:
            TransportError: If an image upload fails.
        """
        color = self.options.attachment_color
        rendered: list[dict] = []
        for attachment in attachments:
            if attachment.type == AttachmentType.IMAGE:
                file_id = await transport.upload_file(attachment.data)
                rendered.append(
                    build_image_attachment(file_id, attachment.title, attachment.text, color)
                )
            else:
                body = attachment.data.decode("utf-8", errors="replace")
                rendered.append(build_text_attachment(attachment.title, body, color))
        return rendered

    async def reply(
        self,
        message: MessageInfo,
        transport: SlackTransport,
        output: str,
        attachments: list[Attachment],
        response: Response,
        elapsed: float | None = None,
    ) -> None:
        """Post a command's output.

        Raises:
            TransportError: If the reply could not be posted.
        """
        text, _ = get_event_text_command(message)
        blocks = build_reply_blocks(
            output,
            message.user_id,
            text,
            original=response.original,
            elapsed=elapsed if response.duration else None,
        )
        rendered = await self.build_attachments(attachments, transport)
        await transport.post_message(
            message.channel_id,
            text=limit_text(output),
            blocks=blocks,
            attachments=rendered,
            thread_ts=message.thread_timestamp,
            ephemeral_user="" if response.visible else message.user_id,
        )

    async def reply_error(
        self, message: MessageInfo, transport: SlackTransport, error: Exception
    ) -> None:
        """Post an error privately to the invoking user.

        Failures to post are logged.
        """
        logger.error("Slack reply error: %s", error)
        try:
            await transport.post_message(
                message.channel_id,
                text=limit_text(str(error)),
                attachments=[build_error_attachment(str(error), self.options.error_color)],
                thread_ts=message.thread_timestamp,
                ephemeral_user=message.user_id,
            )
        except TransportError as e:
            logger.error("Slack error reply failed: %s", e)


_dispatcher: SlackDispatcher | None = None


def set_dispatcher(dispatcher: SlackDispatcher | None) -> None:
    """Install the dispatcher used by the event handlers."""
    global _dispatcher
    _dispatcher = dispatcher


def get_dispatcher() -> SlackDispatcher:
    """Get the dispatcher installed at startup.

    Raises:
        RuntimeError: If no dispatcher has been installed.
    """
    if _dispatcher is None:
        raise RuntimeError("Dispatcher is not initialized; call create_bot() first")
    return _dispatcher
