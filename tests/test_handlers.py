"""Tests for Slack event handlers and bot wiring."""

import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import EchoCommand, FallbackCommand

from chatops.config import Settings
from chatops.core.commands.builtin import HelpCommand
from chatops.core.commands.parser import MessageInfo
from chatops.interfaces.slack import handlers
from chatops.interfaces.slack.bot import build_registry, register_handlers
from chatops.interfaces.slack.slack_api import SlackTransport


@pytest.fixture
def mock_dispatcher():
    """Patch the dispatcher used by the handlers."""
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock()
    dispatcher.handle_interaction = AsyncMock()
    with patch.object(handlers, "get_dispatcher", return_value=dispatcher):
        yield dispatcher


class TestMessageConversion:
    """Test suite for payload to MessageInfo conversion."""

    def test_message_from_event(self) -> None:
        event = {
            "type": "app_mention",
            "text": "<@UBOT> echo hi",
            "user": "U1",
            "channel": "C1",
            "ts": "111.1",
            "thread_ts": "100.0",
        }
        assert handlers.message_from_event(event, "app_mention") == MessageInfo(
            type="app_mention",
            text="<@UBOT> echo hi",
            user_id="U1",
            channel_id="C1",
            timestamp="111.1",
            thread_timestamp="100.0",
        )

    def test_message_from_command(self) -> None:
        command = {"text": "echo hi", "user_id": "U1", "channel_id": "C1", "command": "/chatops"}
        message = handlers.message_from_command(command)
        assert message.type == "slash_commands"
        assert message.text == "echo hi"
        assert message.timestamp == ""


class TestHandlers:
    """Test suite for listener functions."""

    @pytest.mark.asyncio
    async def test_ack_functions(self) -> None:
        for ack_handler in (handlers.ack_mention, handlers.ack_command, handlers.ack_action):
            ack = AsyncMock()
            await ack_handler(ack)
            ack.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_process_mention(self, mock_dispatcher) -> None:
        client = AsyncMock()
        event = {"text": "<@UBOT> echo", "user": "U1", "channel": "C1", "ts": "1.1"}

        await handlers.process_mention(event, client)

        message, transport, profile = mock_dispatcher.dispatch.await_args.args
        assert message.type == "app_mention"
        assert isinstance(transport, SlackTransport)
        assert transport.client is client
        assert profile is None

    @pytest.mark.asyncio
    async def test_dm_dispatched(self, mock_dispatcher) -> None:
        ack = AsyncMock()
        event = {"channel_type": "im", "text": "echo", "user": "U1", "channel": "D1", "ts": "1.1"}

        await handlers.handle_message(event, ack, AsyncMock())

        ack.assert_awaited_once()
        message = mock_dispatcher.dispatch.await_args.args[0]
        assert message.type == "message"
        assert message.channel_id == "D1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event",
        [
            {"channel_type": "channel", "text": "echo", "user": "U1"},
            {"channel_type": "im", "text": "echo", "bot_id": "B1"},
            {"channel_type": "im", "text": "edited", "subtype": "message_changed"},
        ],
    )
    async def test_ignored_messages(self, mock_dispatcher, event) -> None:
        await handlers.handle_message(event, AsyncMock(), AsyncMock())
        mock_dispatcher.dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_process_command(self, mock_dispatcher) -> None:
        command = {"text": "help", "user_id": "U1", "channel_id": "C1", "trigger_id": "t1"}

        await handlers.process_command(command, AsyncMock())

        message = mock_dispatcher.dispatch.await_args.args[0]
        assert message.type == "slash_commands"

    @pytest.mark.asyncio
    async def test_process_action(self, mock_dispatcher) -> None:
        body = {"type": "block_actions", "actions": []}

        await handlers.process_action(body, AsyncMock())

        assert mock_dispatcher.handle_interaction.await_args.args[0] is body

    @pytest.mark.asyncio
    async def test_errors_do_not_escape(self, mock_dispatcher) -> None:
        """Test that a failing dispatch is logged instead of raised."""
        mock_dispatcher.dispatch.side_effect = RuntimeError("unexpected")
        event = {"text": "<@UBOT> echo", "user": "U1", "channel": "C1", "ts": "1.1"}

        await handlers.process_mention(event, AsyncMock())


class TestBotWiring:
    """Test suite for registry construction and listener registration."""

    def test_build_registry_adds_help(self, reset_processors) -> None:
        from chatops.core.commands.registry import register_processor

        register_processor("", [EchoCommand(), FallbackCommand()])
        config = Settings(slack_default_command="unknown", slack_help_command="help")

        registry = build_registry(config)

        assert isinstance(registry.help_command.command, HelpCommand)
        assert registry.default_command.name == "unknown"
        assert registry.resolve("echo hi") is not None

    def test_build_registry_keeps_custom_help(self, reset_processors) -> None:
        from chatops.core.commands.registry import register_processor

        custom = HelpCommand("help")
        register_processor("", [custom])

        registry = build_registry(Settings(slack_help_command="help"))

        assert registry.help_command.command is custom

    def test_register_handlers(self, registry) -> None:
        app = MagicMock()
        config = Settings(slack_slash_command="/ops")

        register_handlers(app, registry, config)

        app.event.assert_any_call("app_mention")
        app.event.assert_any_call("message")
        app.command.assert_called_once_with("/ops")
        block_ids = {c.args[0]["block_id"] for c in app.action.call_args_list}
        assert block_ids == {"deploy", "deploy-k8s"}
        action_id = app.action.call_args_list[0].args[0]["action_id"]
        assert isinstance(action_id, re.Pattern)

    def test_register_handlers_without_slash_command(self, registry) -> None:
        app = MagicMock()
        register_handlers(app, registry, Settings(slack_slash_command=""))
        app.command.assert_not_called()
