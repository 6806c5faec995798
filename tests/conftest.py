# tests/conftest.py
"""Shared pytest fixtures for all test modules.

Provides common fixtures for:
- Sample commands (plain, form-bearing, failing)
- A mocked SlackTransport recording every platform call
- Registry and dispatcher construction
- Processor registry reset
"""

from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest

from chatops.core.commands.models import (
    Attachment,
    ChatUser,
    Command,
    ExecuteParams,
    Field,
    FieldType,
    Processor,
    Response,
)
from chatops.core.commands.parser import MessageInfo
from chatops.core.commands.registry import CommandRegistry
from chatops.core.permissions import PermissionEvaluator
from chatops.interfaces.slack.dispatcher import SlackDispatcher
from chatops.interfaces.slack.progress import Reactions
from chatops.interfaces.slack.slack_api import SlackTransport


class EchoCommand(Command):
    """Replies with its argument text."""

    name = "echo"
    aliases = ("say",)
    description = "Echo text back"
    params = (r"(?P<text>.+)",)
    response = Response(visible=True)

    async def execute(self, bot, user: ChatUser, params: ExecuteParams):
        return params.get("text", ""), []


class DeployCommand(Command):
    """Command with two required fields."""

    name = "deploy"
    description = "Deploy a version"
    params = (r"env=(?P<env>\w+) version=(?P<version>\S+)",)
    fields = (
        Field("env", FieldType.SELECT, label="Environment", values=("dev", "prod")),
        Field("version", label="Version"),
    )
    response = Response(visible=True, original=True, duration=True)

    def __init__(self) -> None:
        self.calls: list[tuple[ChatUser, dict]] = []

    async def execute(self, bot, user: ChatUser, params: ExecuteParams):
        self.calls.append((user, dict(params)))
        return f"Deployed {params['version']} to {params['env']}", []


class FailingCommand(Command):
    """Command whose body always raises."""

    name = "broken"

    async def execute(self, bot, user: ChatUser, params: ExecuteParams):
        raise RuntimeError("boom")


class FallbackCommand(Command):
    """Command used as the default for unknown input."""

    name = "unknown"

    async def execute(self, bot, user: ChatUser, params: ExecuteParams):
        return "I don't know that command", []


class ReportCommand(Command):
    """Command returning attachments."""

    name = "report"

    async def execute(self, bot, user: ChatUser, params: ExecuteParams):
        return "Report", [
            Attachment(title="*Summary*", data=b"all good"),
        ]


REACTIONS = Reactions(doing="eyes", done="white_check_mark", failed="x", dialog="speech_balloon")


def make_message(
    text: str,
    type: str = "app_mention",
    ts: str = "111.1",
    thread_ts: str = "",
    user: str = "U1",
    channel: str = "C1",
) -> MessageInfo:
    """Create a MessageInfo with test defaults."""
    return MessageInfo(
        type=type,
        text=text,
        user_id=user,
        channel_id=channel,
        timestamp=ts,
        thread_timestamp=thread_ts,
    )


def reaction_calls(transport: AsyncMock) -> list[tuple[str, str, str]]:
    """List reaction operations in call order as (op, ts, name)."""
    calls = []
    for name, args, _ in transport.method_calls:
        if name in ("add_reaction", "remove_reaction"):
            op = "add" if name == "add_reaction" else "remove"
            calls.append((op, args[1], args[2]))
    return calls


@pytest.fixture
def transport() -> AsyncMock:
    """Mocked SlackTransport with successful defaults."""
    mock = AsyncMock(spec=SlackTransport)
    mock.post_message.return_value = "999.9"
    mock.list_user_groups.return_value = []
    mock.get_user_profile.return_value = {"display_name": "Alice"}
    mock.upload_file.return_value = "F123"
    return mock


@pytest.fixture
def deploy_command() -> DeployCommand:
    return DeployCommand()


@pytest.fixture
def registry(deploy_command: DeployCommand) -> CommandRegistry:
    """Registry with root commands and a `k8s` group."""
    from chatops.core.commands.builtin import HelpCommand

    return CommandRegistry.build(
        [
            Processor(
                "",
                (
                    EchoCommand(),
                    deploy_command,
                    FailingCommand(),
                    ReportCommand(),
                    FallbackCommand(),
                    HelpCommand("help"),
                ),
            ),
            Processor("k8s", (DeployCommand(),)),
        ],
        default_command="unknown",
        help_command="help",
    )


@pytest.fixture
def dispatcher(registry: CommandRegistry) -> SlackDispatcher:
    """Dispatcher without permission rules."""
    return SlackDispatcher(registry, PermissionEvaluator([]), REACTIONS)


@pytest.fixture
def reset_processors() -> Generator[None, None, None]:
    """Clear registered processors before and after a test."""
    from chatops.core.commands import registry as registry_module

    original = list(registry_module._registered_processors)
    registry_module._registered_processors.clear()

    yield

    registry_module._registered_processors.clear()
    registry_module._registered_processors.extend(original)
