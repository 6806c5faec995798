# chatops/core/commands/models.py
"""Command data model.

This module defines the Command base class that processors implement, and
the value objects flowing through a command execution: fields collected by
interactive forms, response configuration, attachments and the actor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Mapping from field/parameter name to value
ExecuteParams = dict[str, str]


class FieldType(str, Enum):
    """Input control types supported by interactive forms."""

    EDIT = "edit"
    MULTI_EDIT = "multiedit"
    URL = "url"
    DATE = "date"
    SELECT = "select"
    MULTI_SELECT = "multiselect"


@dataclass(frozen=True)
class Field:
    """A value a command needs, collected through a form when missing.

    Attributes:
        name: Field name, unique within a command.
        type: Control type used to render the field.
        label: Label shown above the control.
        hint: Optional placeholder text.
        default: Optional default value (comma-separated for multi-select).
        values: Allowed values for select types.
    """

    name: str
    type: FieldType = FieldType.EDIT
    label: str = ""
    hint: str = ""
    default: str = ""
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class Response:
    """Reply configuration of a command.

    Attributes:
        visible: If True, the reply is posted to the channel; otherwise it is
            only shown to the invoking user.
        original: If True, the reply quotes the original invocation.
        duration: If True, the quote is prefixed with the elapsed time.
    """

    visible: bool = False
    original: bool = False
    duration: bool = False


class AttachmentType(str, Enum):
    """Kinds of attachments a command may return."""

    TEXT = "text"
    IMAGE = "image"


@dataclass(frozen=True)
class Attachment:
    """Extra content rendered below a command reply.

    Attributes:
        title: Title shown above the body (mrkdwn for text attachments).
        text: Alternative text for images.
        data: Body text (UTF-8) for text attachments, raw bytes for images.
        type: Attachment kind.
    """

    title: str = ""
    text: str = ""
    data: bytes = b""
    type: AttachmentType = AttachmentType.TEXT


@dataclass(frozen=True)
class ChatUser:
    """The user who invoked a command."""

    id: str
    name: str = ""


class Command(ABC):
    """Base class for chat commands.

    Subclasses override the class attributes to describe themselves and
    implement execute(). A command is shared by all concurrent dispatches,
    so execute() must not keep per-call state on the instance.

    Example:
        >>> class Deploy(Command):
        ...     name = "deploy"
        ...     params = (r"env=(?P<env>\\w+) version=(?P<version>\\S+)",)
        ...     fields = (Field("env", label="Environment"), Field("version", label="Version"))
        ...
        ...     async def execute(self, bot, user, params):
        ...         return f"Deploying {params['version']} to {params['env']}", []
    """

    name: str = ""
    aliases: tuple[str, ...] = ()
    description: str = ""
    params: tuple[str, ...] = ()
    fields: tuple[Field, ...] = ()
    response: Response = Response()

    @abstractmethod
    async def execute(
        self, bot: Any, user: ChatUser, params: ExecuteParams
    ) -> tuple[str, list[Attachment]]:
        """Run the command.

        Args:
            bot: The dispatcher handling the request.
            user: The invoking user.
            params: Resolved parameters.

        Returns:
            Tuple of (message, attachments).

        Raises:
            Exception: Any failure; it is reported to the user as an error.
        """


@dataclass(frozen=True)
class Processor:
    """A named group of commands.

    An empty name registers the commands at root level.
    """

    name: str
    commands: tuple[Command, ...] = field(default_factory=tuple)
