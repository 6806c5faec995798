"""Command module for command definitions, parsing and lookup.

This module provides:
- Command: Base class for chat commands
- Field, FieldType, Response, Attachment, ChatUser: Command value objects
- MessageInfo: Originating message of a dispatch event
- get_event_text_command, find_params: Message and parameter parsing
- CommandRegistry: Read-only command lookup built at startup
- register_processor, get_processors, load_processor_modules: Processor registration
- HelpCommand: Built-in command listing
"""

from chatops.core.commands.builtin import HelpCommand
from chatops.core.commands.models import (
    Attachment,
    AttachmentType,
    ChatUser,
    Command,
    ExecuteParams,
    Field,
    FieldType,
    Processor,
    Response,
)
from chatops.core.commands.parser import (
    MessageInfo,
    find_params,
    get_event_text_command,
    match_param,
)
from chatops.core.commands.registry import (
    CommandEntry,
    CommandRegistry,
    clear_processors,
    get_interaction_id,
    get_processors,
    load_processor_modules,
    register_processor,
)

__all__ = [
    "Attachment",
    "AttachmentType",
    "ChatUser",
    "Command",
    "CommandEntry",
    "CommandRegistry",
    "ExecuteParams",
    "Field",
    "FieldType",
    "HelpCommand",
    "MessageInfo",
    "Processor",
    "Response",
    "clear_processors",
    "find_params",
    "get_event_text_command",
    "get_interaction_id",
    "get_processors",
    "load_processor_modules",
    "match_param",
    "register_processor",
]
