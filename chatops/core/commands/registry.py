# chatops/core/commands/registry.py
"""Command registry built once at startup.

Processors register groups of commands at import time via
register_processor(). CommandRegistry.build() turns the registered
processors into a read-only lookup structure shared by every dispatch.

Usage:
    # In mypackage/commands.py
    from chatops.core.commands.registry import register_processor

    register_processor("k8s", [Deploy(), Rollback()])

    # At startup
    load_processor_modules(["mypackage.commands"])
    registry = CommandRegistry.build(get_processors(), "", "help")
"""

import importlib
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from chatops.core.commands.models import Command, Processor
from chatops.core.errors import RegistryError

logger = logging.getLogger(__name__)

# Processors registered via register_processor(), in registration order
_registered_processors: list[Processor] = []


def register_processor(name: str, commands: Iterable[Command]) -> Processor:
    """Register a group of commands.

    Args:
        name: Group name; empty for root-level commands.
        commands: Commands of the group.

    Returns:
        The registered Processor.
    """
    processor = Processor(name=name, commands=tuple(commands))
    _registered_processors.append(processor)
    logger.debug(
        "Registered processor %r with %d command(s)", name, len(processor.commands)
    )
    return processor


def get_processors() -> list[Processor]:
    """Get the registered processors.

    Returns:
        Copy of the registered processors list.
    """
    return list(_registered_processors)


def clear_processors() -> None:
    """Remove all registered processors."""
    _registered_processors.clear()


def load_processor_modules(modules: Iterable[str]) -> None:
    """Import modules so that their register_processor() calls run.

    Args:
        modules: Dotted module paths.

    Raises:
        ImportError: If a module cannot be imported.
    """
    for module in modules:
        importlib.import_module(module)
        logger.info("Loaded processor module: %s", module)


@dataclass(frozen=True)
class CommandEntry:
    """A command together with the group it was registered in."""

    command: Command
    group: str = ""

    @property
    def name(self) -> str:
        return self.command.name

    @property
    def qualified_name(self) -> str:
        """Name used for permission checks: `group/command` or `command`."""
        if not self.group:
            return self.command.name
        return f"{self.group}/{self.command.name}"

    @property
    def interaction_id(self) -> str:
        """Identifier scoping the command's form: `command` or `command-group`."""
        return get_interaction_id(self.command.name, self.group)


def get_interaction_id(command: str, group: str) -> str:
    """Compose a form interaction ID.

    Examples:
        >>> get_interaction_id("deploy", "")
        'deploy'

        >>> get_interaction_id("deploy", "k8s")
        'deploy-k8s'
    """
    if not group:
        return command
    return f"{command}-{group}"


def _command_tokens(command: Command) -> list[str]:
    return [command.name, *command.aliases]


def _add_tokens(
    table: dict[str, CommandEntry], entry: CommandEntry, scope: str
) -> None:
    for token in _command_tokens(entry.command):
        if token in table:
            raise RegistryError(f"Duplicate command {token!r} in {scope}")
        table[token] = entry


@dataclass(frozen=True)
class CommandRegistry:
    """Read-only lookup of commands by token.

    Attributes:
        root: Root-level commands by name and alias.
        groups: Grouped commands by group name, then name and alias.
        interactions: Commands with fields by interaction ID.
        default_command: Fallback for unknown input, not directly routable.
        help_command: Command run when the input is empty.
    """

    root: Mapping[str, CommandEntry]
    groups: Mapping[str, Mapping[str, CommandEntry]]
    interactions: Mapping[str, CommandEntry]
    default_command: CommandEntry | None = None
    help_command: CommandEntry | None = None

    @classmethod
    def build(
        cls,
        processors: Iterable[Processor],
        default_command: str = "",
        help_command: str = "",
    ) -> "CommandRegistry":
        """Build a registry from processors.

        Grouped processors are added first, then root-level ones. The root
        command named default_command becomes the fallback and is not routed
        directly; the one named help_command is routed and also designated
        as help.

        Args:
            processors: Registered processors.
            default_command: Name of the root fallback command.
            help_command: Name of the root help command.

        Returns:
            Immutable CommandRegistry.

        Raises:
            RegistryError: If two commands share a token in the same scope.
        """
        processors = list(processors)
        root: dict[str, CommandEntry] = {}
        groups: dict[str, dict[str, CommandEntry]] = {}
        interactions: dict[str, CommandEntry] = {}
        default_entry: CommandEntry | None = None
        help_entry: CommandEntry | None = None

        def add_interaction(entry: CommandEntry) -> None:
            if not entry.command.fields:
                return
            if entry.interaction_id in interactions:
                raise RegistryError(
                    f"Duplicate interaction ID {entry.interaction_id!r}"
                )
            interactions[entry.interaction_id] = entry

        for processor in processors:
            if not processor.name:
                continue
            table = groups.setdefault(processor.name, {})
            for command in processor.commands:
                entry = CommandEntry(command=command, group=processor.name)
                _add_tokens(table, entry, f"group {processor.name!r}")
                add_interaction(entry)

        for processor in processors:
            if processor.name:
                continue
            for command in processor.commands:
                entry = CommandEntry(command=command)
                if default_command and command.name == default_command:
                    default_entry = entry
                    continue
                if help_command and command.name == help_command:
                    help_entry = entry
                _add_tokens(root, entry, "root")
                add_interaction(entry)

        logger.info(
            "Command registry built: %d root command(s), %d group(s)",
            len({id(e) for e in root.values()}),
            len(groups),
        )
        return cls(
            root=MappingProxyType(root),
            groups=MappingProxyType(
                {name: MappingProxyType(table) for name, table in groups.items()}
            ),
            interactions=MappingProxyType(interactions),
            default_command=default_entry,
            help_command=help_entry,
        )

    def resolve(self, text: str) -> tuple[CommandEntry, str] | None:
        """Find the command addressed by the text.

        `group command ...` selects a grouped command; otherwise the first
        word selects a root command by name or alias.

        Args:
            text: Command text (mention already stripped).

        Returns:
            Tuple of (entry, token the command was invoked by), or None.
        """
        words = text.split()
        if not words:
            return None

        table = self.groups.get(words[0])
        if table is not None and len(words) > 1:
            entry = table.get(words[1])
            if entry is not None:
                return entry, words[1]

        entry = self.root.get(words[0])
        if entry is not None:
            return entry, words[0]
        return None

    def find_interaction(self, interaction_id: str) -> CommandEntry | None:
        """Find the command owning a form interaction ID."""
        return self.interactions.get(interaction_id)

    def entries(self) -> list[CommandEntry]:
        """List routable commands once each, root first, then by group."""
        seen: set[int] = set()
        result: list[CommandEntry] = []
        tables = [self.root, *(self.groups[name] for name in sorted(self.groups))]
        for table in tables:
            for entry in table.values():
                if id(entry) not in seen:
                    seen.add(id(entry))
                    result.append(entry)
        return result
