# chatops/core/commands/builtin.py
"""Commands shipped with the bot."""

from typing import Any

from chatops.core.commands.models import Attachment, ChatUser, Command, ExecuteParams, Response


class HelpCommand(Command):
    """Lists the commands available in the registry.

    Expects `bot.registry` to be a CommandRegistry.
    """

    description = "Show available commands"
    response = Response(visible=False)

    def __init__(self, name: str = "help") -> None:
        self.name = name

    async def execute(
        self, bot: Any, user: ChatUser, params: ExecuteParams
    ) -> tuple[str, list[Attachment]]:
        lines: list[str] = []
        for entry in bot.registry.entries():
            usage = f"{entry.group} {entry.name}" if entry.group else entry.name
            line = f"• `{usage}`"
            if entry.command.aliases:
                aliases = ", ".join(f"`{a}`" for a in entry.command.aliases)
                line += f" ({aliases})"
            if entry.command.description:
                line += f" - {entry.command.description}"
            lines.append(line)

        if not lines:
            return "No commands available.", []
        return "*Available commands*\n" + "\n".join(lines), []
