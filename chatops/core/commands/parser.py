"""Pure function-based parsing of incoming messages and command parameters."""

import logging
import re
from dataclasses import dataclass

from chatops.core.commands.models import ExecuteParams

logger = logging.getLogger(__name__)

SLASH_COMMAND_TYPE = "slash_commands"
APP_MENTION_TYPE = "app_mention"
MESSAGE_TYPE = "message"

_LEADING_MENTION = re.compile(r"\s*<@[^>]+>")


@dataclass(frozen=True)
class MessageInfo:
    """The originating message of a dispatch event.

    Attributes:
        type: Event type (slash_commands, app_mention, message).
        text: Raw message text.
        user_id: Invoking user ID.
        channel_id: Channel ID.
        timestamp: Message timestamp; empty when the event has no message.
        thread_timestamp: Thread timestamp when posted in a thread.
    """

    type: str
    text: str = ""
    user_id: str = ""
    channel_id: str = ""
    timestamp: str = ""
    thread_timestamp: str = ""


def strip_leading_mention(text: str) -> str:
    """Remove a user mention at the start of the text and trim it.

    Mentions and links later in the text are kept.

    Examples:
        >>> strip_leading_mention(" <@U1> echo hi ")
        'echo hi'

        >>> strip_leading_mention("echo ping <@U2>")
        'echo ping <@U2>'
    """
    match = _LEADING_MENTION.match(text)
    if match:
        text = text[match.end():]
    return text.strip()


def get_event_text_command(message: MessageInfo) -> tuple[str, str]:
    """Extract the command text and the command token from a message.

    Slash command text is used as-is. Mention text starts after the first
    closing `>` of the bot mention; other messages strip a leading mention
    when there is one.

    Args:
        message: Incoming message.

    Returns:
        Tuple of (text, command_token). Both are empty strings when the
        message holds no command text.

    Examples:
        >>> get_event_text_command(MessageInfo("app_mention", "<@U1> deploy env=prod"))
        ('deploy env=prod', 'deploy')

        >>> get_event_text_command(MessageInfo("slash_commands", " help "))
        ('help', 'help')

        >>> get_event_text_command(MessageInfo("app_mention", "no mention"))
        ('', '')
    """
    text = message.text or ""
    if message.type == SLASH_COMMAND_TYPE:
        text = text.strip()
    elif message.type == APP_MENTION_TYPE:
        _, sep, rest = text.partition(">")
        text = rest.strip() if sep else ""
    else:
        text = strip_leading_mention(text)

    words = text.split()
    command = words[0] if words else ""
    return text, command


def match_param(text: str, pattern: str) -> dict[str, str]:
    """Match a named-capture pattern against text.

    Args:
        text: Argument text.
        pattern: Regular expression with named groups.

    Returns:
        Named group values (empty string for groups that did not take part
        in the match), or an empty dict when the pattern does not match.
        Unnamed groups are ignored.

    Raises:
        re.error: If the pattern is not a valid regular expression.
    """
    match = re.search(pattern, text)
    if match is None:
        return {}
    return match.groupdict(default="")


def find_params(command: str, patterns: list[str], message: MessageInfo) -> ExecuteParams:
    """Extract command parameters from the message text.

    The argument text is everything after the first occurrence of the
    command token. Patterns are alternative syntaxes: the first one that
    yields a named capture wins and later ones are not evaluated.

    Args:
        command: Command token the message was routed by.
        patterns: Ordered list of named-capture regular expressions.
        message: Incoming message.

    Returns:
        Parameters of the first matching pattern, empty when none matches.

    Example:
        >>> msg = MessageInfo("slash_commands", "deploy env=prod version=1.2")
        >>> find_params("deploy", [r"env=(?P<env>\\w+) version=(?P<version>\\S+)"], msg)
        {'env': 'prod', 'version': '1.2'}
    """
    params: ExecuteParams = {}
    if not patterns or not command:
        return params

    text, _ = get_event_text_command(message)
    _, sep, rest = text.partition(command)
    if not sep:
        return params
    text = rest.strip()

    for pattern in patterns:
        try:
            values = match_param(text, pattern)
        except re.error as e:
            logger.error("Invalid parameter pattern %r for %s: %s", pattern, command, e)
            continue
        if values:
            params.update(values)
            return params

    return params
