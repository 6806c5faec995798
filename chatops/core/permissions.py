# chatops/core/permissions.py
"""Group-based access control for commands.

Rules are configured as a single string of `group_regex=command_regex`
pairs separated by commas, for example::

    .*=^(help|news)$,oncall=^(escalate)$

Rules are evaluated in declaration order. A rule applies when its command
pattern matches the command; it grants access when the invoking user is a
member of a group whose name matches the group pattern. The first granting
rule wins; if no rule grants access, access is denied.

Group membership is looked up on every evaluation. A failed lookup allows
the call while an exhausted rule list denies it.
"""

import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from chatops.core.errors import PermissionConfigError, TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionRule:
    """A single (group pattern, command pattern) rule."""

    group: str
    command: str

    def compile(self) -> tuple[re.Pattern, re.Pattern]:
        """Compile both patterns.

        Returns:
            Tuple of (group_regex, command_regex).

        Raises:
            PermissionConfigError: If either pattern is not a valid regex.
        """
        try:
            return re.compile(self.group), re.compile(self.command)
        except re.error as e:
            raise PermissionConfigError(
                f"Invalid permission rule {self.group}={self.command}: {e}"
            ) from e


@dataclass(frozen=True)
class UserGroup:
    """A user group with its member IDs."""

    name: str
    users: frozenset[str] = field(default_factory=frozenset)


GroupFetcher = Callable[[], Awaitable[Sequence[UserGroup]]]


def parse_permissions(config: str) -> list[PermissionRule]:
    """Parse a permission rule set string.

    Args:
        config: Comma-separated `group_regex=command_regex` pairs.

    Returns:
        Rules in declaration order. Items without `=` are skipped.

    Examples:
        >>> parse_permissions(".*=^(help)$, oncall=^(escalate)$")
        [PermissionRule(group='.*', command='^(help)$'), PermissionRule(group='oncall', command='^(escalate)$')]

        >>> parse_permissions("")
        []
    """
    rules: list[PermissionRule] = []
    for item in (config or "").split(","):
        item = item.strip()
        if not item:
            continue
        group, sep, command = item.partition("=")
        if not sep:
            logger.warning("Ignoring permission rule without '=': %s", item)
            continue
        rules.append(PermissionRule(group=group.strip(), command=command.strip()))
    return rules


def find_group(
    groups: Sequence[UserGroup], user_id: str, pattern: re.Pattern
) -> UserGroup | None:
    """Find a group matching the pattern that contains the user.

    Args:
        groups: Groups with their members.
        user_id: User to look for.
        pattern: Compiled group name pattern.

    Returns:
        The first matching group, or None.
    """
    for group in groups:
        if pattern.search(group.name) and user_id in group.users:
            return group
    return None


class PermissionEvaluator:
    """Decides whether a user may run a command.

    Attributes:
        rules: Ordered permission rules.
    """

    def __init__(self, rules: Sequence[PermissionRule]) -> None:
        self.rules = tuple(rules)

    @classmethod
    def from_config(cls, config: str) -> "PermissionEvaluator":
        """Create an evaluator from a rule set string."""
        return cls(parse_permissions(config))

    async def deny_access(
        self, user_id: str, command: str, fetch_groups: GroupFetcher
    ) -> bool:
        """Check whether the user must be denied the command.

        Args:
            user_id: Invoking user ID.
            command: Qualified command name (`group/command` or `command`).
            fetch_groups: Coroutine function returning the current groups.

        Returns:
            True if access is denied, False if it is allowed.
        """
        if not self.rules:
            return False

        try:
            compiled = [rule.compile() for rule in self.rules]
        except PermissionConfigError as e:
            logger.error("Permission config error: %s", e)
            return True

        groups: Sequence[UserGroup] | None = None
        for group_re, command_re in compiled:
            if not command_re.search(command):
                continue

            if groups is None:
                try:
                    groups = await fetch_groups()
                except TransportError as e:
                    logger.error("Getting user groups failed: %s", e)
                    return False

            if find_group(groups, user_id, group_re) is not None:
                return False

        return True
