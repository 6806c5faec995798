"""Tests for message parsing and parameter extraction."""

from conftest import make_message

from chatops.core.commands.parser import (
    MessageInfo,
    find_params,
    get_event_text_command,
    match_param,
    strip_leading_mention,
)

DEPLOY_PATTERN = r"env=(?P<env>\w+) version=(?P<version>\S+)"


class TestGetEventTextCommand:
    """Test suite for command text extraction."""

    def test_mention_strips_bot_mention(self) -> None:
        """Test that text after the mention is returned."""
        text, command = get_event_text_command(make_message("<@UBOT> deploy env=prod"))
        assert text == "deploy env=prod"
        assert command == "deploy"

    def test_mention_without_delimiter_is_empty(self) -> None:
        """Test that a mention event without `>` yields empty strings."""
        text, command = get_event_text_command(make_message("deploy env=prod"))
        assert text == ""
        assert command == ""

    def test_mention_splits_on_first_delimiter_only(self) -> None:
        """Test that later `>` characters stay in the text."""
        text, command = get_event_text_command(make_message("<@UBOT> echo a > b"))
        assert text == "echo a > b"
        assert command == "echo"

    def test_slash_command_uses_full_text(self) -> None:
        """Test that slash command text is only trimmed."""
        message = make_message("  help me  ", type="slash_commands", ts="")
        assert get_event_text_command(message) == ("help me", "help")

    def test_dm_without_mention_keeps_text(self) -> None:
        """Test that direct messages without mention keep their text."""
        message = make_message(" echo hi ", type="message")
        assert get_event_text_command(message) == ("echo hi", "echo")

    def test_dm_with_mention_strips_it(self) -> None:
        """Test that a leading mention in a plain message is removed."""
        message = make_message("<@UBOT> echo hi", type="message")
        assert get_event_text_command(message) == ("echo hi", "echo")

    def test_dm_keeps_link_after_command(self) -> None:
        """Test that a `<...>` link later in a direct message is kept."""
        message = make_message("echo see <https://example.com>", type="message")
        assert get_event_text_command(message) == ("echo see <https://example.com>", "echo")

    def test_dm_keeps_mention_after_command(self) -> None:
        message = make_message("echo ping <@U2>", type="message")
        assert get_event_text_command(message) == ("echo ping <@U2>", "echo")

    def test_dm_strips_only_leading_mention(self) -> None:
        message = make_message("  <@UBOT> echo ping <@U2>", type="message")
        assert get_event_text_command(message) == ("echo ping <@U2>", "echo")

    def test_empty_input(self) -> None:
        """Test that absent text yields empty strings."""
        assert get_event_text_command(MessageInfo(type="app_mention")) == ("", "")
        assert get_event_text_command(MessageInfo(type="slash_commands")) == ("", "")

    def test_mention_only(self) -> None:
        """Test mention with no command text."""
        assert get_event_text_command(make_message("<@UBOT>")) == ("", "")


class TestMatchParam:
    """Test suite for single pattern matching."""

    def test_named_groups(self) -> None:
        assert match_param("env=prod version=1.2", DEPLOY_PATTERN) == {
            "env": "prod",
            "version": "1.2",
        }

    def test_no_match(self) -> None:
        assert match_param("env=prod", DEPLOY_PATTERN) == {}

    def test_unnamed_groups_ignored(self) -> None:
        assert match_param("a 42", r"(\w) (?P<num>\d+)") == {"num": "42"}

    def test_unmatched_optional_group_is_empty(self) -> None:
        result = match_param("run", r"(?P<cmd>\w+)(?: (?P<arg>\w+))?")
        assert result == {"cmd": "run", "arg": ""}


class TestFindParams:
    """Test suite for parameter extraction."""

    def test_partial_input_does_not_match(self) -> None:
        """Test that a pattern requiring both tokens fails on partial input."""
        message = make_message("<@UBOT> deploy env=prod")
        assert find_params("deploy", [DEPLOY_PATTERN], message) == {}

    def test_full_input_matches(self) -> None:
        message = make_message("<@UBOT> deploy env=prod version=1.2.3")
        assert find_params("deploy", [DEPLOY_PATTERN], message) == {
            "env": "prod",
            "version": "1.2.3",
        }

    def test_first_matching_pattern_wins(self) -> None:
        """Test that later patterns are ignored even when they would match."""
        message = make_message("<@UBOT> deploy prod 1.2")
        patterns = [r"(?P<env>\w+) (?P<version>\S+)", r"(?P<target>\w+)"]
        assert find_params("deploy", patterns, message) == {
            "env": "prod",
            "version": "1.2",
        }

    def test_falls_through_to_later_pattern(self) -> None:
        message = make_message("<@UBOT> deploy prod")
        patterns = [DEPLOY_PATTERN, r"(?P<env>\w+)"]
        assert find_params("deploy", patterns, message) == {"env": "prod"}

    def test_pattern_without_named_groups_is_skipped(self) -> None:
        message = make_message("<@UBOT> deploy prod")
        patterns = [r"(\w+)", r"(?P<env>\w+)"]
        assert find_params("deploy", patterns, message) == {"env": "prod"}

    def test_invalid_pattern_is_skipped(self) -> None:
        message = make_message("<@UBOT> deploy prod")
        patterns = [r"(?P<env>", r"(?P<env>\w+)"]
        assert find_params("deploy", patterns, message) == {"env": "prod"}

    def test_no_patterns(self) -> None:
        assert find_params("deploy", [], make_message("<@UBOT> deploy prod")) == {}

    def test_command_not_in_text(self) -> None:
        message = make_message("<@UBOT> release prod")
        assert find_params("deploy", [r"(?P<env>\w+)"], message) == {}

    def test_text_after_alias_token(self) -> None:
        """Test that the invoked token (an alias) delimits the arguments."""
        message = make_message("<@UBOT> say hello world")
        assert find_params("say", [r"(?P<text>.+)"], message) == {"text": "hello world"}

    def test_grouped_command_arguments(self) -> None:
        """Test that group name before the command is not part of arguments."""
        message = make_message("<@UBOT> k8s deploy env=dev version=2")
        assert find_params("deploy", [DEPLOY_PATTERN], message) == {
            "env": "dev",
            "version": "2",
        }

    def test_dm_argument_with_link(self) -> None:
        message = make_message("deploy url=<https://x>", type="message")
        assert find_params("deploy", [r"url=<(?P<url>[^>]+)>"], message) == {"url": "https://x"}

    def test_slash_command(self) -> None:
        message = make_message("echo  spaced  ", type="slash_commands", ts="")
        assert find_params("echo", [r"(?P<text>.+)"], message) == {"text": "spaced"}


def test_strip_leading_mention() -> None:
    assert strip_leading_mention("<@UBOT> help") == "help"
    assert strip_leading_mention("<@UBOT>") == ""
    assert strip_leading_mention("help <@U2>") == "help <@U2>"
    assert strip_leading_mention("<https://x> help") == "<https://x> help"
