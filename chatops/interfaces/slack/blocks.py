# chatops/interfaces/slack/blocks.py
"""Block Kit builders for command replies.

Replies are a list of blocks (an optional rich text quote of the original
invocation, then the message section) plus coloured attachments.
"""

SLACK_MAX_TEXT_BLOCK_LENGTH = 3000
TRIMMED_MARKER = "...trimmed :broken_heart:"


def limit_text(text: str, max_length: int = SLACK_MAX_TEXT_BLOCK_LENGTH) -> str:
    """Truncate text that exceeds the block text limit.

    The tail is replaced with TRIMMED_MARKER so the result stays below
    max_length.

    Examples:
        >>> limit_text("short")
        'short'

        >>> len(limit_text("x" * 5000)) < 3000
        True
    """
    if len(text) <= max_length:
        return text
    return text[: max_length - len(TRIMMED_MARKER) - 1] + TRIMMED_MARKER


def format_duration(seconds: float) -> str:
    """Format an elapsed time rounded to milliseconds.

    Examples:
        >>> format_duration(0.0123)
        '12ms'

        >>> format_duration(1.5)
        '1.5s'

        >>> format_duration(75.25)
        '1m15.25s'
    """
    ms = round(seconds * 1000)
    if ms < 1000:
        return f"{ms}ms"
    minutes, ms = divmod(ms, 60_000)
    secs = f"{ms / 1000:.3f}".rstrip("0").rstrip(".")
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def section_block(text: str) -> dict:
    """Create a mrkdwn section block."""
    return {
        "type": "section",
        "text": {"type": "mrkdwn", "text": limit_text(text)},
    }


def quote_block(user_id: str, text: str, elapsed: float | None = None) -> dict:
    """Create a rich text block quoting the original invocation.

    Args:
        user_id: Invoking user, rendered as a mention.
        text: Invocation text.
        elapsed: Execution time in seconds, shown first when given.

    Returns:
        Rich text block.
    """
    elements: list[dict] = []
    if elapsed is not None:
        elements.append({"type": "text", "text": f"[{format_duration(elapsed)}] "})
    elements.append({"type": "user", "user_id": user_id})
    elements.append({"type": "text", "text": f" {text}"})
    return {
        "type": "rich_text",
        "block_id": "quote",
        "elements": [{"type": "rich_text_quote", "elements": elements}],
    }


def build_reply_blocks(
    message: str,
    user_id: str,
    text: str,
    original: bool,
    elapsed: float | None = None,
    error: bool = False,
) -> list[dict]:
    """Build the blocks of a command reply.

    Args:
        message: Command output.
        user_id: Invoking user.
        text: Original invocation text.
        original: Whether to quote the invocation.
        elapsed: Execution time to show inside the quote.
        error: Error replies carry the message in an attachment instead.

    Returns:
        List of blocks.
    """
    blocks: list[dict] = []
    if original:
        blocks.append(quote_block(user_id, text, None if error else elapsed))
    if not error:
        blocks.append(section_block(message))
    return blocks


def build_error_attachment(message: str, color: str) -> dict:
    """Create the attachment carrying an error message."""
    return {"color": color, "blocks": [section_block(message)]}


def build_text_attachment(title: str, body: str, color: str) -> dict:
    """Create an attachment with an optional title and body section."""
    blocks: list[dict] = []
    if title:
        blocks.append(section_block(title))
    if body:
        blocks.append(section_block(body))
    return {"color": color, "blocks": blocks}


def build_image_attachment(file_id: str, title: str, alt_text: str, color: str) -> dict:
    """Create an attachment showing an uploaded image."""
    block: dict = {
        "type": "image",
        "slack_file": {"id": file_id},
        "alt_text": alt_text or title or "image",
    }
    if title:
        block["title"] = {"type": "plain_text", "text": title}
    return {"color": color, "blocks": [block]}
