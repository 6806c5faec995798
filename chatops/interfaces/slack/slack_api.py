# chatops/interfaces/slack/slack_api.py
"""Slack API transport used by the dispatcher.

Wraps AsyncWebClient calls with timeout retries and turns client failures
into TransportError so callers handle one exception type.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import aiohttp
from slack_sdk.errors import SlackClientError
from slack_sdk.web.async_client import AsyncWebClient
from slack_sdk.webhook.async_client import AsyncWebhookClient

from chatops.core.errors import TransportError
from chatops.core.permissions import UserGroup

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAYS = [1, 2, 4]


async def _slack_api_with_retry(coro_func: Callable, *args, **kwargs) -> Any:
    """Execute Slack API call with retry on timeout."""
    last_error: BaseException = TimeoutError("Max retries exceeded")
    for attempt in range(MAX_RETRIES):
        try:
            return await coro_func(*args, **kwargs)
        except (TimeoutError, asyncio.TimeoutError) as e:
            last_error = e
            if attempt < MAX_RETRIES - 1:
                await asyncio.sleep(RETRY_DELAYS[attempt])
    raise last_error


class SlackTransport:
    """Chat platform operations needed by the dispatch pipeline.

    One transport is created per incoming event from the client the
    listener was called with.

    Attributes:
        client: Slack AsyncWebClient.
        public_channel: Channel where image attachments are uploaded.
    """

    def __init__(self, client: AsyncWebClient, public_channel: str = "") -> None:
        self.client = client
        self.public_channel = public_channel

    async def _call(self, method: str, coro_func: Callable, **kwargs) -> Any:
        try:
            return await _slack_api_with_retry(coro_func, **kwargs)
        except (SlackClientError, aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(f"Slack {method} failed: {e}", method) from e

    async def post_message(
        self,
        channel: str,
        *,
        text: str = "",
        blocks: list[dict] | None = None,
        attachments: list[dict] | None = None,
        thread_ts: str = "",
        ephemeral_user: str = "",
    ) -> str:
        """Post a message, privately when ephemeral_user is set.

        Args:
            channel: Channel ID.
            text: Fallback text for notifications.
            blocks: Layout blocks.
            attachments: Secondary attachments.
            thread_ts: Thread to reply in.
            ephemeral_user: User who alone sees the message.

        Returns:
            Timestamp of the posted message.

        Raises:
            TransportError: If the API call fails.
        """
        kwargs: dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            kwargs["blocks"] = blocks
        if attachments:
            kwargs["attachments"] = attachments
        if thread_ts:
            kwargs["thread_ts"] = thread_ts

        if ephemeral_user:
            response = await self._call(
                "chat.postEphemeral",
                self.client.chat_postEphemeral,
                user=ephemeral_user,
                **kwargs,
            )
            return response.get("message_ts", "")

        response = await self._call(
            "chat.postMessage", self.client.chat_postMessage, **kwargs
        )
        return response.get("ts", "")

    async def add_reaction(self, channel: str, timestamp: str, name: str) -> None:
        """Add an emoji reaction to a message."""
        await self._call(
            "reactions.add",
            self.client.reactions_add,
            channel=channel,
            timestamp=timestamp,
            name=name,
        )

    async def remove_reaction(self, channel: str, timestamp: str, name: str) -> None:
        """Remove an emoji reaction from a message."""
        await self._call(
            "reactions.remove",
            self.client.reactions_remove,
            channel=channel,
            timestamp=timestamp,
            name=name,
        )

    async def list_user_groups(self) -> list[UserGroup]:
        """Fetch all user groups with their members."""
        response = await self._call(
            "usergroups.list",
            self.client.usergroups_list,
            include_users=True,
            include_count=True,
        )
        return [
            UserGroup(name=g.get("name", ""), users=frozenset(g.get("users") or []))
            for g in response.get("usergroups") or []
        ]

    async def get_user_profile(self, user_id: str) -> dict[str, Any]:
        """Fetch a user's profile."""
        response = await self._call(
            "users.profile.get", self.client.users_profile_get, user=user_id
        )
        return response.get("profile") or {}

    async def hide_message(self, response_url: str) -> None:
        """Delete the message an interaction was triggered from."""
        webhook = AsyncWebhookClient(response_url)
        response = await self._call(
            "response_url", webhook.send, delete_original=True
        )
        if response.status_code >= 400:
            raise TransportError(
                f"Slack response_url failed: {response.status_code} {response.body}",
                "response_url",
            )

    async def upload_file(self, data: bytes, filename: str = "") -> str:
        """Upload a file and return its ID.

        The file is shared to public_channel when one is configured.
        """
        if not filename:
            filename = datetime.now().strftime("chatops-%Y%m%dT%H%M%S")
        kwargs: dict[str, Any] = {"content": data, "filename": filename}
        if self.public_channel:
            kwargs["channel"] = self.public_channel
        response = await self._call(
            "files.uploadV2", self.client.files_upload_v2, **kwargs
        )
        return response["file"]["id"]
