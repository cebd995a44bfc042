"""Outbound Slack write operations: posting messages and opening DMs."""

import asyncio
import logging

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """A Slack write call failed.

    ``error`` carries Slack's error string (e.g. ``"channel_not_found"``)
    when the platform reported one.
    """

    def __init__(self, message: str, error: str | None = None) -> None:
        super().__init__(message)
        self.error = error


def _slack_error(exc: SlackApiError) -> str | None:
    if exc.response is None:
        return None
    return exc.response.get("error")


class SlackSender:
    """Thin wrapper over ``chat.postMessage`` and ``conversations.open``.

    Every failure is raised as :class:`ChatError`; whether it is swallowed
    is up to the caller.
    """

    def __init__(self, client: AsyncWebClient) -> None:
        self._client = client

    async def post_message(
        self, channel_id: str, text: str, thread_ts: str | None = None
    ) -> None:
        """Post ``text`` to ``channel_id``, threaded under ``thread_ts`` if given."""
        kwargs = {"channel": channel_id, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts

        try:
            await self._client.chat_postMessage(**kwargs)
        except SlackApiError as exc:
            error = _slack_error(exc)
            raise ChatError(f"Failed to post message: {error}", error=error) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ChatError(f"Failed to post message: {exc}") from exc

        logger.debug("Posted message to %s (thread_ts=%s)", channel_id, thread_ts)

    async def open_direct_message(self, user_id: str) -> str:
        """Open (or look up) the DM conversation with ``user_id``.

        Returns:
            The DM channel ID.

        Raises:
            ChatError: Slack reported not-ok; ``error`` holds its error string.
        """
        try:
            response = await self._client.conversations_open(users=user_id)
        except SlackApiError as exc:
            error = _slack_error(exc)
            raise ChatError(f"Failed to open DM: {error}", error=error) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ChatError(f"Failed to open DM: {exc}") from exc

        if not response.get("ok"):
            error = response.get("error")
            raise ChatError(f"Failed to open DM: {error}", error=error)

        return response["channel"]["id"]

    async def send_direct_message(self, user_id: str, text: str) -> None:
        """Open a DM with ``user_id`` and post ``text`` into it."""
        dm_channel_id = await self.open_direct_message(user_id)
        await self.post_message(dm_channel_id, text)
