"""Slack "Add to Slack" OAuth install flow."""

import asyncio
import logging

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from slack_bubble_relay.config import Config
from slack_bubble_relay.forwarder import WorkflowError, WorkflowForwarder

logger = logging.getLogger(__name__)


class OAuthError(Exception):
    """The code exchange or the hand-off to the backend failed."""


class OAuthInstaller:
    """Exchanges an OAuth ``code`` and hands the result to the backend."""

    def __init__(
        self, config: Config, client: AsyncWebClient, forwarder: WorkflowForwarder
    ) -> None:
        self._config = config
        self._client = client
        self._forwarder = forwarder

    async def install(self, code: str) -> dict:
        """Complete an install for ``code``.

        Returns:
            The installation record that was forwarded to the backend.

        Raises:
            OAuthError: Slack rejected the code or the backend call failed.
        """
        try:
            response = await self._client.oauth_v2_access(
                client_id=self._config.slack_client_id,
                client_secret=self._config.slack_client_secret,
                code=code,
                redirect_uri=self._config.slack_redirect_uri,
            )
        except SlackApiError as exc:
            raise OAuthError(f"OAuth exchange failed: {exc.response.get('error')}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise OAuthError(f"OAuth exchange failed: {exc}") from exc

        team = response.get("team") or {}
        authed_user = response.get("authed_user") or {}
        installation = {
            "team_id": team.get("id"),
            "team_name": team.get("name"),
            "user_id": authed_user.get("id"),
            "access_token": response.get("access_token"),
            "bot_user_id": response.get("bot_user_id"),
        }
        logger.info("OAuth install for team %s by %s", installation["team_id"], installation["user_id"])

        try:
            await self._forwarder.post_workflow(self._config.oauth_workflow_url, installation)
        except WorkflowError as exc:
            raise OAuthError("Failed to forward installation to backend") from exc

        return installation
