"""Delivery of Slack messages to the Bubble backend workflow API."""

import asyncio
import json
import logging

import aiohttp

from slack_bubble_relay.config import Config
from slack_bubble_relay.models import MessageEnvelope
from slack_bubble_relay.slack_sender import ChatError, SlackSender

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Every authentication strategy failed to reach the workflow."""


class BearerHeaderAuth:
    name = "bearer"

    def request_kwargs(self, token: str) -> dict:
        return {"headers": {"Authorization": f"Bearer {token}"}}


class QueryParamAuth:
    name = "query_param"

    def request_kwargs(self, token: str) -> dict:
        return {"params": {"api_token": token}}


# Attempted in order until one succeeds.
DEFAULT_AUTH_STRATEGIES = (BearerHeaderAuth(), QueryParamAuth())


def extract_reply(data) -> str | None:
    """Pull the reply text out of a workflow response body.

    Expects ``{"status": "success", "response": {"response": "<text>"}}``.
    Anything else, including a non-dict body, means "no reply".
    """
    if not isinstance(data, dict) or data.get("status") != "success":
        return None
    response = data.get("response")
    if not isinstance(response, dict):
        return None
    text = response.get("response")
    if not isinstance(text, str) or not text.strip():
        return None
    return text


def _parse_body(body: bytes):
    try:
        return json.loads(body.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        logger.debug("Workflow returned a non-JSON body")
        return None


class WorkflowForwarder:
    """Posts envelopes to the backend and relays any reply back to Slack."""

    def __init__(
        self,
        config: Config,
        session: aiohttp.ClientSession,
        sender: SlackSender,
        strategies=DEFAULT_AUTH_STRATEGIES,
    ) -> None:
        self._config = config
        self._session = session
        self._sender = sender
        self._strategies = tuple(strategies)

    async def post_workflow(self, url: str, payload: dict):
        """POST ``payload`` to ``url``, trying each auth strategy in turn.

        Returns:
            The decoded JSON body, or None if the body was not JSON.

        Raises:
            WorkflowError: every strategy failed.
        """
        last_error: Exception | None = None
        for strategy in self._strategies:
            try:
                async with self._session.post(
                    url,
                    json=payload,
                    **strategy.request_kwargs(self._config.bubble_api_token),
                ) as resp:
                    resp.raise_for_status()
                    body = await resp.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.warning(
                    "Workflow call to %s failed with %s auth: %s", url, strategy.name, exc
                )
                last_error = exc
                continue

            logger.info("Workflow call to %s succeeded with %s auth", url, strategy.name)
            return _parse_body(body)

        raise WorkflowError(f"All auth strategies failed for {url}") from last_error

    async def forward(self, envelope: MessageEnvelope) -> None:
        """Deliver ``envelope`` and relay the reply, if any.

        Never raises: a failed delivery results in a single apology message
        in the originating channel/thread.
        """
        try:
            data = await self.post_workflow(self._config.workflow_url, envelope.to_payload())
        except WorkflowError:
            logger.exception("Could not deliver message from %s to workflow", envelope.sender_id)
            await self._reply(envelope, self._config.apology_message)
            return

        reply = extract_reply(data)
        if reply is None:
            logger.debug("Workflow returned no reply for message from %s", envelope.sender_id)
            return

        await self._reply(envelope, reply)

    async def _reply(self, envelope: MessageEnvelope, text: str) -> None:
        try:
            await self._sender.post_message(envelope.channel_id, text, envelope.thread_ts)
        except ChatError:
            logger.exception("Failed to relay reply to %s", envelope.channel_id)
