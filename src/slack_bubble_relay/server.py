"""HTTP surface of the relay: Slack events, backend notifications, health."""

from __future__ import annotations

import asyncio
import logging

import aiohttp
from aiohttp import web
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from slack_bubble_relay.config import Config
from slack_bubble_relay.events import EventProcessor
from slack_bubble_relay.forwarder import WorkflowForwarder
from slack_bubble_relay.models import NotificationRequest
from slack_bubble_relay.oauth import OAuthError, OAuthInstaller
from slack_bubble_relay.participants import ParticipantResolver
from slack_bubble_relay.slack_sender import ChatError, SlackSender

logger = logging.getLogger(__name__)


class RelayServer:
    """aiohttp application wiring the relay's endpoints together.

    Routes:
        POST /slack/events          Slack Events API callbacks
        POST /bubble/notify         backend-initiated Slack messages
        GET  /health                liveness probe
        GET  /slack/oauth_redirect  OAuth install (only when configured)

    Event callbacks are acknowledged immediately and processed in detached
    tasks; the server keeps a reference to each task until it finishes and
    waits for stragglers on shutdown.
    """

    def __init__(self, config: Config, client: AsyncWebClient | None = None) -> None:
        self._config = config
        self._client = client or AsyncWebClient(token=config.slack_bot_token)
        self._sender = SlackSender(self._client)
        self._resolver = ParticipantResolver(self._client)
        self._session: aiohttp.ClientSession | None = None
        self._processor: EventProcessor | None = None
        self._installer: OAuthInstaller | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending_tasks(self) -> int:
        """Number of event callbacks still being processed."""
        return len(self._tasks)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/slack/events", self._handle_events)
        app.router.add_post("/bubble/notify", self._handle_notify)
        app.router.add_get("/health", self._handle_health)
        if self._config.oauth_enabled:
            app.router.add_get("/slack/oauth_redirect", self._handle_oauth_redirect)
        app.cleanup_ctx.append(self._lifespan)
        return app

    async def drain(self) -> None:
        """Wait until every in-flight event task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # -- lifecycle -----------------------------------------------------------

    async def _lifespan(self, app: web.Application):
        self._session = aiohttp.ClientSession()
        forwarder = WorkflowForwarder(self._config, self._session, self._sender)
        bot_user_id = self._config.bot_user_id or await self._fetch_bot_user_id()
        self._processor = EventProcessor(self._resolver, forwarder, bot_user_id)
        self._installer = OAuthInstaller(self._config, self._client, forwarder)
        logger.info("Relay started (bot user ID: %s)", bot_user_id)

        yield

        await self.drain()
        await self._session.close()
        logger.info("Relay stopped")

    async def _fetch_bot_user_id(self) -> str | None:
        try:
            response = await self._client.auth_test()
            return response["user_id"]
        except (SlackApiError, aiohttp.ClientError, asyncio.TimeoutError, KeyError):
            logger.warning(
                "Could not resolve the bot user ID via auth.test; "
                "falling back to per-event authorizations"
            )
            return None

    def _spawn(self, body: dict) -> None:
        task = asyncio.create_task(self._process_detached(body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_detached(self, body: dict) -> None:
        try:
            await self._processor.process(body)
        except Exception:
            logger.exception("Error processing Slack event %s", body.get("event_id"))

    # -- handlers ------------------------------------------------------------

    async def _handle_events(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            logger.warning("Ignoring Slack callback with a non-JSON body")
            return web.Response(status=200)

        if not isinstance(body, dict):
            return web.Response(status=200)

        if body.get("type") == "url_verification":
            logger.info("Answering url_verification challenge")
            return web.json_response({"challenge": body.get("challenge")})

        if "event" in body:
            self._spawn(body)
        return web.Response(status=200)

    async def _handle_notify(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            return web.json_response({"error": "Invalid JSON body"}, status=400)

        if not isinstance(body, dict):
            body = {}
        target_id = body.get("slackUserId")
        message = body.get("message")
        if not target_id or not message or not isinstance(target_id, str):
            return web.json_response({"error": "Missing required parameters"}, status=400)

        thread_ts = body.get("thread_ts")
        if not isinstance(thread_ts, str):
            thread_ts = None

        notification = NotificationRequest(
            target_id=target_id,
            message_text=str(message),
            thread_ts=thread_ts,
        )

        try:
            if notification.is_channel:
                await self._sender.post_message(
                    notification.target_id, notification.message_text, notification.thread_ts
                )
            else:
                await self._sender.send_direct_message(
                    notification.target_id, notification.message_text
                )
        except ChatError:
            logger.exception("Error sending notification to %s", notification.target_id)
            return web.json_response({"error": "Failed to send notification"}, status=500)

        logger.info("Notification delivered to %s", notification.target_id)
        return web.json_response({"success": True})

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _handle_oauth_redirect(self, request: web.Request) -> web.Response:
        code = request.query.get("code")
        if not code:
            return web.json_response({"error": "Missing code parameter"}, status=400)

        try:
            await self._installer.install(code)
        except OAuthError:
            logger.exception("OAuth install failed")
            return web.json_response({"error": "OAuth installation failed"}, status=500)

        raise web.HTTPFound(self._config.oauth_success_url)
