"""Slack Events API dispatch: turns raw callbacks into workflow envelopes."""

from __future__ import annotations

import asyncio
import logging

from slack_bubble_relay.forwarder import WorkflowForwarder
from slack_bubble_relay.mentions import parse_mentions
from slack_bubble_relay.models import EventType, InboundEvent, MessageEnvelope
from slack_bubble_relay.participants import ParticipantResolver

logger = logging.getLogger(__name__)

# Message subtypes that still carry a fresh user-authored message.
_ACCEPTED_SUBTYPES = frozenset({"file_share", "thread_broadcast"})


def _event_type(event: dict) -> EventType:
    kind = event.get("type")
    if kind == "app_mention":
        return EventType.APP_MENTION
    if kind == "message" and event.get("channel_type") == "im":
        # Bot posts, our own included, are never relayed.
        if event.get("bot_id") is not None:
            return EventType.OTHER
        subtype = event.get("subtype")
        if subtype is not None and subtype not in _ACCEPTED_SUBTYPES:
            return EventType.OTHER
        return EventType.DIRECT_MESSAGE
    return EventType.OTHER


def parse_event(event: dict) -> InboundEvent | None:
    """Convert a raw Slack ``event`` dict into an :class:`InboundEvent`.

    Returns ``None`` for event kinds the relay does not handle and for
    events missing a channel or user.
    """
    event_type = _event_type(event)
    if event_type is EventType.OTHER:
        logger.debug(
            "Ignoring event type=%s channel_type=%s",
            event.get("type"),
            event.get("channel_type"),
        )
        return None

    channel_id = event.get("channel")
    user_id = event.get("user")
    if not channel_id or not user_id:
        logger.debug("Event missing 'channel' or 'user'; dropping")
        return None

    return InboundEvent(
        type=event_type,
        text=event.get("text") or "",
        channel_id=channel_id,
        user_id=user_id,
        team_id=event.get("team"),
        thread_ts=event.get("thread_ts"),
        bot_id=event.get("bot_id"),
        ts=event.get("ts"),
    )


def _authorized_bot_user_id(body: dict) -> str | None:
    authorizations = body.get("authorizations") or []
    if authorizations and isinstance(authorizations[0], dict):
        return authorizations[0].get("user_id")
    return None


class EventProcessor:
    """Runs the mention and direct-message flows for one event callback."""

    def __init__(
        self,
        resolver: ParticipantResolver,
        forwarder: WorkflowForwarder,
        bot_user_id: str | None = None,
    ) -> None:
        self._resolver = resolver
        self._forwarder = forwarder
        self.bot_user_id = bot_user_id

    async def process(self, body: dict) -> None:
        """Handle one ``event_callback`` body end to end."""
        event = body.get("event")
        if not isinstance(event, dict):
            return

        inbound = parse_event(event)
        if inbound is None:
            return

        bot_user_id = self.bot_user_id or _authorized_bot_user_id(body)
        envelope = await self.build_envelope(inbound, bot_user_id)
        logger.info(
            "Forwarding %s from %s in %s (%d mentions)",
            inbound.type.value,
            inbound.user_id,
            inbound.channel_id,
            len(envelope.mentioned_participants),
        )
        await self._forwarder.forward(envelope)

    async def build_envelope(
        self, inbound: InboundEvent, bot_user_id: str | None
    ) -> MessageEnvelope:
        text, mentions = parse_mentions(inbound.text, bot_user_id)
        if inbound.type is EventType.APP_MENTION and (
            bot_user_id is None or f"<@{bot_user_id}>" not in inbound.text
        ):
            logger.info("No bot mention found in app_mention; forwarding text as-is")

        sender, participants = await asyncio.gather(
            self._resolver.resolve(inbound.user_id),
            self._resolver.resolve_many([m.user_id for m in mentions]),
        )

        return MessageEnvelope(
            message_text=text,
            sender_id=inbound.user_id,
            sender_display_name=sender.display_name,
            channel_id=inbound.channel_id,
            event_type=inbound.type,
            thread_ts=inbound.thread_ts,
            team_id=inbound.team_id,
            ts=inbound.ts,
            mentioned_participants=tuple(participants),
        )
