"""Resolution of Slack user IDs to display metadata."""

import asyncio
import logging

from slack_sdk.web.async_client import AsyncWebClient

from slack_bubble_relay.models import ResolvedParticipant

logger = logging.getLogger(__name__)


class ParticipantResolver:
    """Looks up Slack users via ``users.info``.

    Lookups never fail from the caller's point of view: any error yields a
    record whose display name is the raw user ID.
    """

    def __init__(self, client: AsyncWebClient) -> None:
        self._client = client

    async def resolve(self, user_id: str) -> ResolvedParticipant:
        """Return display metadata for ``user_id``, falling back to the ID."""
        try:
            info = await self._client.users_info(user=user_id)
            user = info["user"]
            profile = user.get("profile") or {}
            real_name = user.get("real_name") or profile.get("real_name")
            username = user.get("name")
            return ResolvedParticipant(
                id=user_id,
                display_name=real_name or username or user_id,
                username=username,
                profile_display_name=profile.get("display_name") or None,
            )
        except Exception:
            logger.warning("Failed to resolve user %s; using ID", user_id)
            return ResolvedParticipant.fallback(user_id)

    async def resolve_many(self, user_ids: list[str]) -> list[ResolvedParticipant]:
        """Resolve several users concurrently, preserving input order."""
        if not user_ids:
            return []
        return list(await asyncio.gather(*(self.resolve(uid) for uid in user_ids)))
