"""Extraction of ``<@USERID>`` mention tokens from Slack message text."""

import re

from slack_bubble_relay.models import MentionToken

MENTION_PATTERN = re.compile(r"<@([A-Z0-9]+)>")


def find_mentions(text: str) -> list[MentionToken]:
    """Return every mention token in ``text``, left to right."""
    return [
        MentionToken(user_id=m.group(1), raw=m.group(0), position=m.start())
        for m in MENTION_PATTERN.finditer(text or "")
    ]


def parse_mentions(
    text: str, bot_user_id: str | None
) -> tuple[str, list[MentionToken]]:
    """Strip the bot's own mention and collect everyone else's.

    Only the first occurrence of the bot token is removed; mentions of other
    users are left in the text and also returned, in order of appearance.

    Args:
        text: Raw Slack message text.
        bot_user_id: The bot's Slack user ID, or None if unknown.

    Returns:
        ``(stripped_text, mentions)`` where ``mentions`` excludes the bot.
    """
    text = text or ""
    tokens = find_mentions(text)
    mentions = [t for t in tokens if t.user_id != bot_user_id]

    bot_token = next((t for t in tokens if t.user_id == bot_user_id), None)
    if bot_token is None:
        return text.strip(), mentions

    before = text[: bot_token.position]
    after = text[bot_token.position + len(bot_token.raw) :]
    # Drop the doubled space a mid-sentence mention leaves behind.
    if before.endswith(" ") and after.startswith(" "):
        after = after[1:]
    return (before + after).strip(), mentions
