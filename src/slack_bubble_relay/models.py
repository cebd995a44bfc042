"""Shared data structures used across all components."""

from dataclasses import dataclass, field
from enum import Enum

CHANNEL_PREFIXES = ("C", "G")


class EventType(Enum):
    APP_MENTION = "app_mention"
    DIRECT_MESSAGE = "direct_message"
    URL_VERIFICATION = "url_verification"
    OTHER = "other"


@dataclass
class InboundEvent:
    type: EventType
    text: str
    channel_id: str
    user_id: str
    team_id: str | None = None
    thread_ts: str | None = None
    bot_id: str | None = None
    ts: str | None = None


@dataclass
class MentionToken:
    user_id: str
    raw: str  # the literal "<@U123>" match
    position: int  # offset of the match in the source text


@dataclass
class ResolvedParticipant:
    id: str
    display_name: str
    username: str | None = None
    profile_display_name: str | None = None  # Slack profile "display name"

    @classmethod
    def fallback(cls, user_id: str) -> "ResolvedParticipant":
        return cls(id=user_id, display_name=user_id)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "name": self.display_name,
            "username": self.username,
            "display_name": self.profile_display_name,
        }


@dataclass(frozen=True)
class MessageEnvelope:
    """The normalized message forwarded to the backend workflow."""

    message_text: str
    sender_id: str
    sender_display_name: str
    channel_id: str
    event_type: EventType
    thread_ts: str | None = None
    team_id: str | None = None
    ts: str | None = None
    mentioned_participants: tuple[ResolvedParticipant, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict:
        """Serialize into the JSON body posted to the workflow endpoint."""
        return {
            "message": self.message_text,
            "user_id": self.sender_id,
            "user_name": self.sender_display_name,
            "channel_id": self.channel_id,
            "thread_ts": self.thread_ts,
            "team_id": self.team_id,
            "ts": self.ts,
            "event_type": self.event_type.value,
            "mentioned_users": [p.to_payload() for p in self.mentioned_participants],
        }


@dataclass
class NotificationRequest:
    target_id: str  # channel ID (C.../G...) or user ID
    message_text: str
    thread_ts: str | None = None

    @property
    def is_channel(self) -> bool:
        return self.target_id.startswith(CHANNEL_PREFIXES)
