"""View-layer snapshots of the sync core state."""

from pydantic import BaseModel, Field

from numizmapp.schemas.message import RenderedMessage
from numizmapp.schemas.notification import NotificationRead


class SessionRequest(BaseModel):
    """Sign-in payload."""

    user_id: str = Field(min_length=1)


class SessionRead(BaseModel):
    """Current identity, if any."""

    user_id: str | None = None


class InboxSnapshot(BaseModel):
    """Unread counters and the notification log."""

    unread_counts_by_peer: dict[str, int] = Field(default_factory=dict)
    total_unread: int = 0
    total_unread_badge: str | None = None
    compact_unread_badge: str | None = None
    notifications: list[NotificationRead] = Field(default_factory=list)
    unread_notification_total: int = 0
    notification_badge: str | None = None


class SelectPeerRequest(BaseModel):
    """Open a conversation with one peer."""

    peer_id: str = Field(min_length=1)


class ConversationSnapshot(BaseModel):
    """Open conversation state."""

    peer_id: str | None = None
    status: str
    error: str | None = None
    draft: str = ""
    messages: list[RenderedMessage] = Field(default_factory=list)


class ActionOutcome(BaseModel):
    """Serialized result of a sync core command."""

    status: str
    detail: str | None = None
