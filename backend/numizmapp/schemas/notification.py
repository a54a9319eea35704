"""Wantlist-match notification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from numizmapp.schemas.common import ensure_utc


class SenderSummary(BaseModel):
    """Profile fields shown next to a notification."""

    model_config = ConfigDict(from_attributes=True)

    name: str | None = None
    handle: str | None = None
    avatar_url: str | None = None


class CollectibleSummary(BaseModel):
    """Collectible fields shown next to a notification."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    image_url: str | None = None


class NotificationRead(BaseModel):
    """Serialized notification row with display joins."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    recipient_id: str
    sender_id: str
    collectible_id: str
    wantlist_item_name: str
    created_at: datetime
    sender: SenderSummary | None = None
    collectible: CollectibleSummary | None = None
    acknowledged: bool = False

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)
