"""Message request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from numizmapp.schemas.attachment import AttachedItem
from numizmapp.schemas.common import ensure_utc


class MessageRead(BaseModel):
    """Serialized message row, as returned by the store and the change feed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    recipient_id: str
    content: str
    is_read: bool = False
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class SendTextRequest(BaseModel):
    """Plain message payload."""

    content: str = Field(min_length=1)


class SendAttachmentRequest(BaseModel):
    """Attachment message payload with an optional caption."""

    item: AttachedItem
    caption: str = ""


class RenderedMessage(BaseModel):
    """View-ready message with the attachment payload decoded."""

    id: str
    sender_id: str
    is_mine: bool
    text: str
    attachment: AttachedItem | None = None
    placeholder: str | None = None
    created_at: datetime
