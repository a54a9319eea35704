"""Direct message ORM model."""

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from numizmapp.models.base import Base, CreatedAtMixin, IdMixin


class Message(Base, IdMixin, CreatedAtMixin):
    """One message between two profiles."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_recipient_unread", "recipient_id", "is_read"),
        Index("ix_messages_pair_created", "sender_id", "recipient_id", "created_at"),
    )

    sender_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
