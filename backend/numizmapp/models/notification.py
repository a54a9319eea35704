"""Wantlist-match notification ORM model."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from numizmapp.models.base import Base, CreatedAtMixin, IdMixin


class Notification(Base, IdMixin, CreatedAtMixin):
    """Raised when someone adds a collectible matching a wantlist item."""

    __tablename__ = "notifications"

    recipient_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    sender_id: Mapped[str] = mapped_column(String(36), nullable=False)
    collectible_id: Mapped[str] = mapped_column(
        ForeignKey("collectibles.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    wantlist_item_name: Mapped[str] = mapped_column(String(255), nullable=False)
