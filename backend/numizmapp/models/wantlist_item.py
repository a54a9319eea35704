"""Wantlist item ORM model."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from numizmapp.models.base import Base, CreatedAtMixin, IdMixin


class WantlistItem(Base, IdMixin, CreatedAtMixin):
    """Something a user is looking for."""

    __tablename__ = "wantlist_items"

    user_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_found: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
