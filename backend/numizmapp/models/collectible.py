"""Collectible ORM model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from numizmapp.models.base import Base, CreatedAtMixin, IdMixin


class Collectible(Base, IdMixin, CreatedAtMixin):
    """A catalogued coin, stamp, or banknote."""

    __tablename__ = "collectibles"

    owner_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(32), default="coin", nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
