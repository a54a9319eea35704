"""Public profile ORM model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from numizmapp.models.base import Base, CreatedAtMixin, IdMixin


class Profile(Base, IdMixin, CreatedAtMixin):
    """Display data for an identity."""

    __tablename__ = "profiles"

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    handle: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
