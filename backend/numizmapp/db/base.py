"""SQLAlchemy metadata registry import for Alembic."""

from numizmapp.models import Collectible, Message, Notification, Profile, WantlistItem
from numizmapp.models.base import Base

__all__ = ["Base", "Collectible", "Message", "Notification", "Profile", "WantlistItem"]
