"""ORM models package exports."""

from numizmapp.models.collectible import Collectible
from numizmapp.models.message import Message
from numizmapp.models.notification import Notification
from numizmapp.models.profile import Profile
from numizmapp.models.wantlist_item import WantlistItem

__all__ = [
    "Collectible",
    "Message",
    "Notification",
    "Profile",
    "WantlistItem",
]
