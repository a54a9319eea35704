"""Wantlist matching for newly catalogued collectibles."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from numizmapp.models.collectible import Collectible
from numizmapp.models.notification import Notification
from numizmapp.models.wantlist_item import WantlistItem


def find_wantlist_matches(db: Session, collectible: Collectible) -> list[WantlistItem]:
    """Return open wantlist items of other users whose name contains the collectible name."""

    search_term = collectible.name.strip()
    if not search_term:
        return []
    stmt = (
        select(WantlistItem)
        .where(
            WantlistItem.user_id != collectible.owner_id,
            WantlistItem.is_found.is_(False),
            WantlistItem.name.ilike(f"%{search_term}%"),
        )
        .order_by(WantlistItem.created_at.asc(), WantlistItem.id.asc())
    )
    return list(db.scalars(stmt).all())


def create_match_notifications(db: Session, collectible: Collectible) -> list[Notification]:
    """Stage one notification per matching wantlist item; the caller commits."""

    created: list[Notification] = []
    for item in find_wantlist_matches(db, collectible):
        notification = Notification(
            recipient_id=item.user_id,
            sender_id=collectible.owner_id,
            collectible_id=collectible.id,
            wantlist_item_name=item.name,
        )
        db.add(notification)
        created.append(notification)
    return created
