"""Seed two demo collectors with a chat history and a wantlist match.

Usage (from repository root):
    python backend/scripts/seed_demo.py

Usage (from backend directory):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sqlalchemy import delete, or_

# Make `numizmapp` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from numizmapp.db.session import SessionLocal, engine
from numizmapp.models.base import Base
from numizmapp.models.collectible import Collectible
from numizmapp.models.message import Message
from numizmapp.models.notification import Notification
from numizmapp.models.profile import Profile
from numizmapp.models.wantlist_item import WantlistItem
from numizmapp.schemas.attachment import AttachedItem
from numizmapp.schemas.collectible import CollectibleCreate
from numizmapp.services.attachments import encode_attachment
from numizmapp.services.store import SqlStore


DEFAULT_SELLER_ID = "demo-seller"
DEFAULT_BUYER_ID = "demo-buyer"


def build_demo_turns(seller_id: str, buyer_id: str) -> list[tuple[str, str, str]]:
    """Return a deterministic short negotiation as (sender, recipient, content)."""

    return [
        (buyer_id, seller_id, "Hi! Is the 1924 silver ruble still available?"),
        (seller_id, buyer_id, "It is, here it is:"),
        (
            seller_id,
            buyer_id,
            encode_attachment(
                AttachedItem(id="demo-ruble-1924", name="Ruble 1924", image_url=None),
                caption="",
            ),
        ),
        (buyer_id, seller_id, "Great condition. Would you trade for a 1913 stamp block?"),
    ]


def reset_demo(db, seller_id: str, buyer_id: str) -> None:
    """Remove existing records for the demo identities."""

    pair = or_(Message.sender_id.in_([seller_id, buyer_id]), Message.recipient_id.in_([seller_id, buyer_id]))
    db.execute(delete(Message).where(pair))
    db.execute(delete(Notification).where(Notification.recipient_id.in_([seller_id, buyer_id])))
    db.execute(delete(WantlistItem).where(WantlistItem.user_id.in_([seller_id, buyer_id])))
    db.execute(delete(Collectible).where(Collectible.owner_id.in_([seller_id, buyer_id])))
    db.execute(delete(Profile).where(Profile.id.in_([seller_id, buyer_id])))
    db.commit()


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Seed demo collectors, messages and a wantlist match.")
    parser.add_argument("--seller-id", default=DEFAULT_SELLER_ID, help=f"Seller identity (default: {DEFAULT_SELLER_ID})")
    parser.add_argument("--buyer-id", default=DEFAULT_BUYER_ID, help=f"Buyer identity (default: {DEFAULT_BUYER_ID})")
    parser.add_argument(
        "--no-reset",
        action="store_true",
        help="Do not delete existing records for the demo identities before seeding.",
    )
    return parser.parse_args()


async def seed(seller_id: str, buyer_id: str) -> None:
    store = SqlStore(SessionLocal)
    base = datetime(2026, 10, 19, 14, 0, 0, tzinfo=timezone.utc)
    for idx, (sender_id, recipient_id, content) in enumerate(build_demo_turns(seller_id, buyer_id)):
        await store.insert_message(sender_id, recipient_id, content, created_at=base + timedelta(minutes=idx))

    collectible = await store.add_collectible(
        seller_id,
        CollectibleCreate(name="Kopek 1915", category="coin", image_url=None),
    )
    notifications = await store.query_notifications(buyer_id, limit=5)
    unread = await store.count_unread_by_sender(buyer_id)
    print(f"Seeded collectible {collectible.id}")
    print(f"Buyer unread counts: {unread}")
    print(f"Buyer notifications: {[n.wantlist_item_name for n in notifications]}")


def main() -> None:
    args = parse_args()
    Base.metadata.create_all(engine)
    with SessionLocal() as db:
        if not args.no_reset:
            reset_demo(db, args.seller_id, args.buyer_id)
        db.merge(Profile(id=args.seller_id, name="Demo Seller", handle="seller"))
        db.merge(Profile(id=args.buyer_id, name="Demo Buyer", handle="buyer"))
        db.add(WantlistItem(user_id=args.buyer_id, name="Kopek 1915 silver", is_found=False))
        db.commit()
    asyncio.run(seed(args.seller_id, args.buyer_id))


if __name__ == "__main__":
    main()
