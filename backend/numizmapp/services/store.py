"""Store operations consumed by the sync core, and their SQLAlchemy implementation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Protocol

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from numizmapp.models.collectible import Collectible
from numizmapp.models.message import Message
from numizmapp.models.notification import Notification
from numizmapp.models.profile import Profile
from numizmapp.realtime.change_feed import ChangeFeed
from numizmapp.realtime.types import ChangeEvent, ChangeOp
from numizmapp.schemas.collectible import CollectibleCreate, CollectibleRead
from numizmapp.schemas.message import MessageRead
from numizmapp.schemas.notification import CollectibleSummary, NotificationRead, SenderSummary
from numizmapp.services.wantlist_matching import create_match_notifications

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "messages"
NOTIFICATIONS_TABLE = "notifications"


class StoreError(RuntimeError):
    """Raised when a store round trip fails."""


class MessageStore(Protocol):
    """Remote store operations the tracker and synchronizer rely on."""

    async def count_unread_by_sender(self, recipient_id: str) -> dict[str, int]:
        """Group-count unread messages addressed to ``recipient_id`` by sender."""

    async def insert_message(self, sender_id: str, recipient_id: str, content: str) -> MessageRead:
        """Persist one message and return the stored row."""

    async def update_messages_read_status(
        self,
        sender_id: str,
        recipient_id: str,
        *,
        is_read: bool = True,
    ) -> int:
        """Flag every unread message sender -> recipient; return affected rows."""

    async def delete_messages(self, peer_a: str, peer_b: str) -> bool:
        """Delete every message exchanged between the two identities."""

    async def query_messages(self, peer_a: str, peer_b: str) -> list[MessageRead]:
        """Return the pair's messages ordered by creation time ascending."""

    async def query_notifications(self, recipient_id: str, limit: int) -> list[NotificationRead]:
        """Return the most recent notifications for ``recipient_id``, newest first."""


class SqlStore:
    """``MessageStore`` over SQLAlchemy sessions that echoes commits to a change feed.

    Session work runs in a worker thread so the event loop keeps serving
    deliveries while a round trip is in flight. Change events are published
    back on the loop once the worker returns.
    """

    def __init__(self, session_factory: sessionmaker, *, feed: ChangeFeed | None = None) -> None:
        self._session_factory = session_factory
        self._feed = feed

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("store.%s_failed", operation)
            raise StoreError(f"{operation} failed") from exc
        finally:
            db.close()

    def _publish(self, table: str, op: ChangeOp, rows: list[dict[str, object]]) -> None:
        if self._feed is None:
            return
        for row in rows:
            self._feed.publish(ChangeEvent(table=table, op=op, row=row))

    async def count_unread_by_sender(self, recipient_id: str) -> dict[str, int]:
        return await asyncio.to_thread(self._count_unread_by_sender, recipient_id)

    async def insert_message(
        self,
        sender_id: str,
        recipient_id: str,
        content: str,
        *,
        created_at: datetime | None = None,
    ) -> MessageRead:
        stored = await asyncio.to_thread(self._insert_message, sender_id, recipient_id, content, created_at)
        self._publish(MESSAGES_TABLE, "INSERT", [stored.model_dump(mode="json")])
        return stored

    async def update_messages_read_status(
        self,
        sender_id: str,
        recipient_id: str,
        *,
        is_read: bool = True,
    ) -> int:
        message_ids = await asyncio.to_thread(self._update_read_status, sender_id, recipient_id, is_read)
        self._publish(
            MESSAGES_TABLE,
            "UPDATE",
            [
                {"id": message_id, "sender_id": sender_id, "recipient_id": recipient_id, "is_read": is_read}
                for message_id in message_ids
            ],
        )
        return len(message_ids)

    async def delete_messages(self, peer_a: str, peer_b: str) -> bool:
        rows = await asyncio.to_thread(self._delete_messages, peer_a, peer_b)
        self._publish(MESSAGES_TABLE, "DELETE", rows)
        return True

    async def query_messages(self, peer_a: str, peer_b: str) -> list[MessageRead]:
        return await asyncio.to_thread(self._query_messages, peer_a, peer_b)

    async def query_notifications(self, recipient_id: str, limit: int) -> list[NotificationRead]:
        return await asyncio.to_thread(self._query_notifications, recipient_id, limit)

    async def add_collectible(self, owner_id: str, payload: CollectibleCreate) -> CollectibleRead:
        """Catalogue a collectible and notify owners of matching wantlist items."""

        stored, matches = await asyncio.to_thread(self._add_collectible, owner_id, payload)
        if matches:
            logger.info(
                "store.wantlist_matches collectible_id=%s matches=%d",
                stored.id,
                len(matches),
            )
        self._publish(NOTIFICATIONS_TABLE, "INSERT", [match.model_dump(mode="json") for match in matches])
        return stored

    def _count_unread_by_sender(self, recipient_id: str) -> dict[str, int]:
        with self._session("count_unread_by_sender") as db:
            stmt = (
                select(Message.sender_id, func.count(Message.id))
                .where(Message.recipient_id == recipient_id, Message.is_read.is_(False))
                .group_by(Message.sender_id)
            )
            return {sender_id: int(count) for sender_id, count in db.execute(stmt).all()}

    def _insert_message(
        self,
        sender_id: str,
        recipient_id: str,
        content: str,
        created_at: datetime | None,
    ) -> MessageRead:
        with self._session("insert_message") as db:
            message = Message(sender_id=sender_id, recipient_id=recipient_id, content=content, is_read=False)
            if created_at is not None:
                message.created_at = created_at
            db.add(message)
            db.commit()
            db.refresh(message)
            return MessageRead.model_validate(message)

    def _update_read_status(self, sender_id: str, recipient_id: str, is_read: bool) -> list[str]:
        with self._session("update_messages_read_status") as db:
            message_ids = list(
                db.scalars(
                    select(Message.id).where(
                        Message.sender_id == sender_id,
                        Message.recipient_id == recipient_id,
                        Message.is_read != is_read,
                    )
                ).all()
            )
            if message_ids:
                db.execute(update(Message).where(Message.id.in_(message_ids)).values(is_read=is_read))
                db.commit()
            return message_ids

    def _delete_messages(self, peer_a: str, peer_b: str) -> list[dict[str, object]]:
        with self._session("delete_messages") as db:
            pair = _between(peer_a, peer_b)
            rows = db.execute(select(Message.id, Message.sender_id, Message.recipient_id).where(pair)).all()
            db.execute(delete(Message).where(pair))
            db.commit()
            return [{"id": row.id, "sender_id": row.sender_id, "recipient_id": row.recipient_id} for row in rows]

    def _query_messages(self, peer_a: str, peer_b: str) -> list[MessageRead]:
        with self._session("query_messages") as db:
            stmt = select(Message).where(_between(peer_a, peer_b)).order_by(Message.created_at.asc(), Message.id.asc())
            return [MessageRead.model_validate(message) for message in db.scalars(stmt).all()]

    def _query_notifications(self, recipient_id: str, limit: int) -> list[NotificationRead]:
        with self._session("query_notifications") as db:
            stmt = (
                select(Notification, Profile, Collectible)
                .outerjoin(Profile, Profile.id == Notification.sender_id)
                .outerjoin(Collectible, Collectible.id == Notification.collectible_id)
                .where(Notification.recipient_id == recipient_id)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
            )
            return [
                _notification_read(notification, profile, collectible)
                for notification, profile, collectible in db.execute(stmt).all()
            ]

    def _add_collectible(
        self,
        owner_id: str,
        payload: CollectibleCreate,
    ) -> tuple[CollectibleRead, list[NotificationRead]]:
        with self._session("add_collectible") as db:
            collectible = Collectible(
                owner_id=owner_id,
                name=payload.name.strip(),
                category=payload.category,
                image_url=payload.image_url,
            )
            db.add(collectible)
            db.flush()
            notifications = create_match_notifications(db, collectible)
            db.commit()
            db.refresh(collectible)
            sender = db.get(Profile, owner_id)
            stored = CollectibleRead.model_validate(collectible)
            matches = []
            for notification in notifications:
                db.refresh(notification)
                matches.append(_notification_read(notification, sender, collectible))
            return stored, matches


def _between(peer_a: str, peer_b: str):
    return or_(
        and_(Message.sender_id == peer_a, Message.recipient_id == peer_b),
        and_(Message.sender_id == peer_b, Message.recipient_id == peer_a),
    )


def _notification_read(
    notification: Notification,
    profile: Profile | None,
    collectible: Collectible | None,
) -> NotificationRead:
    return NotificationRead(
        id=notification.id,
        recipient_id=notification.recipient_id,
        sender_id=notification.sender_id,
        collectible_id=notification.collectible_id,
        wantlist_item_name=notification.wantlist_item_name,
        created_at=notification.created_at,
        sender=SenderSummary.model_validate(profile) if profile is not None else None,
        collectible=CollectibleSummary.model_validate(collectible) if collectible is not None else None,
    )
