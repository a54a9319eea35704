"""Session-wide unread counters and wantlist-match notification log."""

from __future__ import annotations

import logging
from functools import partial

from pydantic import ValidationError

from numizmapp.realtime.source_interface import ChangeEventSource
from numizmapp.realtime.types import ChangeCallback, ChangeEvent, SubscriptionError, SubscriptionPredicate
from numizmapp.schemas.notification import NotificationRead
from numizmapp.services.results import ActionResult
from numizmapp.services.store import MESSAGES_TABLE, NOTIFICATIONS_TABLE, MessageStore, StoreError
from numizmapp.services.subscriptions import ScopedSubscription

logger = logging.getLogger(__name__)


class InboxTracker:
    """Keeps unread counts per peer and the notification log live for one session.

    Counts come from one bulk group-count at session start and then move only
    by +1 per incoming message event or by a reset to 0 on ``mark_read``.
    Every async step checks a generation token so results that land after
    ``stop`` (or a restart for another identity) are dropped.

    The notification limit bounds the initial fetch only; a record delivered
    live is kept until the session ends.
    """

    def __init__(
        self,
        store: MessageStore,
        source: ChangeEventSource,
        *,
        notification_limit: int = 20,
    ) -> None:
        self._store = store
        self._notification_limit = max(notification_limit, 1)
        self._message_subscription = ScopedSubscription(source, "inbox.messages")
        self._notification_subscription = ScopedSubscription(source, "inbox.notifications")
        self._user_id: str | None = None
        self._generation = 0
        self._counts: dict[str, int] = {}
        self._notifications: list[NotificationRead] = []

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def unread_counts_by_peer(self) -> dict[str, int]:
        return dict(self._counts)

    @property
    def total_unread(self) -> int:
        return sum(self._counts.values())

    @property
    def notifications(self) -> list[NotificationRead]:
        return list(self._notifications)

    @property
    def unread_notification_total(self) -> int:
        return sum(1 for notification in self._notifications if not notification.acknowledged)

    async def on_sign_in(self, user_id: str) -> None:
        await self.start(user_id)

    async def on_sign_out(self, user_id: str) -> None:
        await self.stop()

    async def start(self, user_id: str) -> None:
        """Load initial state for ``user_id`` and open both live subscriptions."""

        await self.stop()
        generation = self._generation
        self._user_id = user_id

        counts = await self._load_unread_counts(user_id)
        if generation != self._generation:
            return
        self._counts = counts
        await self._open(
            self._message_subscription,
            SubscriptionPredicate.for_recipient(MESSAGES_TABLE, user_id),
            partial(self._handle_message_insert, generation),
            generation,
        )
        if generation != self._generation:
            return

        notifications = await self._load_notifications(user_id)
        if generation != self._generation:
            return
        self._notifications = notifications
        await self._open(
            self._notification_subscription,
            SubscriptionPredicate.for_recipient(NOTIFICATIONS_TABLE, user_id),
            partial(self._handle_notification_insert, generation),
            generation,
        )

    async def stop(self) -> None:
        """Tear down subscriptions and forget all session state."""

        self._generation += 1
        await self._message_subscription.release()
        await self._notification_subscription.release()
        self._user_id = None
        self._counts = {}
        self._notifications = []

    async def mark_read(self, peer_id: str) -> ActionResult:
        """Flag everything from ``peer_id`` as read and reset its counter."""

        user_id = self._user_id
        if user_id is None:
            return ActionResult.skipped("no active session")
        generation = self._generation
        try:
            affected = await self._store.update_messages_read_status(peer_id, user_id, is_read=True)
        except StoreError:
            logger.exception("tracker.mark_read_failed recipient_id=%s sender_id=%s", user_id, peer_id)
            return ActionResult.failure("failed to mark messages as read")
        if generation != self._generation:
            return ActionResult.skipped("session ended")
        self._counts[peer_id] = 0
        logger.info("tracker.mark_read recipient_id=%s sender_id=%s affected=%d", user_id, peer_id, affected)
        return ActionResult.success(affected)

    def acknowledge_notifications(self) -> int:
        """Flag every notification as seen (client-side only); return how many flipped."""

        flipped = 0
        for index, notification in enumerate(self._notifications):
            if not notification.acknowledged:
                self._notifications[index] = notification.model_copy(update={"acknowledged": True})
                flipped += 1
        return flipped

    async def _load_unread_counts(self, user_id: str) -> dict[str, int]:
        try:
            counts = await self._store.count_unread_by_sender(user_id)
        except StoreError:
            logger.exception("tracker.bulk_fetch_failed recipient_id=%s", user_id)
            return {}
        return {sender_id: count for sender_id, count in counts.items() if sender_id != user_id and count > 0}

    async def _load_notifications(self, user_id: str) -> list[NotificationRead]:
        try:
            rows = await self._store.query_notifications(user_id, self._notification_limit)
        except StoreError:
            logger.exception("tracker.notifications_fetch_failed recipient_id=%s", user_id)
            return []
        return sorted(rows, key=lambda row: (row.created_at, row.id), reverse=True)

    async def _open(
        self,
        subscription: ScopedSubscription,
        predicate: SubscriptionPredicate,
        callback: ChangeCallback,
        generation: int,
    ) -> None:
        try:
            handle = await subscription.acquire(predicate, callback)
        except SubscriptionError:
            logger.exception("tracker.subscribe_failed scope=%s", predicate.describe())
            return
        if generation != self._generation:
            await subscription.release(handle)

    def _handle_message_insert(self, generation: int, event: ChangeEvent) -> None:
        if generation != self._generation:
            return
        sender_id = event.row.get("sender_id")
        if not isinstance(sender_id, str) or not sender_id:
            logger.warning("tracker.malformed_message_event row_keys=%s", sorted(event.row))
            return
        if sender_id == self._user_id or event.row.get("recipient_id") != self._user_id:
            return
        self._counts[sender_id] = self._counts.get(sender_id, 0) + 1

    def _handle_notification_insert(self, generation: int, event: ChangeEvent) -> None:
        if generation != self._generation:
            return
        try:
            notification = NotificationRead.model_validate(event.row)
        except ValidationError:
            logger.warning("tracker.malformed_notification_event row_keys=%s", sorted(event.row))
            return
        if any(existing.id == notification.id for existing in self._notifications):
            return
        self._notifications.insert(0, notification.model_copy(update={"acknowledged": False}))
