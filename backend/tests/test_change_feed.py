"""Tests for the in-process change feed and scoped subscriptions."""

from __future__ import annotations

import unittest

from numizmapp.realtime.change_feed import ChangeFeed
from numizmapp.realtime.types import ChangeEvent, SubscriptionPredicate
from numizmapp.services.subscriptions import ScopedSubscription


def _insert(recipient_id: str, sender_id: str = "alice", message_id: str = "m-1") -> ChangeEvent:
    return ChangeEvent(
        table="messages",
        op="INSERT",
        row={"id": message_id, "sender_id": sender_id, "recipient_id": recipient_id},
    )


class ChangeFeedTests(unittest.IsolatedAsyncioTestCase):
    async def test_delivery_is_asynchronous_and_scoped(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        await feed.subscribe(SubscriptionPredicate.for_recipient("messages", "bob"), received.append)

        matched = feed.publish(_insert("bob"))
        feed.publish(_insert("carol"))
        feed.publish(ChangeEvent(table="notifications", op="INSERT", row={"recipient_id": "bob"}))
        feed.publish(ChangeEvent(table="messages", op="DELETE", row={"recipient_id": "bob"}))

        self.assertEqual(matched, 1)
        self.assertEqual(received, [])
        await feed.settle()
        self.assertEqual([event.row["recipient_id"] for event in received], ["bob"])

    async def test_per_subscription_order_is_preserved(self) -> None:
        feed = ChangeFeed()
        received: list[str] = []
        await feed.subscribe(
            SubscriptionPredicate.for_recipient("messages", "bob"),
            lambda event: received.append(event.row["id"]),
        )

        for index in range(5):
            feed.publish(_insert("bob", message_id=f"m-{index}"))
        await feed.settle()

        self.assertEqual(received, [f"m-{index}" for index in range(5)])

    async def test_unsubscribe_is_idempotent_and_drops_pending_events(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []
        handle = await feed.subscribe(SubscriptionPredicate.for_recipient("messages", "bob"), received.append)

        feed.publish(_insert("bob"))
        await feed.unsubscribe(handle)
        await feed.unsubscribe(handle)
        await feed.settle()

        self.assertEqual(received, [])
        self.assertEqual(feed.active_count, 0)

    async def test_failing_handler_does_not_block_other_subscribers(self) -> None:
        feed = ChangeFeed()
        received: list[ChangeEvent] = []

        def explode(event: ChangeEvent) -> None:
            raise RuntimeError("boom")

        await feed.subscribe(SubscriptionPredicate.for_recipient("messages", "bob"), explode)
        await feed.subscribe(SubscriptionPredicate.for_recipient("messages", "bob"), received.append)

        with self.assertLogs("numizmapp.realtime.change_feed", level="ERROR"):
            feed.publish(_insert("bob"))
            await feed.settle()

        self.assertEqual(len(received), 1)


class ScopedSubscriptionTests(unittest.IsolatedAsyncioTestCase):
    async def test_acquire_tears_down_previous_subscription_first(self) -> None:
        feed = ChangeFeed()
        scoped = ScopedSubscription(feed, "test")
        first: list[ChangeEvent] = []
        second: list[ChangeEvent] = []

        old_handle = await scoped.acquire(SubscriptionPredicate.for_recipient("messages", "bob"), first.append)
        await scoped.acquire(SubscriptionPredicate.for_recipient("messages", "bob"), second.append)
        feed.publish(_insert("bob"))
        await feed.settle()

        self.assertFalse(old_handle.active)
        self.assertEqual(feed.active_count, 1)
        self.assertEqual(first, [])
        self.assertEqual(len(second), 1)

    async def test_release_of_a_stale_handle_keeps_the_current_one(self) -> None:
        feed = ChangeFeed()
        scoped = ScopedSubscription(feed, "test")
        stale = await feed.subscribe(SubscriptionPredicate.for_recipient("messages", "bob"), lambda event: None)
        current = await scoped.acquire(SubscriptionPredicate.for_recipient("messages", "bob"), lambda event: None)

        await scoped.release(stale)

        self.assertIs(scoped.handle, current)
        self.assertEqual(feed.active_count, 1)
        await scoped.release()
        await scoped.release()
        self.assertFalse(scoped.active)
        self.assertEqual(feed.active_count, 0)


if __name__ == "__main__":
    unittest.main()
