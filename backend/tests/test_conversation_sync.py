"""Tests for the live conversation synchronizer."""

from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from numizmapp.models.base import Base
from numizmapp.models.message import Message
from numizmapp.realtime.change_feed import ChangeFeed
from numizmapp.realtime.types import ChangeEvent
from numizmapp.schemas.attachment import AttachedItem
from numizmapp.services.attachments import ATTACHMENT_PLACEHOLDER, ATTACHMENT_SENTINEL
from numizmapp.services.conversation_sync import (
    DELETE_FAILED,
    SEND_FAILED,
    ConversationStatus,
    ConversationSynchronizer,
)
from numizmapp.services.session_context import SessionContext
from numizmapp.services.store import SqlStore, StoreError

ME = "me"
ALICE = "alice"
BOB = "bob"
BASE = datetime(2020, 6, 1, 8, 0, tzinfo=timezone.utc)


class _FailingInsertStore(SqlStore):
    async def insert_message(self, sender_id: str, recipient_id: str, content: str, *, created_at=None):
        raise StoreError("insert_message failed")


class _FailingDeleteStore(SqlStore):
    async def delete_messages(self, peer_a: str, peer_b: str) -> bool:
        raise StoreError("delete_messages failed")


class _FailingQueryStore(SqlStore):
    async def query_messages(self, peer_a: str, peer_b: str):
        raise StoreError("query_messages failed")


class _GatedQueryStore(SqlStore):
    """Holds the bulk fetch for one peer open until the test releases ``gate``."""

    def __init__(self, *args, gated_peer: str, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.gated_peer = gated_peer
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def query_messages(self, peer_a: str, peer_b: str):
        if self.gated_peer in (peer_a, peer_b):
            self.entered.set()
            await self.gate.wait()
        return await super().query_messages(peer_a, peer_b)


class ConversationSynchronizerTests(unittest.IsolatedAsyncioTestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    async def asyncSetUp(self) -> None:
        with self.SessionLocal() as db:
            db.execute(delete(Message))
            db.commit()
        self.feed = ChangeFeed()
        self.store = SqlStore(self.SessionLocal, feed=self.feed)
        self.session = SessionContext()
        await self.session.sign_in(ME)

    def _sync(self, store: SqlStore | None = None) -> ConversationSynchronizer:
        return ConversationSynchronizer(self.session, store or self.store, self.feed)

    async def _seed(self, sender_id: str, recipient_id: str, content: str, minutes: int):
        return await self.store.insert_message(
            sender_id,
            recipient_id,
            content,
            created_at=BASE + timedelta(minutes=minutes),
        )

    async def test_select_peer_loads_the_pair_in_order(self) -> None:
        await self._seed(ME, ALICE, "second", 2)
        await self._seed(ALICE, ME, "first", 1)
        await self._seed(BOB, ME, "not this pair", 0)
        sync = self._sync()

        result = await sync.select_peer(ALICE)

        self.assertTrue(result.ok)
        self.assertIs(sync.status, ConversationStatus.READY)
        self.assertEqual([m.content for m in sync.messages], ["first", "second"])
        self.assertTrue(sync.subscribed)

    async def test_switching_peers_discards_the_previous_list(self) -> None:
        await self._seed(ALICE, ME, "from alice", 0)
        await self._seed(BOB, ME, "from bob", 1)
        sync = self._sync()
        await sync.select_peer(ALICE)

        await sync.select_peer(BOB)
        await self.store.insert_message(ALICE, ME, "late alice message")
        await self.feed.settle()

        self.assertEqual(sync.peer_id, BOB)
        self.assertEqual([m.content for m in sync.messages], ["from bob"])
        self.assertEqual(self.feed.active_count, 1)

    async def test_live_inserts_only_from_the_open_peer(self) -> None:
        await self._seed(ALICE, ME, "hello", 0)
        sync = self._sync()
        await sync.select_peer(ALICE)

        await self.store.insert_message(BOB, ME, "from someone else")
        live = await self.store.insert_message(ALICE, ME, "are you there?")
        await self.feed.settle()

        self.assertEqual([m.content for m in sync.messages], ["hello", "are you there?"])
        self.assertEqual(sync.messages[-1].id, live.id)

    async def test_redelivered_event_is_not_appended_twice(self) -> None:
        sync = self._sync()
        await sync.select_peer(ALICE)
        live = await self.store.insert_message(ALICE, ME, "once")
        await self.feed.settle()

        self.feed.publish(ChangeEvent(table="messages", op="INSERT", row=live.model_dump(mode="json")))
        await self.feed.settle()

        self.assertEqual([m.id for m in sync.messages], [live.id])

    async def test_send_appends_exactly_one_message_at_the_end(self) -> None:
        await self._seed(ALICE, ME, "one", 0)
        await self._seed(ME, ALICE, "two", 1)
        sync = self._sync()
        await sync.select_peer(ALICE)
        sync.draft = "  three  "

        result = await sync.send_text()
        await self.feed.settle()

        self.assertTrue(result.ok)
        self.assertEqual([m.content for m in sync.messages], ["one", "two", "three"])
        self.assertEqual(sync.draft, "")

    async def test_empty_content_is_never_sent(self) -> None:
        sync = self._sync()
        await sync.select_peer(ALICE)

        result = await sync.send_text("   ")

        self.assertEqual(result.status, "skipped")
        self.assertEqual(await self.store.query_messages(ME, ALICE), [])

    async def test_send_without_selected_peer_is_a_noop(self) -> None:
        sync = self._sync()

        result = await sync.send_text("hello")

        self.assertEqual(result.status, "skipped")

    async def test_failed_send_keeps_the_draft(self) -> None:
        sync = self._sync(_FailingInsertStore(self.SessionLocal, feed=self.feed))
        await sync.select_peer(ALICE)
        sync.draft = "offer: 40 EUR"

        with self.assertLogs("numizmapp.services.conversation_sync", level="ERROR"):
            result = await sync.send_text()

        self.assertEqual(result.status, "failed")
        self.assertEqual(result.detail, SEND_FAILED)
        self.assertEqual(sync.draft, "offer: 40 EUR")
        self.assertEqual(sync.messages, [])

    async def test_attachment_round_trip_through_the_conversation(self) -> None:
        sync = self._sync()
        await sync.select_peer(ALICE)
        item = AttachedItem(id="coin-7", name="Ruble 1924", image_url=None)

        result = await sync.send_attachment(item, caption="This one?")
        rendered = sync.rendered_messages()

        self.assertTrue(result.ok)
        self.assertEqual(len(rendered), 1)
        self.assertTrue(rendered[0].is_mine)
        self.assertEqual(rendered[0].text, "This one?")
        self.assertEqual(rendered[0].attachment, item)
        self.assertIsNone(rendered[0].placeholder)

    async def test_corrupted_attachment_renders_a_placeholder(self) -> None:
        await self._seed(ALICE, ME, ATTACHMENT_SENTINEL + '{"id": "coin-1", "na', 0)
        sync = self._sync()
        await sync.select_peer(ALICE)

        with self.assertLogs("numizmapp.services.attachments", level="WARNING"):
            rendered = sync.rendered_messages()

        self.assertEqual(len(rendered), 1)
        self.assertFalse(rendered[0].is_mine)
        self.assertIsNone(rendered[0].attachment)
        self.assertEqual(rendered[0].placeholder, ATTACHMENT_PLACEHOLDER)

    async def test_system_messages_are_hidden(self) -> None:
        await self._seed(ALICE, ME, "[system] chat created", 0)
        await self._seed(ALICE, ME, "visible", 1)
        sync = self._sync()
        await sync.select_peer(ALICE)
        await self.store.insert_message(ALICE, ME, "[system] alice left")
        await self.feed.settle()

        self.assertEqual([m.content for m in sync.messages], ["visible"])

    async def test_equal_timestamps_order_identically_on_every_fetch(self) -> None:
        for content in ("x", "y", "z"):
            await self._seed(ALICE, ME, content, 5)
        sync = self._sync()

        await sync.select_peer(ALICE)
        first = [m.id for m in sync.messages]
        await sync.select_peer(BOB)
        await sync.select_peer(ALICE)
        second = [m.id for m in sync.messages]

        self.assertEqual(first, second)
        self.assertEqual(first, sorted(first))

    async def test_delete_then_reselect_shows_an_empty_conversation(self) -> None:
        await self._seed(ALICE, ME, "one", 0)
        await self._seed(ME, ALICE, "two", 1)
        sync = self._sync()
        await sync.select_peer(ALICE)

        unconfirmed = await sync.delete_conversation()
        self.assertEqual(unconfirmed.status, "skipped")
        self.assertEqual(len(sync.messages), 2)

        deleted = await sync.delete_conversation(confirmed=True)
        self.assertTrue(deleted.ok)
        self.assertIs(sync.status, ConversationStatus.CLOSED)
        self.assertIsNone(sync.peer_id)
        self.assertFalse(sync.subscribed)

        await sync.select_peer(ALICE)
        self.assertEqual(sync.messages, [])

    async def test_failed_delete_reports_inline_error(self) -> None:
        await self._seed(ALICE, ME, "keep me", 0)
        sync = self._sync(_FailingDeleteStore(self.SessionLocal, feed=self.feed))
        await sync.select_peer(ALICE)

        with self.assertLogs("numizmapp.services.conversation_sync", level="ERROR"):
            result = await sync.delete_conversation(confirmed=True)

        self.assertEqual(result.status, "failed")
        self.assertEqual(sync.error, DELETE_FAILED)
        self.assertIs(sync.status, ConversationStatus.READY)
        self.assertEqual([m.content for m in sync.messages], ["keep me"])

    async def test_failed_load_sets_error_status(self) -> None:
        sync = self._sync(_FailingQueryStore(self.SessionLocal, feed=self.feed))

        with self.assertLogs("numizmapp.services.conversation_sync", level="ERROR"):
            result = await sync.select_peer(ALICE)

        self.assertEqual(result.status, "failed")
        self.assertIs(sync.status, ConversationStatus.ERROR)

    async def test_self_conversation_is_refused(self) -> None:
        sync = self._sync()

        result = await sync.select_peer(ME)

        self.assertEqual(result.status, "skipped")
        self.assertIsNone(sync.peer_id)
        self.assertFalse(sync.subscribed)

    async def test_select_without_session_is_a_noop(self) -> None:
        await self.session.sign_out()
        sync = self._sync()

        result = await sync.select_peer(ALICE)

        self.assertEqual(result.status, "skipped")
        self.assertIs(sync.status, ConversationStatus.IDLE)

    async def test_stale_fetch_for_previous_peer_is_discarded(self) -> None:
        await self._seed(ALICE, ME, "from alice", 0)
        await self._seed(BOB, ME, "from bob", 1)
        store = _GatedQueryStore(self.SessionLocal, feed=self.feed, gated_peer=ALICE)
        sync = self._sync(store)

        pending = asyncio.create_task(sync.select_peer(ALICE))
        await store.entered.wait()
        await sync.select_peer(BOB)
        store.gate.set()
        stale = await pending

        self.assertEqual(stale.status, "skipped")
        self.assertEqual(sync.peer_id, BOB)
        self.assertEqual([m.content for m in sync.messages], ["from bob"])
        self.assertEqual(self.feed.active_count, 1)

    async def test_insert_during_load_is_merged_once(self) -> None:
        await self._seed(ALICE, ME, "before", 0)
        store = _GatedQueryStore(self.SessionLocal, feed=self.feed, gated_peer=ALICE)
        sync = self._sync(store)

        pending = asyncio.create_task(sync.select_peer(ALICE))
        await store.entered.wait()
        await store.insert_message(ALICE, ME, "during load")
        await self.feed.settle()
        self.assertIs(sync.status, ConversationStatus.LOADING)
        store.gate.set()
        await pending

        self.assertEqual([m.content for m in sync.messages], ["before", "during load"])

    async def test_sign_out_closes_the_conversation(self) -> None:
        sync = self._sync()
        self.session.add_listener(sync)
        await sync.select_peer(ALICE)

        await self.session.sign_out()

        self.assertIs(sync.status, ConversationStatus.IDLE)
        self.assertIsNone(sync.peer_id)
        self.assertEqual(self.feed.active_count, 0)


if __name__ == "__main__":
    unittest.main()
