"""Ordered, live message history for the one open conversation."""

from __future__ import annotations

import enum
import logging

from pydantic import ValidationError

from numizmapp.realtime.source_interface import ChangeEventSource
from numizmapp.realtime.types import ChangeEvent, SubscriptionError, SubscriptionPredicate
from numizmapp.schemas.attachment import AttachedItem
from numizmapp.schemas.message import MessageRead, RenderedMessage
from numizmapp.services.attachments import encode_attachment, is_system_message, parse_message_content
from numizmapp.services.ordering import insert_ordered, merge_unique
from numizmapp.services.results import ActionResult
from numizmapp.services.session_context import SessionContext
from numizmapp.services.store import MESSAGES_TABLE, MessageStore, StoreError
from numizmapp.services.subscriptions import ScopedSubscription

logger = logging.getLogger(__name__)

LOAD_FAILED = "failed to load messages"
SEND_FAILED = "failed to send message"
DELETE_FAILED = "failed to delete chat"


class ConversationStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


class ConversationSynchronizer:
    """Merges a bulk page load, live inserts and confirmed sends for one peer.

    Switching peers is a clean slate: the previous subscription is released
    before anything else happens and the list is rebuilt from the store. Live
    events that arrive while the page is still loading are buffered and merged
    with the fetched rows by message id.
    """

    def __init__(self, session: SessionContext, store: MessageStore, source: ChangeEventSource) -> None:
        self._session = session
        self._store = store
        self._subscription = ScopedSubscription(source, "conversation.messages")
        self._generation = 0
        self._peer_id: str | None = None
        self._messages: list[MessageRead] = []
        self._message_ids: set[str] = set()
        self._buffered: list[MessageRead] = []
        self.status = ConversationStatus.IDLE
        self.error: str | None = None
        self.draft = ""

    @property
    def peer_id(self) -> str | None:
        return self._peer_id

    @property
    def messages(self) -> list[MessageRead]:
        return list(self._messages)

    @property
    def subscribed(self) -> bool:
        return self._subscription.active

    async def on_sign_in(self, user_id: str) -> None:
        return None

    async def on_sign_out(self, user_id: str) -> None:
        await self.close()

    async def select_peer(self, peer_id: str) -> ActionResult:
        """Open the conversation with ``peer_id``, replacing whatever was open."""

        user_id = self._session.user_id
        if user_id is None:
            return ActionResult.skipped("no active session")
        clean_peer_id = peer_id.strip()
        if not clean_peer_id:
            return ActionResult.skipped("peer id cannot be empty")
        if clean_peer_id == user_id:
            return ActionResult.skipped("cannot open a conversation with yourself")

        self._generation += 1
        generation = self._generation
        await self._subscription.release()
        if generation != self._generation:
            return ActionResult.skipped("superseded by another selection")

        self._peer_id = clean_peer_id
        self._reset_messages()
        self.status = ConversationStatus.LOADING
        self.error = None
        self.draft = ""

        try:
            handle = await self._subscription.acquire(
                SubscriptionPredicate.for_recipient(MESSAGES_TABLE, user_id),
                lambda event: self._handle_insert(event, generation, user_id, clean_peer_id),
            )
        except SubscriptionError:
            logger.exception("conversation.subscribe_failed user_id=%s peer_id=%s", user_id, clean_peer_id)
        else:
            if generation != self._generation:
                await self._subscription.release(handle)
                return ActionResult.skipped("superseded by another selection")

        try:
            rows = await self._store.query_messages(user_id, clean_peer_id)
        except StoreError:
            if generation != self._generation:
                return ActionResult.skipped("superseded by another selection")
            logger.exception("conversation.bulk_fetch_failed user_id=%s peer_id=%s", user_id, clean_peer_id)
            self.status = ConversationStatus.ERROR
            self.error = LOAD_FAILED
            return ActionResult.failure(LOAD_FAILED)
        if generation != self._generation:
            return ActionResult.skipped("superseded by another selection")

        visible = [row for row in rows if _belongs_to(row, user_id, clean_peer_id) and not is_system_message(row.content)]
        self._messages = merge_unique(visible, self._buffered)
        self._message_ids = {message.id for message in self._messages}
        self._buffered = []
        self.status = ConversationStatus.READY
        logger.info(
            "conversation.loaded user_id=%s peer_id=%s messages=%d",
            user_id,
            clean_peer_id,
            len(self._messages),
        )
        return ActionResult.success(self.messages)

    async def send_text(self, content: str | None = None) -> ActionResult:
        """Send ``content`` (or the current draft) as a plain message."""

        text = (self.draft if content is None else content).strip()
        if not text:
            return ActionResult.skipped("message content is empty")
        return await self._send(text, draft=text)

    async def send_attachment(self, item: AttachedItem, caption: str = "") -> ActionResult:
        """Send a reference to a collectible, optionally preceded by a caption."""

        return await self._send(encode_attachment(item, caption=caption.strip()), draft=self.draft)

    async def delete_conversation(self, *, confirmed: bool = False) -> ActionResult:
        """Irreversibly delete every message with the open peer."""

        user_id = self._session.user_id
        peer_id = self._peer_id
        if user_id is None or peer_id is None:
            return ActionResult.skipped("no open conversation")
        if not confirmed:
            return ActionResult.skipped("deletion requires confirmation")
        generation = self._generation
        try:
            await self._store.delete_messages(user_id, peer_id)
        except StoreError:
            logger.exception("conversation.delete_failed user_id=%s peer_id=%s", user_id, peer_id)
            if generation == self._generation:
                self.error = DELETE_FAILED
            return ActionResult.failure(DELETE_FAILED)
        logger.info("conversation.deleted user_id=%s peer_id=%s", user_id, peer_id)
        if generation == self._generation:
            await self.close()
            self.status = ConversationStatus.CLOSED
        return ActionResult.success(peer_id)

    async def close(self) -> None:
        """Release the subscription and drop the open conversation."""

        self._generation += 1
        await self._subscription.release()
        self._peer_id = None
        self._reset_messages()
        self.status = ConversationStatus.IDLE
        self.error = None
        self.draft = ""

    def render(self, message: MessageRead) -> RenderedMessage:
        """Decode a message for display; malformed attachments become a placeholder."""

        parsed = parse_message_content(message.content)
        return RenderedMessage(
            id=message.id,
            sender_id=message.sender_id,
            is_mine=message.sender_id == self._session.user_id,
            text=parsed.text,
            attachment=parsed.attachment,
            placeholder=parsed.placeholder,
            created_at=message.created_at,
        )

    def rendered_messages(self) -> list[RenderedMessage]:
        return [self.render(message) for message in self._messages]

    async def _send(self, content: str, *, draft: str) -> ActionResult:
        user_id = self._session.user_id
        peer_id = self._peer_id
        if user_id is None or peer_id is None:
            return ActionResult.skipped("no open conversation")
        if self.status is not ConversationStatus.READY:
            return ActionResult.skipped(f"conversation is {self.status.value}")
        generation = self._generation
        try:
            stored = await self._store.insert_message(user_id, peer_id, content)
        except StoreError:
            logger.exception("conversation.send_failed user_id=%s peer_id=%s", user_id, peer_id)
            if generation == self._generation:
                self.draft = draft
            return ActionResult.failure(SEND_FAILED)
        if generation == self._generation:
            self._place(stored)
            self.draft = ""
        return ActionResult.success(stored)

    def _handle_insert(self, event: ChangeEvent, generation: int, user_id: str, peer_id: str) -> None:
        if generation != self._generation:
            return
        try:
            message = MessageRead.model_validate(event.row)
        except ValidationError:
            logger.warning("conversation.malformed_event row_keys=%s", sorted(event.row))
            return
        # Own sends are placed after the round trip; only the peer's inserts count here.
        if message.sender_id != peer_id or message.recipient_id != user_id:
            return
        if is_system_message(message.content):
            return
        if self.status is ConversationStatus.LOADING:
            self._buffered.append(message)
        elif self.status is ConversationStatus.READY:
            self._place(message)

    def _place(self, message: MessageRead) -> None:
        if message.id in self._message_ids:
            return
        insert_ordered(self._messages, message)
        self._message_ids.add(message.id)

    def _reset_messages(self) -> None:
        self._messages = []
        self._message_ids = set()
        self._buffered = []


def _belongs_to(message: MessageRead, user_id: str, peer_id: str) -> bool:
    return {message.sender_id, message.recipient_id} == {user_id, peer_id}
