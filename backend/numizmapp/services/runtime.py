"""Assembly of the sync core for one client process."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from numizmapp.config import Settings, get_settings
from numizmapp.realtime.change_feed import ChangeFeed
from numizmapp.services.conversation_sync import ConversationSynchronizer
from numizmapp.services.inbox_tracker import InboxTracker
from numizmapp.services.session_context import SessionContext
from numizmapp.services.store import SqlStore


@dataclass(slots=True)
class SyncRuntime:
    """Everything the view layer talks to, wired to one session context."""

    settings: Settings
    feed: ChangeFeed
    store: SqlStore
    session: SessionContext
    inbox: InboxTracker
    conversation: ConversationSynchronizer

    async def shutdown(self) -> None:
        await self.session.sign_out()
        await self.conversation.close()


def build_runtime(session_factory: sessionmaker, *, settings: Settings | None = None) -> SyncRuntime:
    """Create the feed, store and components, and subscribe them to the session."""

    resolved = settings or get_settings()
    feed = ChangeFeed()
    store = SqlStore(session_factory, feed=feed)
    session = SessionContext()
    inbox = InboxTracker(store, feed, notification_limit=resolved.notification_fetch_limit)
    conversation = ConversationSynchronizer(session, store, feed)
    session.add_listener(inbox)
    session.add_listener(conversation)
    return SyncRuntime(
        settings=resolved,
        feed=feed,
        store=store,
        session=session,
        inbox=inbox,
        conversation=conversation,
    )
