"""In-process change feed standing in for the hosted realtime service."""

from __future__ import annotations

import asyncio
import itertools
import logging

from numizmapp.realtime.source_interface import ChangeEventSource
from numizmapp.realtime.types import (
    ChangeCallback,
    ChangeEvent,
    SubscriptionHandle,
    SubscriptionPredicate,
)

logger = logging.getLogger(__name__)


class ChangeFeed(ChangeEventSource):
    """Registers subscriptions and fans published row changes out to them.

    Delivery is scheduled on the running loop rather than performed inline, so
    a publisher never observes its own subscribers mid-call. Events for one
    subscription are delivered in publish order; nothing is promised across
    subscriptions. A handle released before its pending events run drops them.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[int, SubscriptionHandle] = {}
        self._ids = itertools.count(1)
        self._pending = 0

    @property
    def active_count(self) -> int:
        return len(self._subscriptions)

    def active_predicates(self) -> list[SubscriptionPredicate]:
        return [handle.predicate for handle in self._subscriptions.values()]

    async def subscribe(self, predicate: SubscriptionPredicate, callback: ChangeCallback) -> SubscriptionHandle:
        handle = SubscriptionHandle(handle_id=next(self._ids), predicate=predicate, callback=callback)
        self._subscriptions[handle.handle_id] = handle
        logger.debug("realtime.subscribed handle_id=%d scope=%s", handle.handle_id, predicate.describe())
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        handle.active = False
        if self._subscriptions.pop(handle.handle_id, None) is not None:
            logger.debug("realtime.unsubscribed handle_id=%d", handle.handle_id)

    def publish(self, event: ChangeEvent) -> int:
        """Schedule delivery to every matching subscription; return how many matched."""

        targets = [handle for handle in self._subscriptions.values() if handle.predicate.matches(event)]
        if not targets:
            return 0
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        for handle in targets:
            self._pending += 1
            if loop is None:
                self._deliver(handle, event)
            else:
                loop.call_soon(self._deliver, handle, event)
        return len(targets)

    async def settle(self) -> None:
        """Yield to the loop until every scheduled delivery has run."""

        while self._pending:
            await asyncio.sleep(0)

    def _deliver(self, handle: SubscriptionHandle, event: ChangeEvent) -> None:
        self._pending -= 1
        if not handle.active:
            return
        try:
            handle.callback(event)
        except Exception:
            logger.exception(
                "realtime.handler_failed handle_id=%d table=%s op=%s",
                handle.handle_id,
                event.table,
                event.op,
            )
