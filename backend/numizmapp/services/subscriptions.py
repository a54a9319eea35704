"""Owned subscription resource with teardown-before-create semantics."""

from __future__ import annotations

import logging

from numizmapp.realtime.source_interface import ChangeEventSource
from numizmapp.realtime.types import ChangeCallback, SubscriptionHandle, SubscriptionPredicate

logger = logging.getLogger(__name__)


class ScopedSubscription:
    """Holds at most one live subscription for a logical scope."""

    def __init__(self, source: ChangeEventSource, scope: str) -> None:
        self._source = source
        self._scope = scope
        self._handle: SubscriptionHandle | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> SubscriptionHandle | None:
        return self._handle

    async def acquire(self, predicate: SubscriptionPredicate, callback: ChangeCallback) -> SubscriptionHandle:
        """Release the current subscription, then open a new one.

        Raises whatever the transport raises when the open fails; the scope is
        left empty in that case.
        """

        await self.release()
        handle = await self._source.subscribe(predicate, callback)
        if self._handle is not None:
            # A concurrent acquire finished first; keep only the newest.
            await self._source.unsubscribe(self._handle)
        self._handle = handle
        logger.debug("subscriptions.acquired scope=%s predicate=%s", self._scope, predicate.describe())
        return handle

    async def release(self, handle: SubscriptionHandle | None = None) -> None:
        """Close the current subscription, or only ``handle`` when given."""

        if handle is not None and handle is not self._handle:
            await self._source.unsubscribe(handle)
            return
        current, self._handle = self._handle, None
        if current is not None:
            await self._source.unsubscribe(current)
            logger.debug("subscriptions.released scope=%s", self._scope)
