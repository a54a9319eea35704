"""Change event source interface for pluggable realtime transports."""

from abc import ABC, abstractmethod

from numizmapp.realtime.types import ChangeCallback, SubscriptionHandle, SubscriptionPredicate


class ChangeEventSource(ABC):
    """Abstract push transport delivering row changes."""

    @abstractmethod
    async def subscribe(self, predicate: SubscriptionPredicate, callback: ChangeCallback) -> SubscriptionHandle:
        """Open a subscription; ``callback`` receives matching events asynchronously."""

    @abstractmethod
    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Close a subscription. Must be idempotent."""
