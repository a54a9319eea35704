"""Deterministic message ordering shared by the sync components."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from datetime import datetime

from numizmapp.schemas.message import MessageRead


def message_sort_key(message: MessageRead) -> tuple[datetime, str]:
    """Creation time ascending, identity string as tie-break."""

    return (message.created_at, message.id)


def sort_messages(messages: Iterable[MessageRead]) -> list[MessageRead]:
    """Return messages in conversation order regardless of input order."""

    return sorted(messages, key=message_sort_key)


def insert_ordered(messages: list[MessageRead], message: MessageRead) -> int:
    """Place ``message`` after every entry that sorts at or before it; return its index.

    For in-order arrivals this is an append.
    """

    index = bisect_right(messages, message_sort_key(message), key=message_sort_key)
    messages.insert(index, message)
    return index


def merge_unique(existing: Iterable[MessageRead], incoming: Iterable[MessageRead]) -> list[MessageRead]:
    """Union two message sets by identity (first occurrence wins) and sort the result."""

    merged: dict[str, MessageRead] = {}
    for message in [*existing, *incoming]:
        merged.setdefault(message.id, message)
    return sort_messages(merged.values())
