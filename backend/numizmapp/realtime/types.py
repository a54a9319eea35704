"""Typed change events independent of any transport."""

from dataclasses import dataclass, field
from typing import Any, Callable, Literal

ChangeOp = Literal["INSERT", "UPDATE", "DELETE"]


class SubscriptionError(RuntimeError):
    """Raised when the transport cannot open a subscription."""


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One row change pushed by the transport."""

    table: str
    op: ChangeOp
    row: dict[str, Any]


@dataclass(frozen=True, slots=True)
class SubscriptionPredicate:
    """Scope of a subscription: table, event kind, and equality filters on the row."""

    table: str
    event: ChangeOp | Literal["*"] = "INSERT"
    filters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_recipient(cls, table: str, recipient_id: str, event: ChangeOp = "INSERT") -> "SubscriptionPredicate":
        return cls(table=table, event=event, filters={"recipient_id": recipient_id})

    def matches(self, change: ChangeEvent) -> bool:
        if change.table != self.table:
            return False
        if self.event != "*" and change.op != self.event:
            return False
        return all(change.row.get(column) == value for column, value in self.filters.items())

    def describe(self) -> str:
        clauses = ",".join(f"{column}=eq.{value}" for column, value in sorted(self.filters.items()))
        return f"{self.table}:{self.event}:{clauses}"


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass(eq=False, slots=True)
class SubscriptionHandle:
    """Live registration returned by ``subscribe``; inert once released."""

    handle_id: int
    predicate: SubscriptionPredicate
    callback: ChangeCallback
    active: bool = True
