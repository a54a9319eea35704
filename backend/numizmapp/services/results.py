"""Outcome objects returned by sync core commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

ActionStatus = Literal["ok", "failed", "skipped"]


@dataclass(slots=True)
class ActionResult:
    """Result of a command issued against the store.

    ``failed`` carries a user-facing error; ``skipped`` means a guard turned
    the command into a no-op (no session, nothing selected, empty input).
    """

    status: ActionStatus
    data: Any = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, data: Any = None) -> ActionResult:
        return cls(status="ok", data=data)

    @classmethod
    def failure(cls, error: str) -> ActionResult:
        return cls(status="failed", detail=error)

    @classmethod
    def skipped(cls, reason: str) -> ActionResult:
        return cls(status="skipped", detail=reason)
