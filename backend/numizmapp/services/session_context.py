"""Authenticated identity holder driving component lifecycles."""

from __future__ import annotations

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class SessionListener(Protocol):
    """Component whose lifetime follows the signed-in identity."""

    async def on_sign_in(self, user_id: str) -> None:
        """Acquire per-session resources for ``user_id``."""

    async def on_sign_out(self, user_id: str) -> None:
        """Release everything acquired for ``user_id``."""


class SessionContext:
    """Holds the current identity and notifies listeners on auth state changes."""

    def __init__(self) -> None:
        self._user_id: str | None = None
        self._listeners: list[SessionListener] = []

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_active(self) -> bool:
        return self._user_id is not None

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def sign_in(self, user_id: str) -> None:
        clean_user_id = user_id.strip()
        if not clean_user_id:
            raise ValueError("user_id cannot be empty")
        if clean_user_id == self._user_id:
            return
        if self._user_id is not None:
            await self.sign_out()
        self._user_id = clean_user_id
        logger.info("session.signed_in user_id=%s", clean_user_id)
        for listener in list(self._listeners):
            await listener.on_sign_in(clean_user_id)

    async def sign_out(self) -> None:
        previous = self._user_id
        if previous is None:
            return
        self._user_id = None
        logger.info("session.signed_out user_id=%s", previous)
        for listener in list(self._listeners):
            await listener.on_sign_out(previous)
