"""Explicit per-login session value.

A ``Session`` is created at login and closed at logout. Components that hold
per-session state (sync engine, progress tracker) receive it in their
constructor and may register close hooks; closing runs the hooks and then
wipes every cached collection.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from .config import Settings
from .persistence import PersistentStore

LOGGER = logging.getLogger(__name__)


@dataclass
class Session:
    settings: Settings
    store: PersistentStore
    username: str = ""
    clock: Callable[[], float] = time.time
    _close_hooks: list[Callable[[], None]] = field(default_factory=list, repr=False)
    _closed: bool = field(default=False, repr=False)

    @classmethod
    def open(cls, settings: Settings, *, clock: Callable[[], float] = time.time) -> Session:
        """Start a session for the account configured in ``settings.catalog``."""
        store = PersistentStore(settings.db_path)
        session = cls(
            settings=settings,
            store=store,
            username=settings.catalog.username or "",
            clock=clock,
        )
        LOGGER.debug("Session opened for '%s' (%s)", session.username, settings.db_path)
        return session

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    @property
    def closed(self) -> bool:
        return self._closed

    def on_close(self, hook: Callable[[], None]) -> None:
        self._close_hooks.append(hook)

    def close(self) -> None:
        """End the session: run close hooks, then clear every collection."""
        if self._closed:
            return
        for hook in self._close_hooks:
            try:
                hook()
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Session close hook failed: %s", exc)
        self._close_hooks.clear()
        self.store.clear_all()
        self.store.close()
        self._closed = True
        LOGGER.info("Session for '%s' closed; local catalog cleared", self.username)
