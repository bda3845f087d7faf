"""Cancellable subscription handles and in-process change notification."""
from collections import defaultdict
from typing import Callable, Dict, Optional, Set
import asyncio
import logging

logger = logging.getLogger(__name__)


class Subscription:
    """
    Handle returned by every ``subscribe`` call.

    The owner must release it with ``cancel()`` when it goes away; using the
    handle as a context manager (sync or async) releases it on scope exit.
    """

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.cancel()


class SessionHub:
    """
    Wakes live chat feeds in this process when a session changes.

    Changes made by other processes are not seen here; feeds fall back to
    polling the store for those.
    """

    def __init__(self):
        self._watchers: Dict[str, Set[asyncio.Event]] = defaultdict(set)

    def watch(self, session_id: str) -> asyncio.Event:
        event = asyncio.Event()
        self._watchers[session_id].add(event)
        return event

    def unwatch(self, session_id: str, event: asyncio.Event) -> None:
        watchers = self._watchers.get(session_id)
        if not watchers:
            return
        watchers.discard(event)
        if not watchers:
            del self._watchers[session_id]

    def notify(self, session_id: str) -> None:
        for event in self._watchers.get(session_id, ()):
            event.set()

    def watcher_count(self, session_id: str) -> int:
        return len(self._watchers.get(session_id, ()))
