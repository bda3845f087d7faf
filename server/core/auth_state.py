"""Auth state change notifications."""
from enum import Enum
from typing import Callable, Dict
import itertools
import logging

from pydantic import BaseModel

from core.subscriptions import Subscription

logger = logging.getLogger(__name__)


class AuthEvent(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


class AuthStateChange(BaseModel):
    event: AuthEvent
    uid: str


AuthListener = Callable[[AuthStateChange], None]


class AuthStateChannel:
    """Fan-out of sign-in/sign-out events to whoever owns routing."""

    def __init__(self):
        self._listeners: Dict[int, AuthListener] = {}
        self._ids = itertools.count()

    def subscribe(self, listener: AuthListener) -> Subscription:
        key = next(self._ids)
        self._listeners[key] = listener
        return Subscription(on_cancel=lambda: self._listeners.pop(key, None))

    def publish(self, change: AuthStateChange) -> None:
        logger.info(f"Auth state: {change.event.value} ({change.uid})")
        for listener in list(self._listeners.values()):
            try:
                listener(change)
            except Exception as e:
                # One broken listener must not stop the others
                logger.error(f"Auth state listener failed: {e}", exc_info=True)

    def listener_count(self) -> int:
        return len(self._listeners)
