"""One-shot "Share Verification Photo" handoff for a chat screen."""
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar
import logging

from core.errors import InvalidArgument

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HandoffState(str, Enum):
    ARMED = "armed"
    FIRED = "fired"
    DISCARDED = "discarded"


class VerificationHandoff:
    """
    A pending verification photo carried into a chat by navigation.

    Armed --confirm--> Fired, Armed --dismiss--> Discarded. Neither terminal
    state leads back to Armed, so one navigation can share the photo at
    most once.
    """

    def __init__(self, photo_url: str):
        if not photo_url:
            raise InvalidArgument("A verification handoff needs a photo URL")
        self.photo_url = photo_url
        self.state = HandoffState.ARMED

    @classmethod
    def from_navigation(cls, photo_url: Optional[str]) -> Optional["VerificationHandoff"]:
        """Build a handoff from the optional route parameter."""
        if not photo_url or not photo_url.strip():
            return None
        return cls(photo_url.strip())

    @property
    def offered(self) -> bool:
        return self.state == HandoffState.ARMED

    async def confirm(self, send: Callable[[str], Awaitable[T]]) -> Optional[T]:
        """
        Send the photo through ``send`` if still armed; otherwise do nothing.

        The handoff is spent as soon as confirm starts: if ``send`` raises,
        the error propagates and the state stays FIRED with nothing shared.
        """
        if self.state != HandoffState.ARMED:
            logger.debug(f"Ignoring verification confirm in state {self.state.value}")
            return None
        # Leave Armed before awaiting so a second confirm cannot slip in
        self.state = HandoffState.FIRED
        return await send(self.photo_url)

    def discard(self) -> None:
        if self.state == HandoffState.ARMED:
            self.state = HandoffState.DISCARDED
