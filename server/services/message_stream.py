"""Append-only chat message log with live subscriptions."""
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Union
import asyncio
import inspect
import logging

from core.errors import InvalidArgument
from core.subscriptions import SessionHub, Subscription
from database.repositories.chat_repo import ChatRepository
from models.chat import ChatMessage, IMAGE_PREVIEW_TEXT
from services.conversation_service import ConversationManager

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[List[ChatMessage]], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


async def _call(callback, *args) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class MessageSubscription(Subscription):
    """
    Live feed of one session's messages.

    Delivers the full message list (insertion order) once on start and
    again whenever it changes. The first error ends the feed; it is not
    retried.
    """

    def __init__(
        self,
        session_id: str,
        chat_repo: ChatRepository,
        hub: SessionHub,
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback] = None,
        poll_interval: float = 2.0,
        surface_errors: bool = True,
    ):
        super().__init__()
        self.session_id = session_id
        self.error: Optional[Exception] = None
        self._chat_repo = chat_repo
        self._hub = hub
        self._on_update = on_update
        self._on_error = on_error
        self._poll_interval = poll_interval
        self._surface_errors = surface_errors
        self._wake = hub.watch(session_id)
        self._task = asyncio.create_task(
            self._run(), name=f"chat-feed:{session_id}"
        )

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._task.cancel()
        self._hub.unwatch(self.session_id, self._wake)

    async def aclose(self) -> None:
        """Cancel and wait for the feed task to finish."""
        self.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # Releasing a feed never raises
            logger.warning(f"Chat feed {self.session_id} ended with {e!r}")

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def _run(self) -> None:
        last_seen = None
        try:
            while self._active:
                self._wake.clear()
                messages = await self._chat_repo.get_messages(self.session_id)
                seen = tuple(m.message_id for m in messages)
                if seen != last_seen:
                    last_seen = seen
                    await _call(self._on_update, messages)
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self._poll_interval)
                except asyncio.TimeoutError:
                    pass
        except Exception as e:
            await self._fail(e)
        finally:
            self._hub.unwatch(self.session_id, self._wake)

    async def _fail(self, error: Exception) -> None:
        self.error = error
        self._active = False
        if self._on_error is not None:
            logger.info(f"Chat feed {self.session_id} stopped: {error}")
            try:
                await _call(self._on_error, error)
            except Exception as e:
                logger.warning(f"Chat feed {self.session_id} error handler failed: {e}")
        elif self._surface_errors:
            logger.error(f"Chat feed {self.session_id} stopped: {error}", exc_info=error)
        else:
            logger.debug(f"Chat feed {self.session_id} stopped: {error}")


class MessageStream:
    """Append messages to a session and subscribe to its live message list."""

    def __init__(
        self,
        chat_repo: ChatRepository,
        conversations: ConversationManager,
        hub: SessionHub,
        poll_interval: float = 2.0,
        surface_errors: bool = True,
    ):
        self.chat_repo = chat_repo
        self.conversations = conversations
        self.hub = hub
        self.poll_interval = poll_interval
        self.surface_errors = surface_errors

    async def append_message(
        self,
        session_id: str,
        sender_id: str,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> int:
        """
        Append a message and refresh the session preview.

        Returns:
            The store-assigned message id.
        """
        text = text.strip() if text else None
        image_url = image_url or None
        if not text and not image_url:
            raise InvalidArgument("A message needs text or an image")

        timestamp = datetime.now(timezone.utc)
        message = await self.chat_repo.insert_message(
            session_id,
            sender_id,
            timestamp,
            text=text,
            image_url=image_url,
        )
        self.hub.notify(session_id)

        preview = text if text else IMAGE_PREVIEW_TEXT
        try:
            await self.conversations.update_last_message_preview(session_id, preview, timestamp)
        except Exception as e:
            # The message itself is stored; a stale preview is not retried
            logger.error(f"Preview update failed for {session_id}: {e}")

        return message.message_id

    async def get_messages(self, session_id: str) -> List[ChatMessage]:
        return await self.chat_repo.get_messages(session_id)

    def subscribe(
        self,
        session_id: str,
        on_update: UpdateCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> MessageSubscription:
        """Start a live feed; must be called from a running event loop."""
        return MessageSubscription(
            session_id,
            self.chat_repo,
            self.hub,
            on_update,
            on_error=on_error,
            poll_interval=self.poll_interval,
            surface_errors=self.surface_errors,
        )
