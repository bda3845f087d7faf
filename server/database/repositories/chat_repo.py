"""Chat repository: session metadata (``chats``) and messages (``chat_messages``)."""
from asyncio import to_thread
from datetime import datetime
from typing import List, Optional
from supabase import Client
import logging

from core.errors import StoreError
from models.chat import ChatMessage, ChatSession, decode_message, decode_session

logger = logging.getLogger(__name__)


class ChatRepository:
    """Handle chat session and message database operations."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def upsert_session(self, session: ChatSession) -> None:
        """Write the whole metadata row, replacing whatever is stored."""
        data = session.model_dump(mode="json")
        try:
            await to_thread(
                lambda: self.supabase.table("chats")
                .upsert(data, on_conflict="session_id")
                .execute()
            )
        except Exception as e:
            logger.error(f"Error writing chat session {session.session_id}: {e}")
            raise StoreError("Could not save chat session") from e

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Get session metadata. Returns None if not found."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("chats")
                .select("*")
                .eq("session_id", session_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error getting chat session {session_id}: {e}")
            raise StoreError("Could not load chat session") from e

        return decode_session(response.data[0]) if response.data else None

    async def list_sessions(self, participant: Optional[str] = None) -> List[ChatSession]:
        """List session metadata, narrowed to ``participant`` when given."""
        def _query():
            q = self.supabase.table("chats").select("*")
            if participant:
                q = q.contains("participants", {participant: True})
            return q.execute()

        try:
            response = await to_thread(_query)
        except Exception as e:
            logger.error(f"Error listing chat sessions: {e}")
            raise StoreError("Could not load chat sessions") from e

        sessions = []
        for row in response.data or []:
            try:
                sessions.append(decode_session(row))
            except StoreError as e:
                logger.warning(f"Skipping undecodable chat session: {e}")
        return sessions

    async def update_last_message(
        self,
        session_id: str,
        last_message: str,
        timestamp: datetime,
    ) -> None:
        """Partial update of the preview fields only."""
        try:
            await to_thread(
                lambda: self.supabase.table("chats")
                .update({
                    "last_message": last_message,
                    "last_message_timestamp": timestamp.isoformat(),
                })
                .eq("session_id", session_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error updating last message for {session_id}: {e}")
            raise StoreError("Could not update chat preview") from e

    async def insert_message(
        self,
        session_id: str,
        sender_id: str,
        timestamp: datetime,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> ChatMessage:
        """Append a message. The store assigns ``message_id``."""
        data = {
            "session_id": session_id,
            "sender_id": sender_id,
            "text": text,
            "image_url": image_url,
            "timestamp": timestamp.isoformat(),
        }
        try:
            response = await to_thread(
                lambda: self.supabase.table("chat_messages").insert(data).execute()
            )
        except Exception as e:
            logger.error(f"Error inserting message into {session_id}: {e}", exc_info=True)
            raise StoreError("Could not send message") from e

        if not response.data:
            raise StoreError("Message insert returned no row")
        return decode_message(response.data[0])

    async def get_messages(self, session_id: str) -> List[ChatMessage]:
        """All messages of a session in insertion order."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("chat_messages")
                .select("*")
                .eq("session_id", session_id)
                .order("message_id")
                .execute()
            )
        except Exception as e:
            logger.error(f"Error getting messages for {session_id}: {e}")
            raise StoreError("Could not load messages") from e

        messages = []
        for row in response.data or []:
            try:
                messages.append(decode_message(row))
            except StoreError as e:
                logger.warning(f"Skipping undecodable message: {e}")
        return messages
