"""Conversation (chat session) lifecycle."""
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Union
import logging

from core.errors import InvalidParticipants, NotFound, StoreError
from database.repositories.chat_repo import ChatRepository
from database.repositories.listing_repo import ListingRepository
from models.chat import ChatSession, ListingRef, SessionList
from utils.session_ids import derive_session_id

logger = logging.getLogger(__name__)

Participants = Union[Mapping[str, bool], Iterable[str]]


def _presence_map(participants: Participants) -> dict:
    if isinstance(participants, Mapping):
        return {uid: True for uid, present in participants.items() if present}
    return {uid: True for uid in participants}


class ConversationManager:
    """Create, look up and list chat sessions."""

    def __init__(
        self,
        chat_repo: ChatRepository,
        listing_repo: Optional[ListingRepository] = None,
    ):
        self.chat_repo = chat_repo
        self.listing_repo = listing_repo

    async def create_session(
        self,
        session_id: str,
        listing: ListingRef,
        participants: Participants,
    ) -> ChatSession:
        """
        Write session metadata under ``session_id``.

        This overwrites any existing row unconditionally; the written shape
        only depends on the arguments, so repeating the call is harmless
        apart from resetting the preview.
        """
        presence = _presence_map(participants)
        if len(presence) != 2:
            raise InvalidParticipants("A chat session needs exactly two participants")

        session = ChatSession(
            session_id=session_id,
            post_id=listing.id,
            post_image_url=listing.image_url or "",
            post_description=listing.description,
            participants=presence,
            last_message="",
            last_message_timestamp=datetime.now(timezone.utc),
        )
        await self.chat_repo.upsert_session(session)
        logger.info(f"Chat session written: {session_id}")
        return session

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        return await self.chat_repo.get_session(session_id)

    async def list_sessions_for(self, uid: str) -> SessionList:
        """
        Sessions ``uid`` takes part in, most recent activity first.

        A store failure yields an empty list with ``error`` set so the
        caller can still render an empty state.
        """
        try:
            sessions = await self.chat_repo.list_sessions(participant=uid)
        except StoreError as e:
            logger.error(f"Could not list chat sessions for {uid}: {e}")
            return SessionList(sessions=[], error=True)

        mine = [s for s in sessions if s.has_participant(uid)]
        # sorted() stays stable with reverse=True, so ties keep store order
        mine = sorted(mine, key=lambda s: s.last_message_timestamp, reverse=True)
        return SessionList(sessions=mine)

    async def update_last_message_preview(
        self,
        session_id: str,
        preview_text: str,
        timestamp: datetime,
    ) -> None:
        await self.chat_repo.update_last_message(session_id, preview_text, timestamp)

    async def connect(self, viewer_uid: str, listing_id: str) -> ChatSession:
        """
        Open the chat between a viewer and the author of a listing.

        An existing session for the pair and listing is reused as-is, so a
        second "connect" never clobbers its preview.
        """
        if self.listing_repo is None:
            raise RuntimeError("ConversationManager.connect needs a ListingRepository")

        listing = await self.listing_repo.get_by_id(listing_id)
        if listing is None:
            raise NotFound("Listing not found")

        session_id = derive_session_id(viewer_uid, listing.user_id, listing.id)

        existing = await self.chat_repo.get_session(session_id)
        if existing is not None:
            logger.info(f"Reusing chat session {session_id}")
            return existing

        return await self.create_session(
            session_id,
            ListingRef(
                id=listing.id,
                image_url=listing.list_image_url,
                description=listing.description,
            ),
            {viewer_uid, listing.user_id},
        )
