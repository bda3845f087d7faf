"""Shared test fixtures and configuration."""
import itertools
import sys
import os
from typing import Dict, List, Optional

import pytest

# Ensure the server package is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set required environment variables BEFORE any application module is imported.
# These are dummy values used only in tests; no real connections are made.
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key-for-unit-tests")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-for-unit-tests")

from core.errors import StoreError  # noqa: E402
from core.subscriptions import SessionHub  # noqa: E402
from models.chat import decode_message, decode_session  # noqa: E402
from models.listing import decode_listing  # noqa: E402
from services.conversation_service import ConversationManager  # noqa: E402
from services.message_stream import MessageStream  # noqa: E402


class InMemoryChatRepository:
    """Stands in for ChatRepository; rows are kept in their stored JSON shape."""

    def __init__(self):
        self.sessions: Dict[str, dict] = {}
        self.messages: List[dict] = []
        self.fail_reads = False
        self.upserts = 0
        self._ids = itertools.count(1)

    async def upsert_session(self, session):
        self.upserts += 1
        self.sessions[session.session_id] = session.model_dump(mode="json")

    async def get_session(self, session_id):
        row = self.sessions.get(session_id)
        return decode_session(row) if row else None

    async def list_sessions(self, participant=None):
        if self.fail_reads:
            raise StoreError("store unavailable")
        return [decode_session(row) for row in self.sessions.values()]

    async def update_last_message(self, session_id, last_message, timestamp):
        row = self.sessions.get(session_id)
        if row is not None:
            row["last_message"] = last_message
            row["last_message_timestamp"] = timestamp.isoformat()

    async def insert_message(self, session_id, sender_id, timestamp, text=None, image_url=None):
        row = {
            "message_id": next(self._ids),
            "session_id": session_id,
            "sender_id": sender_id,
            "text": text,
            "image_url": image_url,
            "timestamp": timestamp.isoformat(),
        }
        self.messages.append(row)
        return decode_message(row)

    async def get_messages(self, session_id):
        if self.fail_reads:
            raise StoreError("store unavailable")
        return [decode_message(r) for r in self.messages if r["session_id"] == session_id]


class InMemoryListingRepository:
    """Stands in for ListingRepository."""

    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self._ids = itertools.count(1)

    def add(self, **row) -> dict:
        row.setdefault("id", f"L{next(self._ids)}")
        self.rows[row["id"]] = row
        return row

    async def insert(self, user_id, item_type, description, location, image_url=None):
        row = self.add(
            user_id=user_id,
            item_type=item_type.value,
            description=description,
            location=location,
            image_url=image_url,
        )
        return decode_listing(row)

    async def get_by_id(self, listing_id):
        row = self.rows.get(listing_id)
        return decode_listing(row) if row else None

    async def recent(self, limit, search=None):
        listings = [decode_listing(r) for r in self.rows.values()]
        if search:
            listings = [x for x in listings if search.lower() in x.description.lower()]
        return listings[:limit]

    async def by_author(self, user_id):
        return [decode_listing(r) for r in self.rows.values() if r["user_id"] == user_id]

    async def delete(self, listing_id, requester_id):
        row = self.rows.get(listing_id)
        if row and row["user_id"] == requester_id:
            del self.rows[listing_id]
            return 1
        return 0


@pytest.fixture
def chat_repo():
    return InMemoryChatRepository()


@pytest.fixture
def listing_repo():
    return InMemoryListingRepository()


@pytest.fixture
def hub():
    return SessionHub()


@pytest.fixture
def conversations(chat_repo, listing_repo):
    return ConversationManager(chat_repo, listing_repo)


@pytest.fixture
def stream(chat_repo, conversations, hub):
    return MessageStream(chat_repo, conversations, hub, poll_interval=0.05)


@pytest.fixture
def make_stream(chat_repo, conversations, hub):
    def _make(poll_interval: float = 0.05, surface_errors: bool = True) -> MessageStream:
        return MessageStream(
            chat_repo, conversations, hub,
            poll_interval=poll_interval, surface_errors=surface_errors,
        )
    return _make
