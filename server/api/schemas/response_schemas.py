"""API response schemas"""
from datetime import datetime
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from models.chat import ChatMessage, ChatSession
from models.listing import ItemType, Listing
from utils.session_ids import chat_route


class TokenResponse(BaseModel):
    uid: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    uid: str
    email: str
    name: Optional[str] = None


class ListingSummary(BaseModel):
    """A listing as shown in feeds; found items never carry their image here."""
    id: str
    user_id: str
    description: str
    location: str
    item_type: ItemType
    image_url: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingSummary":
        return cls(
            id=listing.id,
            user_id=listing.user_id,
            description=listing.description,
            location=listing.location,
            item_type=listing.item_type,
            image_url=listing.list_image_url,
            timestamp=listing.timestamp,
        )


class ListingDetail(ListingSummary):
    is_owner: bool
    can_contact: bool

    @classmethod
    def for_viewer(cls, listing: Listing, viewer_uid: str) -> "ListingDetail":
        is_owner = listing.user_id == viewer_uid
        return cls(
            id=listing.id,
            user_id=listing.user_id,
            description=listing.description,
            location=listing.location,
            item_type=listing.item_type,
            image_url=listing.image_url_for(viewer_uid),
            timestamp=listing.timestamp,
            is_owner=is_owner,
            can_contact=not is_owner,
        )


class ListingCreatedResponse(BaseModel):
    id: str


class UploadResponse(BaseModel):
    url: str


class ChatSessionResponse(BaseModel):
    session_id: str
    post_id: str
    post_image_url: str
    post_description: str
    participants: Dict[str, bool]
    last_message: str
    last_message_timestamp: datetime
    route: str

    @classmethod
    def from_session(cls, session: ChatSession) -> "ChatSessionResponse":
        return cls(
            **session.model_dump(),
            route=chat_route(session.session_id),
        )


class SessionListResponse(BaseModel):
    sessions: List[ChatSessionResponse]
    error: bool = False


class MessageResponse(BaseModel):
    message_id: int
    session_id: str
    sender_id: str
    text: Optional[str] = None
    image_url: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_message(cls, message: ChatMessage) -> "MessageResponse":
        return cls(**message.model_dump())


class MessageListResponse(BaseModel):
    """Messages in insertion order; clients reverse for newest-first display."""
    messages: List[MessageResponse]


class MessageSentResponse(BaseModel):
    message_id: int


class WsOutbound(BaseModel):
    """Server → client frame on the chat feed."""

    type: str  # messages | verification.offer | verification.state | error | pong
    data: Dict[str, Any] = {}
