"""Chat session and message data models"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from core.errors import DecodeError

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
IMAGE_PREVIEW_TEXT = "[Image]"


class ListingRef(BaseModel):
    """Listing fields copied onto a chat session."""
    id: str
    image_url: Optional[str] = None
    description: str = ""


class ChatSession(BaseModel):
    """Session metadata row in the ``chats`` table"""
    session_id: str
    post_id: str
    post_image_url: str = ""
    post_description: str = ""
    participants: Dict[str, bool] = {}
    last_message: str = ""
    last_message_timestamp: datetime = EPOCH

    @field_validator("post_image_url", "post_description", "last_message", mode="before")
    @classmethod
    def _none_is_blank(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("participants", mode="before")
    @classmethod
    def _participants_as_presence_map(cls, v: Any) -> Any:
        # Older rows stored an ordered list of uids
        if v is None:
            return {}
        if isinstance(v, (list, tuple, set)):
            return {str(uid): True for uid in v}
        return v

    @field_validator("last_message_timestamp", mode="before")
    @classmethod
    def _default_timestamp(cls, v: Any) -> Any:
        return EPOCH if v is None else v

    def has_participant(self, uid: str) -> bool:
        return bool(self.participants.get(uid))

    def other_participant(self, uid: str) -> Optional[str]:
        for other, present in self.participants.items():
            if present and other != uid:
                return other
        return None


class ChatMessage(BaseModel):
    """Row in the ``chat_messages`` table; ``message_id`` is the insertion order key."""
    message_id: int
    session_id: str
    sender_id: str
    text: Optional[str] = None
    image_url: Optional[str] = None
    timestamp: datetime

    @property
    def preview_text(self) -> str:
        return self.text if self.text else IMAGE_PREVIEW_TEXT


class SessionList(BaseModel):
    """Sessions for one user; ``error`` is set when the store could not be read."""
    sessions: List[ChatSession] = []
    error: bool = False


def decode_session(row: dict) -> ChatSession:
    try:
        return ChatSession.model_validate(row)
    except ValidationError as e:
        raise DecodeError("chat session", str(e), record_id=row.get("session_id")) from e


def decode_message(row: dict) -> ChatMessage:
    try:
        return ChatMessage.model_validate(row)
    except ValidationError as e:
        message_id = row.get("message_id")
        raise DecodeError(
            "chat message", str(e), record_id=str(message_id) if message_id is not None else None
        ) from e
