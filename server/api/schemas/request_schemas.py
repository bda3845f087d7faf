"""API request schemas"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Any, Dict, Optional
import re

from models.listing import ItemType


def _check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", v):
        raise ValueError("Password must contain at least one digit")
    return v


# Auth schemas
class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=256)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirmRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=128)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)


# Listing schemas
class CreateListingRequest(BaseModel):
    item_type: ItemType
    description: str = Field(..., min_length=1, max_length=2000)
    location: str = Field(..., min_length=1, max_length=256)
    image_url: Optional[str] = Field(None, max_length=2048)


# Chat schemas
class ConnectRequest(BaseModel):
    post_id: str = Field(..., min_length=1)


class SendMessageRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=5000)
    image_url: Optional[str] = Field(None, max_length=2048)


class WsInbound(BaseModel):
    """Client → server frame on the chat feed."""

    type: str  # message.send | verification.share | verification.dismiss | ping
    data: Dict[str, Any] = {}
