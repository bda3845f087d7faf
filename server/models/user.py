"""User data models"""
from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


class Identity(BaseModel):
    """The signed-in user, resolved from a bearer token and passed explicitly."""
    uid: str
    email: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


class User(BaseModel):
    """Row in the ``users`` table"""
    uid: str
    email: EmailStr
    name: Optional[str] = None
    password_hash: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

    def to_identity(self) -> Identity:
        return Identity(uid=self.uid, email=self.email, name=self.name)
