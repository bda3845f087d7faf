"""User repository for database operations."""
from asyncio import to_thread
from typing import Optional
from datetime import datetime, timedelta, timezone
from supabase import Client
import logging

from core.errors import StoreError
from models.user import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Handle user, refresh-session and password-reset database operations."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def create_user(
        self,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
    ) -> User:
        """Create a new user. The store assigns ``uid``."""
        try:
            data = {
                "email": email,
                "name": name,
                "password_hash": password_hash,
                "is_active": True,
            }
            response = await to_thread(
                lambda: self.supabase.table("users").insert(data).execute()
            )
        except Exception as e:
            logger.error(f"Error creating user: {e}")
            raise StoreError("Could not create user") from e

        if not response.data:
            raise StoreError("User insert returned no row")
        return User.model_validate(response.data[0])

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("users")
                .select("*")
                .eq("email", email)
                .execute()
            )
            return User.model_validate(response.data[0]) if response.data else None
        except Exception as e:
            logger.error(f"Error getting user by email: {e}")
            return None

    async def get_by_uid(self, uid: str) -> Optional[User]:
        """Get user by uid."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("users")
                .select("*")
                .eq("uid", uid)
                .execute()
            )
            return User.model_validate(response.data[0]) if response.data else None
        except Exception as e:
            logger.error(f"Error getting user by uid: {e}")
            return None

    async def update_last_login(self, uid: str):
        """Update user's last login timestamp."""
        try:
            await to_thread(
                lambda: self.supabase.table("users")
                .update({"last_login": datetime.now(timezone.utc).isoformat()})
                .eq("uid", uid)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error updating last login: {e}")

    async def update_password_hash(self, uid: str, password_hash: str) -> bool:
        """Replace a user's password hash."""
        try:
            await to_thread(
                lambda: self.supabase.table("users")
                .update({"password_hash": password_hash})
                .eq("uid", uid)
                .execute()
            )
            return True
        except Exception as e:
            logger.error(f"Error updating password: {e}")
            return False

    # ------------------------------------------------------------------
    # Refresh sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        uid: str,
        refresh_token: str,
        expires_days: int = 30,
    ) -> dict:
        """Create a new refresh session."""
        try:
            expires_at = datetime.now(timezone.utc) + timedelta(days=expires_days)

            response = await to_thread(
                lambda: self.supabase.table("user_sessions")
                .insert(
                    {
                        "uid": uid,
                        "refresh_token": refresh_token,
                        "expires_at": expires_at.isoformat(),
                    }
                )
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error creating session: {e}")
            raise StoreError("Could not create session") from e

    async def get_session_by_token(self, refresh_token: str) -> Optional[dict]:
        """Get session by refresh token."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("user_sessions")
                .select("*")
                .eq("refresh_token", refresh_token)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error getting session: {e}")
            return None

    async def delete_session(self, refresh_token: str) -> Optional[dict]:
        """Delete a session. Returns the deleted row, if any."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("user_sessions")
                .delete()
                .eq("refresh_token", refresh_token)
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error deleting session: {e}")
            return None

    async def delete_sessions_for_user(self, uid: str):
        """Sign a user out everywhere."""
        try:
            await to_thread(
                lambda: self.supabase.table("user_sessions")
                .delete()
                .eq("uid", uid)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error deleting sessions for user: {e}")

    # ------------------------------------------------------------------
    # Password reset codes
    # ------------------------------------------------------------------

    async def create_reset_code(
        self,
        uid: str,
        code: str,
        expires_minutes: int = 30,
    ) -> Optional[dict]:
        """Store a new reset code, invalidating any earlier unconsumed ones."""
        try:
            await to_thread(
                lambda: self.supabase.table("password_reset_codes")
                .update({"consumed": True})
                .eq("uid", uid)
                .eq("consumed", False)
                .execute()
            )

            expires_at = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
            response = await to_thread(
                lambda: self.supabase.table("password_reset_codes")
                .insert({
                    "uid": uid,
                    "code": code,
                    "expires_at": expires_at.isoformat(),
                })
                .execute()
            )
            return response.data[0] if response.data else None
        except Exception as e:
            logger.error(f"Error creating reset code: {e}")
            raise StoreError("Could not create reset code") from e

    async def consume_reset_code(self, code: str) -> Optional[dict]:
        """Atomically consume a reset code.

        UPDATE ... WHERE consumed=FALSE only hands the row to the first
        caller. Returns None if the code is missing, expired, or used.
        """
        try:
            resp = await to_thread(
                lambda: self.supabase.table("password_reset_codes")
                .update({"consumed": True})
                .eq("code", code)
                .eq("consumed", False)
                .gte("expires_at", datetime.now(timezone.utc).isoformat())
                .execute()
            )
            if not resp.data:
                return None
            return resp.data[0]
        except Exception as e:
            logger.error(f"Error consuming reset code: {e}")
            return None
