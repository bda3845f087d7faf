"""Authentication service."""
import bcrypt
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple
from database.repositories.user_repo import UserRepository
from core.auth_state import AuthEvent, AuthStateChange, AuthStateChannel
from models.user import Identity
from utils.jwt_utils import generate_access_token, generate_refresh_token, generate_reset_code
from config.settings import settings
import logging

logger = logging.getLogger(__name__)

ResetSender = Callable[[str, str], None]


def log_reset_sender(email: str, code: str) -> None:
    """Stand-in delivery for reset codes until an email channel exists."""
    logger.info(f"Password reset code for {email}: {code}")


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


class AuthService:
    """Handle sign-up, sign-in, sign-out and password resets."""

    def __init__(
        self,
        user_repo: UserRepository,
        auth_state: Optional[AuthStateChannel] = None,
        reset_sender: ResetSender = log_reset_sender,
    ):
        self.user_repo = user_repo
        self.auth_state = auth_state
        self.reset_sender = reset_sender

    def _publish(self, event: AuthEvent, uid: str) -> None:
        if self.auth_state is not None:
            self.auth_state.publish(AuthStateChange(event=event, uid=uid))

    async def sign_up(
        self,
        name: str,
        email: str,
        password: str,
    ) -> Tuple[Identity, str, str]:
        """
        Register a new user.

        Returns: (identity, access_token, refresh_token)
        """
        email = email.strip()
        existing_user = await self.user_repo.get_by_email(email)
        if existing_user:
            raise ValueError("User with this email already exists")

        user = await self.user_repo.create_user(
            email=email,
            password_hash=_hash_password(password),
            name=name.strip() or None,
        )

        access_token, refresh_token = await self.generate_tokens(user.uid)

        logger.info(f"User registered: {email}")
        self._publish(AuthEvent.SIGNED_IN, user.uid)
        return user.to_identity(), access_token, refresh_token

    async def sign_in(
        self,
        email: str,
        password: str,
    ) -> Tuple[Identity, str, str]:
        """
        Sign a user in.

        Returns: (identity, access_token, refresh_token)
        """
        user = await self.user_repo.get_by_email(email.strip())
        if not user:
            raise ValueError("Invalid email or password")

        if not user.is_active:
            raise ValueError("Account is disabled")

        if not user.password_hash or not bcrypt.checkpw(
            password.encode("utf-8"), user.password_hash.encode("utf-8")
        ):
            raise ValueError("Invalid email or password")

        access_token, refresh_token = await self.generate_tokens(user.uid)
        await self.user_repo.update_last_login(user.uid)

        logger.info(f"User signed in: {user.email}")
        self._publish(AuthEvent.SIGNED_IN, user.uid)
        return user.to_identity(), access_token, refresh_token

    async def generate_tokens(self, uid: str) -> Tuple[str, str]:
        """Generate access + refresh tokens and persist the refresh session."""
        access_token = generate_access_token(uid)
        refresh_token = generate_refresh_token()

        await self.user_repo.create_session(
            uid=uid,
            refresh_token=refresh_token,
            expires_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
        )

        return access_token, refresh_token

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Generate new access token from refresh token.

        Returns: new access_token
        """
        session = await self.user_repo.get_session_by_token(refresh_token)
        if not session:
            raise ValueError("Invalid refresh token")

        expires_at = datetime.fromisoformat(session["expires_at"].replace("Z", "+00:00"))
        if datetime.now(timezone.utc) > expires_at:
            raise ValueError("Refresh token expired")

        return generate_access_token(session["uid"])

    async def sign_out(self, refresh_token: str) -> None:
        """End the refresh session behind ``refresh_token``."""
        session = await self.user_repo.delete_session(refresh_token)
        if session:
            logger.info(f"User signed out: {session['uid']}")
            self._publish(AuthEvent.SIGNED_OUT, session["uid"])

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def send_password_reset(self, email: str) -> None:
        """Issue a single-use reset code and hand it to the reset sender."""
        email = email.strip()
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise ValueError("No account found for this email")

        code = generate_reset_code()
        await self.user_repo.create_reset_code(
            uid=user.uid,
            code=code,
            expires_minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES,
        )
        self.reset_sender(email, code)
        logger.info(f"Password reset issued for user {user.uid}")

    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        """Redeem a reset code, set the new password and sign out everywhere.

        Raises ValueError if the code is invalid, expired, or already used.
        """
        row = await self.user_repo.consume_reset_code(code.strip())
        if not row:
            raise ValueError("Invalid or expired reset code")

        uid = row["uid"]
        if not await self.user_repo.update_password_hash(uid, _hash_password(new_password)):
            raise ValueError("Failed to update password. Please try again.")

        await self.user_repo.delete_sessions_for_user(uid)
        logger.info(f"Password reset completed for user {uid}")
        self._publish(AuthEvent.SIGNED_OUT, uid)
