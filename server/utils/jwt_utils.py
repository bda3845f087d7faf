"""JWT token utilities"""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from config.settings import settings
import secrets
import logging

logger = logging.getLogger(__name__)


def generate_access_token(uid: str) -> str:
    """Generate JWT access token for a user identity"""
    now = datetime.now(timezone.utc)
    payload = {
        'uid': uid,
        'exp': now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        'iat': now,
        'type': 'access'
    }

    return jwt.encode(
        payload,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )


def generate_refresh_token() -> str:
    """Generate secure refresh token"""
    return secrets.token_urlsafe(32)


def generate_reset_code() -> str:
    """Generate a single-use password reset code"""
    return secrets.token_urlsafe(24)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate access token"""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )

        if payload.get('type') != 'access':
            return None

        return payload

    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        return None
