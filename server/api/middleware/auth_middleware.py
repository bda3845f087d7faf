"""Authentication dependencies: resolve a bearer token to an Identity."""
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import logging

from utils.jwt_utils import decode_access_token
from database.client import get_supabase
from database.repositories.user_repo import UserRepository
from models.user import Identity

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def resolve_identity(token: str) -> Optional[Identity]:
    """Return the active user behind ``token``, or None."""
    payload = decode_access_token(token)
    if not payload or not payload.get("uid"):
        return None

    user_repo = UserRepository(get_supabase())
    user = await user_repo.get_by_uid(payload["uid"])
    if not user or not user.is_active:
        return None
    return user.to_identity()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Identity:
    """
    Validate JWT and return the current user's identity.

    Raises HTTPException if token is invalid, expired, or the account is
    gone or disabled.
    """
    payload = decode_access_token(credentials.credentials)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = payload.get('uid')
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    user_repo = UserRepository(get_supabase())
    user = await user_repo.get_by_uid(uid)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled"
        )

    return user.to_identity()


async def get_websocket_user(token: Optional[str] = Query(None)) -> Optional[Identity]:
    """WebSocket variant: browsers cannot set headers, so the token rides in the query."""
    if not token:
        return None
    return await resolve_identity(token)
