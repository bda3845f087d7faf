"""
Shared dependencies for the application.

Long-lived objects (the image host HTTP client, the in-process session hub
and the auth state channel) are created once at startup. Repositories and
services are thin wrappers around the Supabase client and are built per
request by the ``get_*`` factories, which routes consume via ``Depends``.
"""
import logging
from typing import Optional

from config.settings import settings
from core.auth_state import AuthStateChannel
from core.subscriptions import SessionHub
from database.client import get_supabase
from database.repositories.chat_repo import ChatRepository
from database.repositories.listing_repo import ListingRepository
from database.repositories.user_repo import UserRepository
from integrations.cloudinary.client import CloudinaryClient
from services.auth_service import AuthService
from services.conversation_service import ConversationManager
from services.listing_service import ListingService
from services.message_stream import MessageStream

logger = logging.getLogger(__name__)

# Module-level singletons, initialized once via init_dependencies()
_cloudinary_client: Optional[CloudinaryClient] = None
_session_hub: Optional[SessionHub] = None
_auth_state: Optional[AuthStateChannel] = None


def init_dependencies() -> None:
    """Initialize all shared singletons. Called once at application startup."""
    global _cloudinary_client, _session_hub, _auth_state

    logger.info("Initializing shared dependencies...")

    _cloudinary_client = CloudinaryClient()
    if not _cloudinary_client.is_configured():
        logger.warning("CLOUDINARY_CLOUD_NAME not set; image uploads will fail")

    _session_hub = SessionHub()
    _auth_state = AuthStateChannel()

    logger.info("Dependencies initialized")


async def shutdown_dependencies() -> None:
    """Clean up resources on shutdown."""
    global _cloudinary_client
    if _cloudinary_client:
        await _cloudinary_client.close()
        _cloudinary_client = None
        logger.info("CloudinaryClient closed")


def get_cloudinary_client() -> CloudinaryClient:
    if _cloudinary_client is None:
        raise RuntimeError("Dependencies not initialized. Call init_dependencies() first.")
    return _cloudinary_client


def get_session_hub() -> SessionHub:
    if _session_hub is None:
        raise RuntimeError("Dependencies not initialized. Call init_dependencies() first.")
    return _session_hub


def get_auth_state() -> AuthStateChannel:
    if _auth_state is None:
        raise RuntimeError("Dependencies not initialized. Call init_dependencies() first.")
    return _auth_state


def get_auth_service() -> AuthService:
    return AuthService(UserRepository(get_supabase()), auth_state=get_auth_state())


def get_listing_service() -> ListingService:
    return ListingService(
        ListingRepository(get_supabase()),
        feed_limit=settings.HOME_FEED_LIMIT,
    )


def get_conversation_manager() -> ConversationManager:
    supabase = get_supabase()
    return ConversationManager(ChatRepository(supabase), ListingRepository(supabase))


def get_message_stream() -> MessageStream:
    """
    Build a MessageStream on the shared session hub.

    The hub is what lets an append in one request wake the live feeds
    held open by other connections in this process.
    """
    supabase = get_supabase()
    chat_repo = ChatRepository(supabase)
    return MessageStream(
        chat_repo,
        ConversationManager(chat_repo),
        get_session_hub(),
        poll_interval=settings.CHAT_POLL_INTERVAL_SECONDS,
        surface_errors=settings.SURFACE_SUBSCRIPTION_ERRORS,
    )
