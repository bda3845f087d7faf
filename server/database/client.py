"""Process-wide Supabase client shared by the repositories."""
from typing import Optional
import logging

from supabase import Client, ClientOptions, create_client

from config.settings import settings

logger = logging.getLogger(__name__)

_supabase_client: Optional[Client] = None


def init_supabase() -> Client:
    """Connect to the store once; later calls return the same client."""
    global _supabase_client

    if _supabase_client is not None:
        return _supabase_client

    logger.info(f"Connecting to store at {settings.SUPABASE_URL}")
    _supabase_client = create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_KEY,
        options=ClientOptions(postgrest_client_timeout=settings.SUPABASE_TIMEOUT_SECONDS),
    )
    return _supabase_client


def get_supabase() -> Client:
    # Lazily connects for scripts that never ran the app lifespan
    return _supabase_client or init_supabase()
