"""Health check routes"""
from asyncio import to_thread
from fastapi import APIRouter
import logging

from database.client import get_supabase

logger = logging.getLogger(__name__)
router = APIRouter()

_TABLES = ("users", "posts", "chats", "chat_messages")


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "findr-api"}


@router.get("/health/db")
async def database_health():
    """Check the store is reachable and every table the app reads exists"""
    try:
        supabase = get_supabase()
    except Exception as e:
        logger.error(f"Store connection failed: {e}")
        return {
            "status": "error",
            "database": {"connected": False, "error": str(e)},
            "message": "Store connection failed. Check SUPABASE_URL and SUPABASE_KEY in .env",
        }

    tables = {}
    for table in _TABLES:
        try:
            await to_thread(lambda: supabase.table(table).select("*").limit(1).execute())
            tables[table] = True
        except Exception as e:
            tables[table] = False
            logger.error(f"Table {table} not readable: {e}")

    schema_ready = all(tables.values())
    return {
        "status": "ok" if schema_ready else "degraded",
        "database": {"connected": True, "schema_ready": schema_ready, "tables": tables},
        "missing": [t for t, ok in tables.items() if not ok],
    }
