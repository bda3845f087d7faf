"""Listing repository for the ``posts`` table."""
from asyncio import to_thread
from datetime import datetime, timezone
from typing import List, Optional
import logging
import re

from postgrest.exceptions import APIError
from supabase import Client

from core.errors import StoreError, Unauthorized
from models.listing import Listing, decode_listing, ItemType

logger = logging.getLogger(__name__)

# Characters with meaning inside a PostgREST or() filter
_FILTER_UNSAFE_RE = re.compile(r"[,()%*\\\"]")

# Postgres insufficient_privilege, raised by row-level security
_PERMISSION_DENIED_CODES = {"42501"}


def _decode_rows(rows: Optional[list]) -> List[Listing]:
    listings = []
    for row in rows or []:
        try:
            listings.append(decode_listing(row))
        except StoreError as e:
            logger.warning(f"Skipping undecodable listing: {e}")
    return listings


class ListingRepository:
    """Read and write listing rows."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def insert(
        self,
        user_id: str,
        item_type: ItemType,
        description: str,
        location: str,
        image_url: Optional[str] = None,
    ) -> Listing:
        """Insert a listing; ``timestamp`` is set here and ``id`` by the store."""
        data = {
            "user_id": user_id,
            "description": description,
            "item_type": item_type.value,
            "location": location,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        # Lost items may be posted without a photo
        if image_url is not None:
            data["image_url"] = image_url

        try:
            response = await to_thread(
                lambda: self.supabase.table("posts").insert(data).execute()
            )
        except Exception as e:
            logger.error(f"Error inserting listing: {e}")
            raise StoreError("Could not save listing") from e

        if not response.data:
            raise StoreError("Listing insert returned no row")
        return decode_listing(response.data[0])

    async def get_by_id(self, listing_id: str) -> Optional[Listing]:
        """Get a listing by id. Returns None if not found."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("posts")
                .select("*")
                .eq("id", listing_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error getting listing {listing_id}: {e}")
            raise StoreError("Could not load listing") from e

        return decode_listing(response.data[0]) if response.data else None

    async def recent(self, limit: int, search: Optional[str] = None) -> List[Listing]:
        """Newest listings first, optionally filtered by a search term."""
        term = _FILTER_UNSAFE_RE.sub(" ", search or "").strip()

        def _query():
            q = self.supabase.table("posts").select("*")
            if term:
                q = q.or_(f"description.ilike.%{term}%,location.ilike.%{term}%")
            return q.order("timestamp", desc=True).limit(limit).execute()

        try:
            response = await to_thread(_query)
        except Exception as e:
            logger.error(f"Error listing recent posts: {e}")
            raise StoreError("Could not load listings") from e

        return _decode_rows(response.data)

    async def by_author(self, user_id: str) -> List[Listing]:
        """All listings posted by ``user_id``, newest first."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("posts")
                .select("*")
                .eq("user_id", user_id)
                .order("timestamp", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error listing posts for {user_id}: {e}")
            raise StoreError("Could not load listings") from e

        return _decode_rows(response.data)

    async def delete(self, listing_id: str, requester_id: str) -> int:
        """Delete a listing on behalf of ``requester_id``.

        The delete is scoped to the requester; returns the number of rows
        removed. A permission rejection from the store raises Unauthorized.
        """
        try:
            response = await to_thread(
                lambda: self.supabase.table("posts")
                .delete()
                .eq("id", listing_id)
                .eq("user_id", requester_id)
                .execute()
            )
        except APIError as e:
            if e.code in _PERMISSION_DENIED_CODES:
                logger.warning(f"Store rejected delete of {listing_id} by {requester_id}")
                raise Unauthorized("Not allowed to delete this listing") from e
            logger.error(f"Error deleting listing {listing_id}: {e}")
            raise StoreError("Could not delete listing") from e
        except Exception as e:
            logger.error(f"Error deleting listing {listing_id}: {e}")
            raise StoreError("Could not delete listing") from e

        return len(response.data or [])
