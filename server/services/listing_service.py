"""Listing lifecycle: post, browse, and delete lost/found items."""
from typing import List, Optional
import logging

from core.errors import InvalidArgument, NotFound, Unauthorized
from database.repositories.listing_repo import ListingRepository
from models.listing import ItemType, Listing

logger = logging.getLogger(__name__)


class ListingService:
    """Handle listing operations for a signed-in user."""

    def __init__(self, listing_repo: ListingRepository, feed_limit: int = 10):
        self.listing_repo = listing_repo
        self.feed_limit = feed_limit

    async def create_listing(
        self,
        author_uid: str,
        item_type: ItemType,
        description: str,
        location: str,
        image_url: Optional[str] = None,
    ) -> str:
        """Post a new listing. Returns the store-assigned id."""
        description = (description or "").strip()
        location = (location or "").strip()
        if not description:
            raise InvalidArgument("Description is required")
        if not location:
            raise InvalidArgument("Location is required")

        listing = await self.listing_repo.insert(
            user_id=author_uid,
            item_type=item_type,
            description=description,
            location=location,
            image_url=image_url or None,
        )
        logger.info(f"Listing {listing.id} posted by {author_uid} ({item_type.value})")
        return listing.id

    async def recent_feed(self, search: Optional[str] = None, limit: Optional[int] = None) -> List[Listing]:
        return await self.listing_repo.recent(limit or self.feed_limit, search=search)

    async def get_listing(self, listing_id: str) -> Listing:
        listing = await self.listing_repo.get_by_id(listing_id)
        if listing is None:
            raise NotFound("Listing not found")
        return listing

    async def list_mine(self, author_uid: str) -> List[Listing]:
        return await self.listing_repo.by_author(author_uid)

    async def delete(self, listing_id: str, requester_uid: str) -> None:
        """
        Delete a listing on behalf of ``requester_uid``.

        The store decides who may delete; a rejection surfaces as
        Unauthorized, a missing listing as NotFound.
        """
        if not listing_id:
            raise InvalidArgument("Listing id is required")

        deleted = await self.listing_repo.delete(listing_id, requester_uid)
        if deleted:
            logger.info(f"Listing {listing_id} deleted by {requester_uid}")
            return

        # Nothing matched the requester-scoped delete: tell the two cases apart
        if await self.listing_repo.get_by_id(listing_id) is None:
            raise NotFound("Listing not found")
        logger.warning(f"User {requester_uid} may not delete listing {listing_id}")
        raise Unauthorized("Not allowed to delete this listing")
