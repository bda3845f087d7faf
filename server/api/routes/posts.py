"""Listing (post) API routes"""
from fastapi import APIRouter, HTTPException, Depends, Query, status
from typing import List, Optional
import logging

from api.errors import to_http_exception
from api.middleware.auth_middleware import get_current_user
from api.schemas.request_schemas import CreateListingRequest
from api.schemas.response_schemas import ListingCreatedResponse, ListingDetail, ListingSummary
from core.dependencies import get_listing_service
from core.errors import FindrError
from models.user import Identity
from services.listing_service import ListingService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[ListingSummary])
async def recent_listings(
    search: Optional[str] = Query(None, max_length=100),
    limit: Optional[int] = Query(None, ge=1, le=50),
    current_user: Identity = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    """Home feed: newest listings first"""
    try:
        feed = await listings.recent_feed(search=search, limit=limit)
        return [ListingSummary.from_listing(listing) for listing in feed]
    except FindrError as e:
        raise to_http_exception(e)


@router.post("", response_model=ListingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_listing(
    request: CreateListingRequest,
    current_user: Identity = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    """Post a lost or found item"""
    try:
        listing_id = await listings.create_listing(
            author_uid=current_user.uid,
            item_type=request.item_type,
            description=request.description,
            location=request.location,
            image_url=request.image_url,
        )
        return ListingCreatedResponse(id=listing_id)
    except FindrError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Create listing error: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Post failed")


@router.get("/mine", response_model=List[ListingSummary])
async def my_listings(
    current_user: Identity = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    """Listings posted by the current user"""
    try:
        mine = await listings.list_mine(current_user.uid)
        return [ListingSummary.from_listing(listing) for listing in mine]
    except FindrError as e:
        raise to_http_exception(e)


@router.get("/{listing_id}", response_model=ListingDetail)
async def listing_detail(
    listing_id: str,
    current_user: Identity = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    """Detail view of a single listing"""
    try:
        listing = await listings.get_listing(listing_id)
        return ListingDetail.for_viewer(listing, current_user.uid)
    except FindrError as e:
        raise to_http_exception(e)


@router.delete("/{listing_id}")
async def delete_listing(
    listing_id: str,
    current_user: Identity = Depends(get_current_user),
    listings: ListingService = Depends(get_listing_service),
):
    """Delete one of the current user's listings"""
    try:
        await listings.delete(listing_id, current_user.uid)
        return {"success": True}
    except FindrError as e:
        raise to_http_exception(e)
