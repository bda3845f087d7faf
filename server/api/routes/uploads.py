"""Image upload route"""
from fastapi import APIRouter, Depends, File, UploadFile
import logging

from api.errors import to_http_exception
from api.middleware.auth_middleware import get_current_user
from api.schemas.response_schemas import UploadResponse
from core.dependencies import get_cloudinary_client
from core.errors import UploadError
from integrations.cloudinary.client import CloudinaryClient
from models.user import Identity

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/image", response_model=UploadResponse)
async def upload_image(
    file: UploadFile = File(...),
    current_user: Identity = Depends(get_current_user),
    cloudinary: CloudinaryClient = Depends(get_cloudinary_client),
):
    """Upload a listing or chat photo and return its hosted URL"""
    content = await file.read()
    try:
        url = await cloudinary.upload_image(
            content,
            filename=file.filename or "upload.jpg",
            content_type=file.content_type or "application/octet-stream",
        )
    except UploadError as e:
        logger.warning(f"Upload by {current_user.uid} failed: {e.description}")
        raise to_http_exception(e)
    return UploadResponse(url=url)
