"""Cloudinary image host client (unsigned uploads)."""
from typing import Optional
import httpx
import logging

from config.settings import settings
from core.errors import UploadError

logger = logging.getLogger(__name__)


class CloudinaryClient:
    """Upload images with an unsigned preset and hand back their secure URL."""

    UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        upload_preset: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ):
        self.cloud_name = cloud_name or settings.CLOUDINARY_CLOUD_NAME
        self.upload_preset = upload_preset or settings.CLOUDINARY_UPLOAD_PRESET
        self.client = httpx.AsyncClient(
            timeout=timeout_s or settings.CLOUDINARY_TIMEOUT_SECONDS
        )

    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.upload_preset)

    async def upload_image(
        self,
        content: bytes,
        filename: str = "upload.jpg",
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload an image.

        Returns:
            The ``secure_url`` Cloudinary issued for the image.

        Raises:
            UploadError with a human-readable description on any failure.
        """
        if not self.is_configured():
            raise UploadError("Image uploads are not configured")
        if not content:
            raise UploadError("Empty file")

        url = self.UPLOAD_URL.format(cloud_name=self.cloud_name)
        logger.debug(f"Upload started: {filename} ({len(content)} bytes)")

        try:
            response = await self.client.post(
                url,
                data={"upload_preset": self.upload_preset},
                files={"file": (filename, content, content_type)},
            )
        except httpx.TimeoutException:
            logger.error("Image upload timed out")
            raise UploadError("Upload timed out")
        except httpx.HTTPError as e:
            logger.error(f"Image upload transport error: {e}")
            raise UploadError(f"Upload error: {e}")

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if response.status_code >= 400:
            error = result.get("error")
            if isinstance(error, dict):
                error = error.get("message")
            description = (error if isinstance(error, str) else None) or response.reason_phrase
            logger.error(f"Image upload rejected ({response.status_code}): {description}")
            raise UploadError(f"Upload error: {description}")

        secure_url = result.get("secure_url")
        if not secure_url:
            logger.error("Image upload response had no secure_url")
            raise UploadError("Upload failed.")

        logger.info(f"Image uploaded: {secure_url}")
        return secure_url

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
