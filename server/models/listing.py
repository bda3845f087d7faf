"""Listing (lost/found post) data models"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ValidationError, field_validator

from core.errors import DecodeError

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
DEFAULT_DESCRIPTION = "No description"


class ItemType(str, Enum):
    LOST = "Lost"
    FOUND = "Found"


class Listing(BaseModel):
    """A post in the ``posts`` table.

    Missing or null optional columns fall back to the defaults below; a row
    without ``id`` or ``user_id`` is rejected.
    """
    id: str
    user_id: str
    description: str = DEFAULT_DESCRIPTION
    location: str = ""
    item_type: ItemType = ItemType.LOST
    image_url: Optional[str] = None
    timestamp: datetime = EPOCH

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        if v is None or v == "":
            raise ValueError("identifier is required")
        return str(v)

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, v: Any) -> Any:
        return DEFAULT_DESCRIPTION if v in (None, "") else v

    @field_validator("location", mode="before")
    @classmethod
    def _default_location(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("item_type", mode="before")
    @classmethod
    def _default_item_type(cls, v: Any) -> Any:
        return ItemType.LOST if v in (None, "") else v

    @field_validator("image_url", mode="before")
    @classmethod
    def _blank_image_is_none(cls, v: Any) -> Any:
        return v or None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _default_timestamp(cls, v: Any) -> Any:
        return EPOCH if v is None else v

    @property
    def list_image_url(self) -> Optional[str]:
        """Image safe to show in list views; found items keep theirs private."""
        if self.item_type == ItemType.FOUND:
            return None
        return self.image_url

    def image_url_for(self, viewer_uid: Optional[str]) -> Optional[str]:
        """Image the detail view may show to ``viewer_uid``."""
        if self.item_type == ItemType.FOUND and viewer_uid != self.user_id:
            return None
        return self.image_url


def decode_listing(row: dict) -> Listing:
    try:
        return Listing.model_validate(row)
    except ValidationError as e:
        raise DecodeError("listing", str(e), record_id=str(row.get("id") or "") or None) from e
