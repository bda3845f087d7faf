"""Domain error taxonomy.

Repositories and integrations raise these; the API layer maps them to
HTTP responses. Nothing below the route layer raises ``HTTPException``.
"""
from typing import Optional


class FindrError(Exception):
    """Base class for all domain errors."""


class StoreError(FindrError):
    """A read or write against the document/realtime store failed."""


class DecodeError(StoreError):
    """A stored record is missing required fields or has the wrong shape."""

    def __init__(self, record_type: str, detail: str, record_id: Optional[str] = None):
        self.record_type = record_type
        self.record_id = record_id
        self.detail = detail
        where = f" {record_id}" if record_id else ""
        super().__init__(f"Could not decode {record_type}{where}: {detail}")


class UploadError(FindrError):
    """The image host rejected or failed an upload."""

    def __init__(self, description: str):
        self.description = description
        super().__init__(description)


class Unauthorized(FindrError):
    """The store's rules rejected the operation for this identity."""


class NotFound(FindrError):
    """The referenced record does not exist."""


class InvalidArgument(FindrError, ValueError):
    """Caller supplied bad input."""


class InvalidParticipants(InvalidArgument):
    """A chat session needs two distinct participants."""
