"""Translate domain errors into HTTP responses."""
from fastapi import HTTPException, status

from core.errors import (
    FindrError,
    InvalidArgument,
    NotFound,
    StoreError,
    Unauthorized,
    UploadError,
)


def to_http_exception(error: FindrError) -> HTTPException:
    if isinstance(error, InvalidArgument):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, Unauthorized):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(error))
    if isinstance(error, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, UploadError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Upload Failed: {error.description}",
        )
    if isinstance(error, StoreError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong. Please try again.",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Request failed")
