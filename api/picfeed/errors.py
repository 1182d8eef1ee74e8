"""Domain errors raised by the service layer.

Each error carries the HTTP status it maps to; `main` registers a handler
that renders them the same way FastAPI renders `HTTPException`.
"""

from __future__ import annotations

from fastapi import status


class PicfeedError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(PicfeedError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthenticated"


class UserNotFound(PicfeedError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class NotFound(PicfeedError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class NotAuthorized(PicfeedError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class ValidationError(PicfeedError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ConflictError(PicfeedError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflicting concurrent update, please retry"


class UpstreamFailure(PicfeedError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed"


class BlobNotFound(NotFound):
    default_message = "Image not found"
