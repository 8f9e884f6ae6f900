"""Error kinds raised by the moderation, ordering and asset services.

Every error carries the HTTP status the request layer answers with, so the
API only needs one exception handler.
"""

from __future__ import annotations

from fastapi import status


class ContentError(Exception):
    """Base class for all domain errors surfaced to callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class PermissionDenied(ContentError):
    """The caller's role, ownership or the entity status forbids the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ContentError):
    """An entity, sub-resource or asset does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailed(ContentError):
    """Input was rejected before any mutation was applied."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class UnsupportedMediaType(ContentError):
    """An upload declared a MIME type outside the image allow-list."""

    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


class TranscodeFailure(ContentError):
    """The transcoder failed or timed out while promoting a staged file."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StorageTransient(ContentError):
    """A file could not be deleted yet, usually because another process holds it open."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class CascadeAssetCleanupFailed(ContentError):
    """Deleting the assets of a removed record failed; logged, never raised to callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "CascadeAssetCleanupFailed",
    "ContentError",
    "NotFound",
    "PermissionDenied",
    "StorageTransient",
    "TranscodeFailure",
    "UnsupportedMediaType",
    "ValidationFailed",
]
