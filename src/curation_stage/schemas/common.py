"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, Field

from curation_stage.models.moderation import ContentStatus


class StatusChange(BaseModel):
    """Body of a review decision."""

    status: ContentStatus = Field(..., description="New review state.")


class OrderRequest(BaseModel):
    """A complete ordering of one sibling scope, first item first."""

    ordered_ids: list[int] = Field(..., description="Every sibling id, in the desired order.")


class ImageUploadResponse(BaseModel):
    """Locator of a freshly promoted image."""

    image_url: str
