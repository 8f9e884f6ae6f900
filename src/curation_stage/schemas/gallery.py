"""Gallery-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from curation_stage.models.moderation import ContentStatus


class GalleryCreate(BaseModel):
    """Schema for creating a new gallery."""

    title: str = Field(..., min_length=1, max_length=300)


class GalleryUpdate(BaseModel):
    title: str | None = None


class GalleryImageResponse(BaseModel):
    """Schema for a single gallery image."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    gallery_id: int
    image_url: str
    is_thumbnail: bool
    created_at: datetime


class GalleryResponse(BaseModel):
    """Schema for gallery information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int | None
    title: str
    status: ContentStatus
    thumbnail_url: str | None = None
    created_at: datetime
    updated_at: datetime
    images: list[GalleryImageResponse] = []
