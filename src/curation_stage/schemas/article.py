"""Article-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from curation_stage.models.moderation import ContentStatus


class ArticleCreate(BaseModel):
    """Schema for creating a new article."""

    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    image_url: str | None = Field(None, description="Locator returned by the image upload endpoint")


class ArticleUpdate(BaseModel):
    """Partial update; omitted or empty fields are left unchanged."""

    title: str | None = None
    content: str | None = None
    image_url: str | None = None


class ArticleResponse(BaseModel):
    """Schema for article information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int | None
    title: str
    content: str
    image_url: str
    status: ContentStatus
    created_at: datetime
    updated_at: datetime
