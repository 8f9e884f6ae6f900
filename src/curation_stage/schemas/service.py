"""Service listing Pydantic schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from curation_stage.models.moderation import ContentStatus
from curation_stage.models.service_listing import ServiceCategory


class ServiceCreate(BaseModel):
    """Schema for creating a new service listing."""

    title: str = Field(..., min_length=1, max_length=300)
    short_desc: str = Field("", max_length=500)
    content: str = Field(..., min_length=1)
    image_url: str | None = Field(None, description="Locator returned by the image upload endpoint")
    category: ServiceCategory = ServiceCategory.GENERAL
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)


class ServiceUpdate(BaseModel):
    title: str | None = None
    short_desc: str | None = None
    content: str | None = None
    image_url: str | None = None
    category: ServiceCategory | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)


class ServiceResponse(BaseModel):
    """Schema for service listing information returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    created_by: int | None
    title: str
    short_desc: str
    content: str
    image_url: str
    category: ServiceCategory
    price: Decimal | None
    status: ContentStatus
    created_at: datetime
    updated_at: datetime
