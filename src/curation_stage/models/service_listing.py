# src/curation_stage/models/service_listing.py
"""SQLAlchemy model for organisation service listings."""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import Enum, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column

from curation_stage.db.session import Base
from curation_stage.models.moderation import ModeratedMixin


class ServiceCategory(str, enum.Enum):
    """Catalogue sections a service listing can be filed under."""

    GENERAL = "GENERAL"
    CONSULTING = "CONSULTING"
    ASSESSMENT = "ASSESSMENT"
    THERAPY = "THERAPY"
    WORKSHOP = "WORKSHOP"
    TRAINING = "TRAINING"
    OTHER = "OTHER"


class ServiceListing(ModeratedMixin, Base):
    """An org-owned service description; any author may maintain it until approved."""

    __tablename__ = "service_listing"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Informational only; listings are not restricted to their creator.
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    short_desc: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ServiceCategory] = mapped_column(
        Enum(ServiceCategory, native_enum=False, length=16),
        nullable=False,
        default=ServiceCategory.GENERAL,
        index=True,
    )
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
