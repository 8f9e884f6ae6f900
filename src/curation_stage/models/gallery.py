# src/curation_stage/models/gallery.py
"""SQLAlchemy models for galleries and their images."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from curation_stage.db.session import Base
from curation_stage.db.time import utcnow
from curation_stage.models.moderation import ModeratedMixin


class Gallery(ModeratedMixin, Base):
    """A per-author collection of images with exactly one thumbnail when non-empty."""

    __tablename__ = "gallery"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)

    images: Mapped[list[GalleryImage]] = relationship(
        "GalleryImage",
        back_populates="gallery",
        cascade="all, delete-orphan",
        order_by="GalleryImage.id",
    )

    @property
    def thumbnail_url(self) -> str | None:
        """Return the locator of the thumbnail image, if the gallery has one."""
        for image in self.images:
            if image.is_thumbnail:
                return image.image_url
        return None


class GalleryImage(Base):
    """A durable image asset owned by one gallery."""

    __tablename__ = "gallery_image"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gallery_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("gallery.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    is_thumbnail: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    gallery: Mapped[Gallery] = relationship("Gallery", back_populates="images")
