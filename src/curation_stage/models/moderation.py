# src/curation_stage/models/moderation.py
"""Moderation status shared by every content type."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from curation_stage.db.time import utcnow


class ContentStatus(str, enum.Enum):
    """Review state of a moderated entity."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ModeratedMixin:
    """Columns carried by every top-level moderated entity."""

    # New records always enter the review queue.
    status: Mapped[ContentStatus] = mapped_column(
        Enum(ContentStatus, native_enum=False, length=16),
        nullable=False,
        default=ContentStatus.PENDING,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
