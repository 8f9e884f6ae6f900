# src/curation_stage/models/faq.py
"""SQLAlchemy models for FAQ entries and their ordered answers."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from curation_stage.db.session import Base
from curation_stage.db.time import utcnow
from curation_stage.models.moderation import ModeratedMixin


class FAQEntry(ModeratedMixin, Base):
    """An org-owned question; entries share one global dense ordering."""

    __tablename__ = "faq_entry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    # Dense 0..n-1 across all entries, maintained by the order compactor.
    order: Mapped[int] = mapped_column("sort_order", Integer, nullable=False, unique=True, index=True)

    answers: Mapped[list[FAQAnswer]] = relationship(
        "FAQAnswer",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="FAQAnswer.order",
    )


class FAQAnswer(Base):
    """An answer owned by exactly one FAQ entry, ordered within that entry."""

    __tablename__ = "faq_answer"
    __table_args__ = (
        Index("ux_faq_answer_faq_id_sort_order", "faq_id", "sort_order", unique=True),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    faq_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("faq_entry.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    # Dense 0..n-1 per parent entry.
    order: Mapped[int] = mapped_column("sort_order", Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    entry: Mapped[FAQEntry] = relationship("FAQEntry", back_populates="answers")
