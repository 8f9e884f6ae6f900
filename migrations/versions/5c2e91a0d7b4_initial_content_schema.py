"""initial content schema

Revision ID: 5c2e91a0d7b4
Revises:
Create Date: 2026-10-19 09:12:41.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e91a0d7b4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_STATUS = sa.Enum(
    "PENDING",
    "APPROVED",
    "REJECTED",
    name="contentstatus",
    native_enum=False,
    length=16,
)


def _moderated_columns() -> list[sa.Column]:
    return [
        sa.Column("status", _STATUS, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create the moderated content tables."""
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "role",
            sa.Enum(
                "USER_SELF",
                "USER_PARENT",
                "ADMIN",
                "SUPERADMIN",
                name="role",
                native_enum=False,
                length=16,
            ),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "article",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        *_moderated_columns(),
        sa.ForeignKeyConstraint(["author_id"], ["user_account.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_article_author_id", "article", ["author_id"])
    op.create_index("ix_article_status", "article", ["status"])

    op.create_table(
        "service_listing",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("short_desc", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        *_moderated_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_service_listing_status", "service_listing", ["status"])

    op.create_table(
        "faq_entry",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        *_moderated_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_faq_entry_sort_order", "faq_entry", ["sort_order"])
    op.create_index("ix_faq_entry_status", "faq_entry", ["status"])

    op.create_table(
        "faq_answer",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("faq_id", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["faq_id"], ["faq_entry.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_faq_answer_faq_id", "faq_answer", ["faq_id"])

    op.create_table(
        "gallery",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("author_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        *_moderated_columns(),
        sa.ForeignKeyConstraint(["author_id"], ["user_account.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gallery_author_id", "gallery", ["author_id"])
    op.create_index("ix_gallery_status", "gallery", ["status"])

    op.create_table(
        "gallery_image",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("gallery_id", sa.Integer(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("is_thumbnail", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["gallery_id"], ["gallery.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_gallery_image_gallery_id", "gallery_image", ["gallery_id"])


def downgrade() -> None:
    """Drop the moderated content tables."""
    op.drop_index("ix_gallery_image_gallery_id", table_name="gallery_image")
    op.drop_table("gallery_image")
    op.drop_index("ix_gallery_status", table_name="gallery")
    op.drop_index("ix_gallery_author_id", table_name="gallery")
    op.drop_table("gallery")
    op.drop_index("ix_faq_answer_faq_id", table_name="faq_answer")
    op.drop_table("faq_answer")
    op.drop_index("ix_faq_entry_status", table_name="faq_entry")
    op.drop_index("ix_faq_entry_sort_order", table_name="faq_entry")
    op.drop_table("faq_entry")
    op.drop_index("ix_service_listing_status", table_name="service_listing")
    op.drop_table("service_listing")
    op.drop_index("ix_article_status", table_name="article")
    op.drop_index("ix_article_author_id", table_name="article")
    op.drop_table("article")
    op.drop_table("user_account")
