"""service category and price

Revision ID: a7e0c52d19f4
Revises: 8d41f3b6a2c9
Create Date: 2026-10-26 15:21:08.447630

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a7e0c52d19f4"
down_revision: Union[str, Sequence[str], None] = "8d41f3b6a2c9"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_CATEGORY = sa.Enum(
    "GENERAL",
    "CONSULTING",
    "ASSESSMENT",
    "THERAPY",
    "WORKSHOP",
    "TRAINING",
    "OTHER",
    name="servicecategory",
    native_enum=False,
    length=16,
)


def upgrade() -> None:
    """Add the catalogue category and optional price to service listings."""
    op.add_column(
        "service_listing",
        sa.Column("category", _CATEGORY, nullable=False, server_default="GENERAL"),
    )
    op.add_column("service_listing", sa.Column("price", sa.Numeric(10, 2), nullable=True))
    op.create_index("ix_service_listing_category", "service_listing", ["category"])


def downgrade() -> None:
    op.drop_index("ix_service_listing_category", table_name="service_listing")
    with op.batch_alter_table("service_listing") as batch:
        batch.drop_column("price")
        batch.drop_column("category")
