"""unique faq order

Revision ID: 8d41f3b6a2c9
Revises: 5c2e91a0d7b4
Create Date: 2026-10-26 14:03:57.902114

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8d41f3b6a2c9"
down_revision: Union[str, Sequence[str], None] = "5c2e91a0d7b4"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Reject duplicate positions within an ordered FAQ scope."""
    op.drop_index("ix_faq_entry_sort_order", table_name="faq_entry")
    op.create_index("ix_faq_entry_sort_order", "faq_entry", ["sort_order"], unique=True)
    op.create_index(
        "ux_faq_answer_faq_id_sort_order",
        "faq_answer",
        ["faq_id", "sort_order"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("ux_faq_answer_faq_id_sort_order", table_name="faq_answer")
    op.drop_index("ix_faq_entry_sort_order", table_name="faq_entry")
    op.create_index("ix_faq_entry_sort_order", "faq_entry", ["sort_order"])
