# src/curation_stage/models/user.py
"""SQLAlchemy model for accounts that act on moderated content."""

from __future__ import annotations

import enum

from sqlalchemy import Enum, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from curation_stage.db.session import Base


class Role(str, enum.Enum):
    """The four account roles known to the system."""

    USER_SELF = "USER_SELF"
    USER_PARENT = "USER_PARENT"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"


class User(Base):
    """An account whose identity and role are resolved upstream of the services."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, native_enum=False, length=16),
        nullable=False,
        default=Role.USER_SELF,
    )
