"""Data access helpers for moderated content."""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from curation_stage.models.moderation import ContentStatus

__all__ = ["ContentRepository"]

ModelT = TypeVar("ModelT")


class ContentRepository(Generic[ModelT]):
    """Thin wrapper around database access for one moderated entity type."""

    def __init__(self, session: Session, model: type[ModelT]) -> None:
        """Initialize the repository with a SQLAlchemy session and mapped class."""
        self.session = session
        self.model = model

    def get_by_id(self, entity_id: int, *, for_update: bool = False) -> ModelT | None:
        """Return an entity by identifier.

        ``for_update`` takes a row lock on backends that support it so that
        concurrent writers to the same entity serialise.
        """
        stmt = select(self.model).where(self.model.id == entity_id)  # type: ignore[attr-defined]
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).first()

    def find(
        self,
        *,
        status: ContentStatus | None = None,
        statuses: Sequence[ContentStatus] | None = None,
        visible_to_owner: tuple[str, int] | None = None,
        owner: tuple[str, int] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: Sequence[Any] = (),
    ) -> list[ModelT]:
        """Return entities matching the given filters.

        Args:
            status: Only return entities in exactly this state.
            statuses: Only return entities in one of these states.
            visible_to_owner: ``(owner column, user id)``; widens ``statuses``
                with everything that user owns.
            owner: ``(owner column, user id)``; only that user's entities.
            filters: Column name to value; ``None`` values are ignored.
            order_by: Ordering clauses.
        """
        clauses: list[ColumnElement[bool]] = []
        status_column = self.model.status  # type: ignore[attr-defined]
        if statuses is not None:
            status_clause = status_column.in_(list(statuses))
            if visible_to_owner is not None:
                column, user_id = visible_to_owner
                status_clause = or_(status_clause, getattr(self.model, column) == user_id)
            clauses.append(status_clause)
        if status is not None:
            clauses.append(status_column == status)
        if owner is not None:
            column, user_id = owner
            clauses.append(getattr(self.model, column) == user_id)
        for name, value in (filters or {}).items():
            if value is not None:
                clauses.append(getattr(self.model, name) == value)

        stmt = select(self.model).where(*clauses).order_by(*order_by)
        return list(self.session.scalars(stmt))

    def add(self, **fields: Any) -> ModelT:
        """Insert a new entity and return the flushed ORM instance."""
        entity = self.model(**fields)
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        """Delete an entity; ORM cascades remove its sub-resources."""
        self.session.delete(entity)
        self.session.flush()
