"""Dense sibling ordering for FAQ entries and FAQ answers.

Every ordered scope keeps its ``order`` values at exactly ``0..count-1``. The
compactor never commits; it writes inside the caller's unit of work so that
validation and the subsequent writes see the same sibling set. Callers hold
:meth:`OrderCompactor.hold` around that unit of work so that two writers never
read the same sibling set.

The ``(scope, sort_order)`` columns carry a unique index, so rewrites go
through negative values and never pass through a duplicate.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from curation_stage.core.errors import ValidationFailed
from curation_stage.services.locks import ScopeLocks

# Shared by every session in the process.
ORDER_LOCKS = ScopeLocks()


class OrderCompactor:
    """Maintain a dense integer ordering over one model's sibling scopes.

    Args:
        session: Session of the surrounding unit of work.
        model: ORM class with ``id`` and ``order`` attributes.
        scope_attr: Name of the column that partitions siblings (e.g.
            ``"faq_id"``), or ``None`` when all rows form one scope.
    """

    def __init__(self, session: Session, model: type[Any], scope_attr: str | None = None) -> None:
        self.session = session
        self.model = model
        self.scope_attr = scope_attr

    def scope_key(self, scope_id: int | None = None) -> str:
        table = self.model.__tablename__
        if self.scope_attr is None:
            return table
        return f"{table}-{scope_id}"

    @contextmanager
    def hold(self, scope_id: int | None = None) -> Iterator[None]:
        """Serialise ordering changes to one scope across sessions and threads."""
        with ORDER_LOCKS.hold(self.scope_key(scope_id)):
            yield

    def _scope_filter(self, scope_id: int | None) -> list[Any]:
        if self.scope_attr is None:
            return []
        return [getattr(self.model, self.scope_attr) == scope_id]

    def sibling_ids(self, scope_id: int | None = None) -> list[int]:
        """Return the ids in the scope sorted by their current order."""
        stmt = (
            select(self.model.id)
            .where(*self._scope_filter(scope_id))
            .order_by(self.model.order, self.model.id)
        )
        return list(self.session.scalars(stmt))

    def next_order(self, scope_id: int | None = None) -> int:
        """Return the order value for a sibling about to be inserted."""
        self.session.flush()
        current = self.session.scalar(
            select(func.max(self.model.order)).where(*self._scope_filter(scope_id))
        )
        return 0 if current is None else int(current) + 1

    def compact_after(self, scope_id: int | None, deleted_order: int) -> None:
        """Close the gap left by a deleted sibling.

        The deleted row must already be flushed.
        """
        self._update(
            [self.model.order > deleted_order],
            {self.model.order: -self.model.order},
            scope_id,
        )
        self._update([self.model.order < 0], {self.model.order: -self.model.order - 1}, scope_id)

    def _update(self, where: list[Any], values: dict[Any, Any], scope_id: int | None) -> None:
        self.session.execute(
            update(self.model)
            .where(*self._scope_filter(scope_id), *where)
            .values(values)
            .execution_options(synchronize_session="fetch")
        )

    def reorder(self, scope_id: int | None, requested_ids: Sequence[int]) -> None:
        """Assign ``order = index`` for every id in ``requested_ids``.

        Raises:
            ValidationFailed: If the request holds duplicates or does not name
                exactly the current siblings. Nothing is written in that case.
        """
        requested = [int(item) for item in requested_ids]
        if len(set(requested)) != len(requested):
            raise ValidationFailed("Order list contains duplicate ids")

        current = set(self.sibling_ids(scope_id))
        missing = current.difference(requested)
        unknown = set(requested).difference(current)
        if missing or unknown:
            problems = []
            if missing:
                problems.append(f"missing ids {sorted(missing)}")
            if unknown:
                problems.append(f"unknown ids {sorted(unknown)}")
            raise ValidationFailed("Order list does not match siblings: " + ", ".join(problems))

        if not requested:
            return
        self._update([], {self.model.order: -self.model.order - 1}, scope_id)
        for index, item_id in enumerate(requested):
            self._update([self.model.id == item_id], {self.model.order: index}, scope_id)

    def is_dense(self, scope_id: int | None = None) -> bool:
        """Return True when the scope's orders are exactly ``0..count-1``."""
        stmt = select(self.model.order).where(*self._scope_filter(scope_id))
        orders = sorted(self.session.scalars(stmt))
        return orders == list(range(len(orders)))
