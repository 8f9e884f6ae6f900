"""FAQ answers, the ordered sub-resource of FAQ entries.

Answers have no review state of their own. Every permission check is made
against the parent entry, and any change to the answers of a REJECTED entry
sends the entry back for review.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from curation_stage.core.errors import NotFound, ValidationFailed
from curation_stage.db.session import atomic
from curation_stage.models import FAQAnswer, FAQEntry
from curation_stage.services.ordering import OrderCompactor
from curation_stage.services.permissions import Caller, Operation, require
from curation_stage.services.workflow import FAQ_KIND, ModerationWorkflow, resubmit_if_rejected

logger = logging.getLogger(__name__)


def _clean_text(text: str | None) -> str:
    value = (text or "").strip()
    if not value:
        raise ValidationFailed("Answer text is required")
    return value


class FaqService:
    """Manage the answers of FAQ entries."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.entries = ModerationWorkflow(session, FAQ_KIND)
        self.compactor = OrderCompactor(session, FAQAnswer, "faq_id")

    def _entry(self, caller: Caller, faq_id: int, operation: Operation, *, for_update: bool = False) -> FAQEntry:
        entry = self.entries.load(faq_id, for_update=for_update)
        require(caller.role, operation, self.entries.view_of(entry, caller))
        return entry

    def _answer(self, faq_id: int, answer_id: int) -> FAQAnswer:
        answer = self.session.get(FAQAnswer, answer_id)
        if answer is None or answer.faq_id != faq_id:
            raise NotFound(f"Answer with ID {answer_id} not found")
        return answer

    def _resubmit(self, entry: FAQEntry) -> None:
        if resubmit_if_rejected(entry):
            logger.info("FAQ %s resubmitted for review after an answer change", entry.id)

    def _ordered(self, faq_id: int) -> list[FAQAnswer]:
        stmt = (
            select(FAQAnswer)
            .where(FAQAnswer.faq_id == faq_id)
            .order_by(FAQAnswer.order, FAQAnswer.id)
        )
        return list(self.session.scalars(stmt))

    def list_answers(self, caller: Caller, faq_id: int) -> list[FAQAnswer]:
        self._entry(caller, faq_id, Operation.READ)
        return self._ordered(faq_id)

    def add_answer(self, caller: Caller, faq_id: int, text: str) -> FAQAnswer:
        """Append an answer at the end of the entry's ordering."""
        answer_text = _clean_text(text)
        with self.compactor.hold(faq_id), atomic(self.session):
            entry = self._entry(caller, faq_id, Operation.UPDATE, for_update=True)
            answer = FAQAnswer(
                answer=answer_text,
                created_by=caller.user_id,
                order=self.compactor.next_order(faq_id),
            )
            entry.answers.append(answer)
            self._resubmit(entry)
            self.session.flush()

        logger.info("Answer %s added to FAQ %s by user %s", answer.id, faq_id, caller.user_id)
        return answer

    def update_answer(self, caller: Caller, faq_id: int, answer_id: int, text: str) -> FAQAnswer:
        answer_text = _clean_text(text)
        with atomic(self.session):
            entry = self._entry(caller, faq_id, Operation.UPDATE, for_update=True)
            answer = self._answer(faq_id, answer_id)
            answer.answer = answer_text
            self._resubmit(entry)
            self.session.flush()
        return answer

    def delete_answer(self, caller: Caller, faq_id: int, answer_id: int) -> None:
        """Remove an answer and close the gap in its siblings' order."""
        with self.compactor.hold(faq_id), atomic(self.session):
            entry = self._entry(caller, faq_id, Operation.DELETE, for_update=True)
            answer = self._answer(faq_id, answer_id)
            deleted_order = answer.order
            entry.answers.remove(answer)
            self.session.flush()
            self.compactor.compact_after(faq_id, deleted_order)
            self._resubmit(entry)
            self.session.flush()

        logger.info("Answer %s removed from FAQ %s by user %s", answer_id, faq_id, caller.user_id)

    def reorder_answers(self, caller: Caller, faq_id: int, ordered_ids: Sequence[int]) -> list[FAQAnswer]:
        """Apply a complete new ordering to an entry's answers."""
        with self.compactor.hold(faq_id), atomic(self.session):
            entry = self._entry(caller, faq_id, Operation.REORDER, for_update=True)
            self.compactor.reorder(faq_id, ordered_ids)
            self._resubmit(entry)
            self.session.flush()
        return self._ordered(faq_id)
