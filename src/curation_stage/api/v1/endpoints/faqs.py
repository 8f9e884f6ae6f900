"""FAQ endpoints for the Curation API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from sqlalchemy.orm import Session

from curation_stage.api.v1.dependencies import CurrentCallerDep, SessionDep
from curation_stage.models import FAQAnswer, FAQEntry
from curation_stage.models.moderation import ContentStatus
from curation_stage.schemas.common import OrderRequest, StatusChange
from curation_stage.schemas.faq import (
    FAQAnswerCreate,
    FAQAnswerResponse,
    FAQCreate,
    FAQResponse,
    FAQUpdate,
)
from curation_stage.services.faq import FaqService
from curation_stage.services.workflow import FAQ_KIND, ModerationWorkflow

router = APIRouter(prefix="/faqs", tags=["faqs"])


def _workflow(db: Session) -> ModerationWorkflow:
    return ModerationWorkflow(db, FAQ_KIND)


@router.get("/public", response_model=list[FAQResponse])
async def list_public_faqs(db: SessionDep) -> list[FAQEntry]:
    """List approved FAQ entries in display order. No authentication required."""
    return _workflow(db).list_public()


@router.get("/", response_model=list[FAQResponse])
async def list_faqs(
    caller: CurrentCallerDep,
    db: SessionDep,
    status_filter: Annotated[ContentStatus | None, Query(alias="status")] = None,
) -> list[FAQEntry]:
    return _workflow(db).list_visible(caller, status=status_filter)


@router.post("/", response_model=FAQResponse, status_code=status.HTTP_201_CREATED)
async def create_faq(payload: FAQCreate, caller: CurrentCallerDep, db: SessionDep) -> FAQEntry:
    """Create a FAQ entry at the end of the list."""
    return _workflow(db).create(caller, payload.model_dump())


@router.put("/order", response_model=list[FAQResponse])
async def reorder_faqs(payload: OrderRequest, caller: CurrentCallerDep, db: SessionDep) -> list[FAQEntry]:
    """Replace the display order of every FAQ entry.

    ``ordered_ids`` must name each existing entry exactly once.
    """
    return _workflow(db).reorder(caller, payload.ordered_ids)


@router.get("/{faq_id}", response_model=FAQResponse)
async def get_faq(faq_id: int, caller: CurrentCallerDep, db: SessionDep) -> FAQEntry:
    return _workflow(db).get(caller, faq_id)


@router.patch("/{faq_id}", response_model=FAQResponse)
async def update_faq(
    faq_id: int,
    payload: FAQUpdate,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> FAQEntry:
    return _workflow(db).update(caller, faq_id, payload.model_dump(exclude_unset=True))


@router.delete("/{faq_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_faq(faq_id: int, caller: CurrentCallerDep, db: SessionDep) -> None:
    """Delete a FAQ entry with all of its answers and close the gap in the order."""
    _workflow(db).delete(caller, faq_id)


@router.patch("/{faq_id}/status", response_model=FAQResponse)
async def change_faq_status(
    faq_id: int,
    payload: StatusChange,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> FAQEntry:
    return _workflow(db).change_status(caller, faq_id, payload.status)


@router.get("/{faq_id}/answers", response_model=list[FAQAnswerResponse])
async def list_answers(faq_id: int, caller: CurrentCallerDep, db: SessionDep) -> list[FAQAnswer]:
    return FaqService(db).list_answers(caller, faq_id)


@router.post(
    "/{faq_id}/answers",
    response_model=FAQAnswerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_answer(
    faq_id: int,
    payload: FAQAnswerCreate,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> FAQAnswer:
    """Append an answer to a FAQ entry."""
    return FaqService(db).add_answer(caller, faq_id, payload.answer)


@router.put("/{faq_id}/answers/order", response_model=list[FAQAnswerResponse])
async def reorder_answers(
    faq_id: int,
    payload: OrderRequest,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> list[FAQAnswer]:
    return FaqService(db).reorder_answers(caller, faq_id, payload.ordered_ids)


@router.patch("/{faq_id}/answers/{answer_id}", response_model=FAQAnswerResponse)
async def update_answer(
    faq_id: int,
    answer_id: int,
    payload: FAQAnswerCreate,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> FAQAnswer:
    return FaqService(db).update_answer(caller, faq_id, answer_id, payload.answer)


@router.delete("/{faq_id}/answers/{answer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_answer(
    faq_id: int,
    answer_id: int,
    caller: CurrentCallerDep,
    db: SessionDep,
) -> None:
    FaqService(db).delete_answer(caller, faq_id, answer_id)
