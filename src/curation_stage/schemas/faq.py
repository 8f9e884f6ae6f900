"""FAQ entry and answer Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from curation_stage.models.moderation import ContentStatus


class FAQCreate(BaseModel):
    """Schema for creating a new FAQ entry."""

    question: str = Field(..., min_length=1)


class FAQUpdate(BaseModel):
    question: str | None = None


class FAQAnswerCreate(BaseModel):
    """Schema for adding or editing an answer."""

    answer: str = Field(..., min_length=1)


class FAQAnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    faq_id: int
    answer: str
    order: int
    created_by: int | None
    created_at: datetime
    updated_at: datetime


class FAQResponse(BaseModel):
    """Schema for FAQ entries returned by the API, answers included."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    question: str
    order: int
    status: ContentStatus
    created_by: int | None
    created_at: datetime
    updated_at: datetime
    answers: list[FAQAnswerResponse] = []

    @field_validator("answers")
    @classmethod
    def _sort_answers(cls, answers: list[FAQAnswerResponse]) -> list[FAQAnswerResponse]:
        return sorted(answers, key=lambda item: (item.order, item.id))
