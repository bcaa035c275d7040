from typing import Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel, UtcDatetime


class QuestionIn(CamelModel):
    id: str
    type: str
    question: str
    options: List[str] = Field(default_factory=list)
    required: bool = True


class FormCreate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[QuestionIn]] = None


class FormUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    questions: Optional[List[QuestionIn]] = None
    is_active: Optional[bool] = None


class QuestionRead(CamelModel):
    id: str
    type: str
    question: str
    options: List[str] = Field(default_factory=list)
    required: bool = True


class FormRead(CamelModel):
    id: UUID
    title: str
    description: Optional[str] = None
    questions: List[QuestionRead]
    owner_user_id: UUID
    is_active: bool
    created_at: UtcDatetime
    updated_at: UtcDatetime


class FormOut(CamelModel):
    message: str
    form: FormRead


class FormEnvelope(CamelModel):
    form: FormRead


class FormListOut(CamelModel):
    forms: List[FormRead]


class AnswerIn(CamelModel):
    question_id: str
    answer: str


class ResponseSubmit(CamelModel):
    # Shape is checked after the form lookup so that a missing or closed
    # form is reported before a malformed answer list.
    answers: Any = None


class AnswerRead(CamelModel):
    question_id: str
    answer: str


class ResponseRead(CamelModel):
    id: UUID
    form_id: UUID
    answers: List[AnswerRead]
    submitted_at: UtcDatetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ChoiceQuestionSummary(CamelModel):
    question_id: str
    question: str
    type: Literal["multiple-choice"]
    total_answers: int
    option_counts: Dict[str, int]


class TextQuestionSummary(CamelModel):
    question_id: str
    question: str
    type: Literal["text"]
    total_answers: int
    recent_answers: List[str]


class ResponseSummaryRead(CamelModel):
    total_responses: int
    average_responses_per_day: float
    question_summaries: List[Union[ChoiceQuestionSummary, TextQuestionSummary]]


class FormResponsesOut(CamelModel):
    form: FormRead
    responses: List[ResponseRead]
    summary: ResponseSummaryRead
