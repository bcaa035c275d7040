from __future__ import annotations

import logging
from typing import Any, List, Mapping
from uuid import UUID

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import FormInactive, ValidationError
from app.models.response import FormResponse
from app.schemas.forms import AnswerIn
from app.services.forms import get_form, get_owned_form

_LOG = logging.getLogger("app.responses")

UNKNOWN_CLIENT = "unknown"

_answers_adapter = TypeAdapter(List[AnswerIn])


def client_ip_from_headers(headers: Mapping[str, str]) -> str:
    for header in ("x-forwarded-for", "x-real-ip"):
        value = str(headers.get(header) or "").strip()
        if value:
            return value
    return UNKNOWN_CLIENT


def user_agent_from_headers(headers: Mapping[str, str]) -> str:
    return str(headers.get("user-agent") or "").strip() or UNKNOWN_CLIENT


def _parse_answers(raw: Any) -> list[AnswerIn]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("Answers are required")
    try:
        return _answers_adapter.validate_python(raw)
    except SchemaValidationError as exc:
        raise ValidationError("Each answer needs a questionId and an answer") from exc


def submit_response(
    db: Session,
    form_id: UUID | str,
    raw_answers: Any,
    *,
    ip_address: str,
    user_agent: str,
) -> FormResponse:
    form = get_form(db, form_id)
    if not form.is_active:
        raise FormInactive()

    answers = _parse_answers(raw_answers)
    answered_ids = {a.question_id for a in answers}
    # Presence of an answer satisfies a required question, even when empty.
    for question in form.questions:
        if question.get("required") and question.get("id") not in answered_ids:
            raise ValidationError(f'Question "{question.get("question")}" is required')

    if settings.REJECT_UNKNOWN_QUESTION_IDS:
        known_ids = {q.get("id") for q in form.questions}
        unknown = sorted(answered_ids - known_ids)
        if unknown:
            raise ValidationError(f"Unknown question ids: {', '.join(unknown)}")

    row = FormResponse(
        form_id=form.id,
        answers=[{"question_id": a.question_id, "answer": a.answer} for a in answers],
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    _LOG.info("response stored id=%s form=%s answers=%s", row.id, form.id, len(answers))
    return row


def list_responses(db: Session, form_id: UUID) -> list[FormResponse]:
    """Responses of a form, newest first."""
    return (
        db.query(FormResponse)
        .filter(FormResponse.form_id == form_id)
        .order_by(FormResponse.submitted_at.desc(), FormResponse.id.desc())
        .all()
    )


def load_owned_form_with_responses(db: Session, form_id: UUID | str, owner_id: UUID):
    form = get_owned_form(db, form_id, owner_id)
    return form, list_responses(db, form.id)
