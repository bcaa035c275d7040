"""Form lifecycle: validation of the question set and owner-scoped writes.

Every mutation matches on form id and owner in a single statement, so a form
owned by someone else is indistinguishable from a form that does not exist.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFound, ValidationError
from app.models.common import utcnow
from app.models.form import QUESTION_TYPE_MULTIPLE_CHOICE, QUESTION_TYPES, Form
from app.models.response import FormResponse

_LOG = logging.getLogger("app.forms")

MIN_QUESTIONS = 3
MAX_QUESTIONS = 5
MIN_CHOICE_OPTIONS = 2
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500
FORM_NOT_FOUND = "Form not found"


def parse_form_id(raw: UUID | str | None) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw or "").strip())
    except ValueError as exc:
        raise NotFound(FORM_NOT_FOUND) from exc


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def clean_title(raw: str | None) -> str:
    title = str(raw or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def clean_description(raw: str | None) -> str | None:
    description = str(raw or "").strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
    return description or None


def clean_questions(raw: Iterable[Any] | None) -> list[dict]:
    """Validate a question list and return it in storage shape.

    Raises ValidationError unless there are 3 to 5 questions, each with a
    unique id, non-empty text and a known type, and every multiple-choice
    question declares at least two non-empty options.
    """
    items = list(raw or [])
    if not MIN_QUESTIONS <= len(items) <= MAX_QUESTIONS:
        raise ValidationError(f"A form must have between {MIN_QUESTIONS} and {MAX_QUESTIONS} questions")

    cleaned: list[dict] = []
    seen_ids: set[str] = set()
    for position, item in enumerate(items, start=1):
        question_id = str(_field(item, "id") or "").strip()
        if not question_id:
            raise ValidationError(f"Question {position} must have an id")
        if question_id in seen_ids:
            raise ValidationError(f"Question id {question_id!r} is used more than once")
        seen_ids.add(question_id)

        text = str(_field(item, "question") or "").strip()
        if not text:
            raise ValidationError(f"Question {position} must have text")

        qtype = str(_field(item, "type") or "").strip()
        if qtype not in QUESTION_TYPES:
            raise ValidationError(f"Question {position} has unsupported type {qtype!r}")

        options: list[str] = []
        if qtype == QUESTION_TYPE_MULTIPLE_CHOICE:
            options = [str(opt).strip() for opt in (_field(item, "options") or [])]
            if len(options) < MIN_CHOICE_OPTIONS or not all(options):
                raise ValidationError(
                    f'Multiple-choice question "{text}" needs at least {MIN_CHOICE_OPTIONS} non-empty options'
                )
            if len(set(options)) != len(options):
                raise ValidationError(f'Multiple-choice question "{text}" has duplicate options')

        required = _field(item, "required", True)
        cleaned.append(
            {
                "id": question_id,
                "type": qtype,
                "question": text,
                "options": options,
                "required": True if required is None else bool(required),
            }
        )
    return cleaned


def create_form(
    db: Session,
    *,
    owner_id: UUID,
    title: str | None,
    description: str | None,
    questions: Iterable[Any] | None,
) -> Form:
    if not str(title or "").strip() or questions is None:
        raise ValidationError("Title and questions are required")
    form = Form(
        title=clean_title(title),
        description=clean_description(description),
        questions=clean_questions(questions),
        owner_user_id=owner_id,
        is_active=True,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    _LOG.info("form created id=%s owner=%s", form.id, owner_id)
    return form


def get_form(db: Session, form_id: UUID | str) -> Form:
    form = db.get(Form, parse_form_id(form_id))
    if form is None:
        raise NotFound(FORM_NOT_FOUND)
    return form


def get_owned_form(db: Session, form_id: UUID | str, owner_id: UUID) -> Form:
    form = (
        db.query(Form)
        .filter(Form.id == parse_form_id(form_id), Form.owner_user_id == owner_id)
        .first()
    )
    if form is None:
        raise NotFound(FORM_NOT_FOUND)
    return form


def list_forms(db: Session, owner_id: UUID) -> list[Form]:
    return (
        db.query(Form)
        .filter(Form.owner_user_id == owner_id)
        .order_by(Form.created_at.asc(), Form.id.asc())
        .all()
    )


def update_form(db: Session, form_id: UUID | str, owner_id: UUID, changes: dict[str, Any]) -> Form:
    """Apply the provided subset of title/description/questions/is_active."""
    fid = parse_form_id(form_id)
    values: dict[str, Any] = {"updated_at": utcnow()}
    if "title" in changes:
        values["title"] = clean_title(changes["title"])
    if "description" in changes:
        values["description"] = clean_description(changes["description"])
    if "questions" in changes:
        values["questions"] = clean_questions(changes["questions"])
    if changes.get("is_active") is not None:
        values["is_active"] = bool(changes["is_active"])

    result = db.execute(
        update(Form)
        .where(Form.id == fid, Form.owner_user_id == owner_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFound(FORM_NOT_FOUND)
    db.commit()

    form = db.get(Form, fid, populate_existing=True)
    if form is None:
        # Deleted between the update and the read.
        raise NotFound(FORM_NOT_FOUND)
    _LOG.info("form updated id=%s fields=%s", fid, sorted(k for k in values if k != "updated_at"))
    return form


def delete_form(db: Session, form_id: UUID | str, owner_id: UUID) -> None:
    fid = parse_form_id(form_id)
    result = db.execute(
        delete(Form)
        .where(Form.id == fid, Form.owner_user_id == owner_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFound(FORM_NOT_FOUND)

    removed_responses = 0
    if settings.DELETE_RESPONSES_WITH_FORM:
        removed_responses = db.execute(
            delete(FormResponse)
            .where(FormResponse.form_id == fid)
            .execution_options(synchronize_session=False)
        ).rowcount
    db.commit()
    _LOG.info("form deleted id=%s responses_removed=%s", fid, removed_responses)
