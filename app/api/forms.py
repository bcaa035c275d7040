from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.deps import get_current_user_id
from app.db.session import get_db
from app.schemas.common import MessageOut
from app.schemas.forms import (
    FormCreate,
    FormEnvelope,
    FormListOut,
    FormOut,
    FormRead,
    FormResponsesOut,
    FormUpdate,
    ResponseRead,
    ResponseSubmit,
    ResponseSummaryRead,
)
from app.services.forms import create_form, delete_form, get_form, list_forms, update_form
from app.services.response_stats import export_filename, iter_csv, summarize
from app.services.responses import (
    client_ip_from_headers,
    load_owned_form_with_responses,
    submit_response,
    user_agent_from_headers,
)

router = APIRouter()


@router.post("", response_model=FormOut, status_code=201)
def create(payload: FormCreate, owner_id: UUID = Depends(get_current_user_id), db: Session = Depends(get_db)):
    form = create_form(
        db,
        owner_id=owner_id,
        title=payload.title,
        description=payload.description,
        questions=payload.questions,
    )
    return FormOut(message="Form created successfully", form=FormRead.model_validate(form))


@router.get("", response_model=FormListOut)
def list_owned(owner_id: UUID = Depends(get_current_user_id), db: Session = Depends(get_db)):
    return FormListOut(forms=[FormRead.model_validate(f) for f in list_forms(db, owner_id)])


@router.get("/{form_id}", response_model=FormEnvelope)
def read(form_id: str, db: Session = Depends(get_db)):
    return FormEnvelope(form=FormRead.model_validate(get_form(db, form_id)))


@router.put("/{form_id}", response_model=FormOut)
def update(
    form_id: str,
    payload: FormUpdate,
    owner_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    form = update_form(db, form_id, owner_id, changes)
    return FormOut(message="Form updated successfully", form=FormRead.model_validate(form))


@router.delete("/{form_id}", response_model=MessageOut)
def remove(form_id: str, owner_id: UUID = Depends(get_current_user_id), db: Session = Depends(get_db)):
    delete_form(db, form_id, owner_id)
    return MessageOut(message="Form deleted successfully")


@router.post("/{form_id}/responses", response_model=MessageOut, status_code=201)
def submit(form_id: str, payload: ResponseSubmit, request: Request, db: Session = Depends(get_db)):
    submit_response(
        db,
        form_id,
        payload.answers,
        ip_address=client_ip_from_headers(request.headers),
        user_agent=user_agent_from_headers(request.headers),
    )
    return MessageOut(message="Response submitted successfully")


@router.get("/{form_id}/responses", response_model=FormResponsesOut)
def responses(form_id: str, owner_id: UUID = Depends(get_current_user_id), db: Session = Depends(get_db)):
    form, rows = load_owned_form_with_responses(db, form_id, owner_id)
    summary = summarize(form.questions, rows)
    return FormResponsesOut(
        form=FormRead.model_validate(form),
        responses=[ResponseRead.model_validate(r) for r in rows],
        summary=ResponseSummaryRead.model_validate(summary),
    )


@router.get("/{form_id}/export")
def export(form_id: str, owner_id: UUID = Depends(get_current_user_id), db: Session = Depends(get_db)):
    form, rows = load_owned_form_with_responses(db, form_id, owner_id)
    headers = {"Content-Disposition": f'attachment; filename="{export_filename(form.title)}"'}
    return StreamingResponse(iter_csv(list(form.questions), rows), media_type="text/csv", headers=headers)
