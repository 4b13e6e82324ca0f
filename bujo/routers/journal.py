"""
Days router.

GET  /api/days/{day}                     daily agenda
GET  /api/days/{day}/document            editable document for the day
POST /api/days/{day}/document/validate   per-line errors, no writes
PUT  /api/days/{day}/document            apply an edited document
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bujo.db.base import get_db
from bujo.schemas.api import (
    AgendaResponse,
    ApplyRequest,
    ApplyResponse,
    ValidateRequest,
    ValidateResponse,
)
from bujo.services.editable_view import apply_changes, get_editable_document, validate_document
from bujo.services.entries import get_daily_agenda

router = APIRouter(prefix="/api/days", tags=["days"])


@router.get(
    "/{day}",
    response_model=AgendaResponse,
    summary="Entries, context and overdue tasks for a day",
)
def day_agenda(day: date, db: Session = Depends(get_db)):
    """Overdue tasks are only listed when `day` is today."""
    return get_daily_agenda(db, day)


@router.get("/{day}/document", summary="Editable text document for a day")
def day_document(
    day: date,
    with_ids: bool = Query(default=False, description="Prefix every line with `[entity-id]`."),
    db: Session = Depends(get_db),
):
    return {"date": day.isoformat(), "document": get_editable_document(db, day, with_ids=with_ids)}


@router.post(
    "/{day}/document/validate",
    response_model=ValidateResponse,
    summary="Check a document without saving it",
)
def validate_day_document(day: date, payload: ValidateRequest):
    errors = validate_document(payload.document)
    return ValidateResponse(valid=not errors, errors=errors)


@router.put(
    "/{day}/document",
    response_model=ApplyResponse,
    summary="Apply an edited document",
    responses={
        200: {"description": "Changes applied; counts per operation."},
        409: {"description": "An edit breaks an entry state rule."},
        422: {"description": "The document has invalid lines; nothing was saved."},
    },
)
def apply_day_document(day: date, payload: ApplyRequest, db: Session = Depends(get_db)):
    """
    Reconcile the stored day with the document. Lines removed from the
    document are only deleted when their entity id is in `pending_deletes`.
    All changes land in one transaction or none do.
    """
    result = apply_changes(db, day, payload.document, payload.pending_deletes)
    return ApplyResponse(**result.to_dict())
