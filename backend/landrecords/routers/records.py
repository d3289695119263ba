from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..columns import PLOT_COLUMNS, PRIMARY_KEY
from ..db import get_db
from ..errors import NotFound, ValidationFailure
from ..models import search_records, update_record
from ..querygen import writable_fields
from ..record_service import get_record_detail
from ..schemas import SearchRequest
from ..storage import ObjectStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["records"])


@router.post("/search", response_model=list[dict])
def search(payload: SearchRequest, db: Session = Depends(get_db)) -> list[dict]:
    return search_records(db, payload.model_dump())


@router.get("/record/{record_id}", response_model=dict)
def record_detail(record_id: int, db: Session = Depends(get_db), store: ObjectStore = Depends(get_store)) -> dict:
    return get_record_detail(db, store, record_id)


def _apply_update(db: Session, record_id: int, fields: Dict[str, Any]) -> dict:
    updated = update_record(db, record_id, fields)
    if updated is None:
        raise NotFound("Record not found")
    logger.info("Record %s updated (%d fields)", record_id, len(writable_fields(fields)))
    return updated


@router.put("/record/{record_id}", response_model=dict)
def replace_record(record_id: int, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)) -> dict:
    """Full-row update: every editable column is written, omitted ones become NULL."""
    if not writable_fields(payload):
        raise ValidationFailure("No fields to update")
    fields = {col: payload.get(col) for col in PLOT_COLUMNS}
    return _apply_update(db, record_id, fields)


@router.patch("/record/{record_id}", response_model=dict)
def patch_record(record_id: int, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)) -> dict:
    return _apply_update(db, record_id, payload)


@router.post("/record/update", response_model=dict)
def update_record_by_body(payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)) -> dict:
    """Partial update where the record id travels in the body as ``ID``."""
    raw_id = payload.get(PRIMARY_KEY)
    try:
        record_id = int(raw_id)
    except (TypeError, ValueError):
        raise ValidationFailure("ID is required")
    return _apply_update(db, record_id, payload)
