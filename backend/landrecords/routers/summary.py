from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..columns import GroupColumn
from ..db import get_db
from ..metrics import counter_inc
from ..schemas import SummaryRowOut
from ..summary_service import summarize

router = APIRouter(prefix="/summary", tags=["summary"])


def _report(db: Session, group: GroupColumn, node: Optional[str], sector: Optional[str]) -> list[SummaryRowOut]:
    counter_inc("summary_requests_total", {"group": group.value})
    return [SummaryRowOut(**row.as_json()) for row in summarize(db, group, node, sector)]


@router.get("", response_model=list[SummaryRowOut])
def plot_use_summary(node: Optional[str] = None, sector: Optional[str] = None, db: Session = Depends(get_db)):
    return _report(db, GroupColumn.PLOT_USE, node, sector)


@router.get("/department", response_model=list[SummaryRowOut])
def department_summary(node: Optional[str] = None, sector: Optional[str] = None, db: Session = Depends(get_db)):
    return _report(db, GroupColumn.DEPARTMENT_REMARK, node, sector)
