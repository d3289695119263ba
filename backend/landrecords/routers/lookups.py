from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import list_distinct

router = APIRouter(tags=["lookups"])

# Dropdown sources for the node > sector > block > plot pickers.
# Every parent filter is optional; omitting one widens the list.


@router.get("/nodes", response_model=list[str])
def list_nodes(db: Session = Depends(get_db)) -> list[str]:
    return list_distinct(db, "node")


@router.get("/sectors", response_model=list[str])
def list_sectors(node: Optional[str] = None, db: Session = Depends(get_db)) -> list[str]:
    return list_distinct(db, "sector", {"node": node})


@router.get("/blocks", response_model=list[str])
def list_blocks(node: Optional[str] = None, sector: Optional[str] = None, db: Session = Depends(get_db)) -> list[str]:
    return list_distinct(db, "block", {"node": node, "sector": sector})


@router.get("/plots", response_model=list[str])
def list_plots(
    node: Optional[str] = None,
    sector: Optional[str] = None,
    block: Optional[str] = None,
    db: Session = Depends(get_db),
) -> list[str]:
    return list_distinct(db, "plot", {"node": node, "sector": sector, "block": block})
