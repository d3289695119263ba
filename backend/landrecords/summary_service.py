"""Grouped area breakdowns over the plot table.

Area and additional-plot counts are stored as free text ("₹1,234.50", "12 nos").
Values are reduced to their digits and decimal points and summed as Decimal;
floats appear only when a row is serialised.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from .models import fetch_summary_source

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "Unknown"

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)
_ZERO = Decimal(0)


@dataclass
class SummaryRow:
    category: str
    area: Decimal
    additional_count: Decimal
    percent: Decimal

    def as_json(self) -> dict:
        return {
            "category": self.category,
            "area": float(self.area),
            "additionalCount": float(self.additional_count),
            "percent": float(self.percent),
        }


def extract_number(value: Any) -> Optional[Decimal]:
    """Digits and decimal points of ``value`` as a Decimal, or None when nothing usable remains."""
    if value is None:
        return None
    digits = _NON_NUMERIC_RE.sub("", str(value))
    if not digits:
        return None
    try:
        return Decimal(digits)
    except InvalidOperation:
        # e.g. "1.2.3" from a dotted reference number
        logger.debug("Ignoring non-numeric value %r", value)
        return None


def _category(value: Any) -> str:
    if value is None:
        return UNKNOWN_CATEGORY
    label = str(value)
    return label if label.strip() else UNKNOWN_CATEGORY


def _add(acc: Optional[Decimal], value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None:
        return acc
    return value if acc is None else acc + value


def percent_of(area: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return _ZERO
    return (area / total * _HUNDRED).quantize(_CENT, rounding=ROUND_HALF_UP)


def summarize_rows(rows: Iterable[Mapping[str, Any]]) -> List[SummaryRow]:
    """Aggregate ``{category, area, additional_count}`` rows into sorted summary rows.

    Groups whose summed area is missing or not above zero are dropped before
    percentages are taken, so the surviving percentages add up to 100.
    """
    areas: Dict[str, Optional[Decimal]] = {}
    counts: Dict[str, Optional[Decimal]] = {}
    for row in rows:
        cat = _category(row.get("category"))
        areas[cat] = _add(areas.get(cat), extract_number(row.get("area")))
        counts[cat] = _add(counts.get(cat), extract_number(row.get("additional_count")))

    kept = {cat: area for cat, area in areas.items() if area is not None and area > 0}
    total = sum(kept.values(), _ZERO)
    return [
        SummaryRow(
            category=cat,
            area=kept[cat],
            additional_count=counts.get(cat) or _ZERO,
            percent=percent_of(kept[cat], total),
        )
        for cat in sorted(kept)
    ]


def summarize(db: Session, group_column: Any, node: Optional[str] = None, sector: Optional[str] = None) -> List[SummaryRow]:
    rows = fetch_summary_source(db, group_column, {"node": node, "sector": sector})
    out = summarize_rows(rows)
    logger.debug("Summary by %s (node=%r, sector=%r): %d source rows, %d groups", group_column, node, sector, len(rows), len(out))
    return out
