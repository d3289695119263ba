"""SQL text and bound parameters for hierarchy filters, lookups and reports.

Every filter value travels as a numbered bind parameter (``:p1``, ``:p2`` ...)
whose numbering follows the order the predicates were appended. Identifiers
are only ever taken from the constants in :mod:`landrecords.columns`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from .columns import (
    ADDITIONAL_PLOT_COUNT,
    AREA_FOR_INVOICE,
    HIERARCHY,
    HIERARCHY_LEVELS,
    NODE,
    PLOT_COLUMNS,
    PLOT_TABLE,
    PRIMARY_KEY,
    SEARCH_COLUMNS,
    GroupColumn,
)
from .errors import ValidationFailure

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_KNOWN_COLUMNS = frozenset((PRIMARY_KEY,) + PLOT_COLUMNS)

# What browsers send for an unset value: missing, empty, or a stringified JS null/undefined
_UNSET_MARKERS = {"", "undefined", "null"}


def is_provided(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and value.strip() in _UNSET_MARKERS:
        return False
    return True


def _qcol(name: str) -> str:
    if name not in _KNOWN_COLUMNS or not _IDENT_RE.match(name):
        raise ValidationFailure(f"Unknown column: {name}")
    return f'"{name}"'


@dataclass
class BuiltQuery:
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def values(self) -> List[Any]:
        """Bound values in predicate order."""
        return list(self.params.values())


class _Binder:
    def __init__(self) -> None:
        self.params: Dict[str, Any] = {}

    def bind(self, value: Any) -> str:
        name = f"p{len(self.params) + 1}"
        self.params[name] = value
        return f":{name}"


def _hierarchy_predicates(binder: _Binder, filters: Mapping[str, Any], levels: Sequence[str]) -> List[str]:
    clauses: List[str] = []
    for level, column in HIERARCHY:
        if level not in levels:
            continue
        value = filters.get(level)
        if not is_provided(value):
            continue
        clauses.append(f"{_qcol(column)} = {binder.bind(value)}")
    return clauses


def _where(clauses: List[str]) -> str:
    return f" WHERE {' AND '.join(clauses)}" if clauses else ""


def build_distinct_sql(level: str, filters: Mapping[str, Any] | None = None) -> BuiltQuery:
    """Distinct non-empty values of one hierarchy level.

    Only levels above ``level`` filter the list: sectors may be scoped by node,
    plots by node, sector and block. Missing filters widen the list.
    """
    if level not in HIERARCHY_LEVELS:
        raise ValidationFailure(f"Unknown hierarchy level: {level}")
    column = dict(HIERARCHY)[level]
    parents = HIERARCHY_LEVELS[: HIERARCHY_LEVELS.index(level)]
    binder = _Binder()
    qcol = _qcol(column)
    clauses = [f"{qcol} IS NOT NULL", f"{qcol} <> ''"]
    clauses += _hierarchy_predicates(binder, filters or {}, parents)
    sql = f"SELECT DISTINCT {qcol} AS value FROM {PLOT_TABLE}{_where(clauses)} ORDER BY {qcol}"
    return BuiltQuery(sql, binder.params)


def build_search_sql(filters: Mapping[str, Any]) -> BuiltQuery:
    # Node is the required base predicate and is bound even when absent (matches nothing).
    binder = _Binder()
    clauses = [f"{_qcol(NODE)} = {binder.bind(filters.get('node'))}"]
    clauses += _hierarchy_predicates(binder, filters, ("sector", "block", "plot"))
    cols = ", ".join(_qcol(c) for c in SEARCH_COLUMNS)
    sql = f"SELECT {cols} FROM {PLOT_TABLE}{_where(clauses)} ORDER BY {_qcol(PRIMARY_KEY)}"
    return BuiltQuery(sql, binder.params)


def resolve_group_column(group_column: Any) -> GroupColumn:
    try:
        return GroupColumn(group_column)
    except ValueError:
        raise ValidationFailure(f"Unsupported group column: {group_column}")


def build_summary_source_sql(group_column: Any, filters: Mapping[str, Any] | None = None) -> BuiltQuery:
    """Rows feeding a summary report: category plus the two text-typed numeric fields.

    Only node and sector narrow a report.
    """
    group = resolve_group_column(group_column)
    binder = _Binder()
    clauses = _hierarchy_predicates(binder, filters or {}, ("node", "sector"))
    sql = (
        f"SELECT {_qcol(group.value)} AS category, "
        f"{_qcol(AREA_FOR_INVOICE)} AS area, "
        f"{_qcol(ADDITIONAL_PLOT_COUNT)} AS additional_count "
        f"FROM {PLOT_TABLE}{_where(clauses)}"
    )
    return BuiltQuery(sql, binder.params)


def build_record_sql(record_id: int) -> BuiltQuery:
    binder = _Binder()
    sql = f"SELECT * FROM {PLOT_TABLE} WHERE {_qcol(PRIMARY_KEY)} = {binder.bind(record_id)}"
    return BuiltQuery(sql, binder.params)


def writable_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Known, writable columns of ``payload`` in storage order. Unknown keys and ID are dropped."""
    return {col: payload[col] for col in PLOT_COLUMNS if col in payload}


def build_update_sql(record_id: int, fields: Mapping[str, Any]) -> BuiltQuery:
    values = writable_fields(fields)
    if not values:
        raise ValidationFailure("No fields to update")
    binder = _Binder()
    assignments = ", ".join(f"{_qcol(col)} = {binder.bind(val)}" for col, val in values.items())
    sql = f"UPDATE {PLOT_TABLE} SET {assignments} WHERE {_qcol(PRIMARY_KEY)} = {binder.bind(record_id)}"
    return BuiltQuery(sql, binder.params)
