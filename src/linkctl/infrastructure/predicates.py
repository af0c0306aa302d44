"""Translate compiled where fragments into SQLAlchemy expressions.

Record fields live in the ``records.data`` JSON column and are read with
``json_extract``. Each comparison is guarded by ``json_type`` so that the
SQL result agrees with in-process evaluation (``domain.filters.matches``):
string operators only match text, ordering only compares like with like,
and a null or missing field never matches, negated or not.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import and_, false, func, not_, true
from sqlalchemy.sql.elements import ColumnElement

from linkctl.infrastructure.database.engine import FOLD_FUNCTION
from linkctl.infrastructure.database.schema import channels, records

_NUMERIC_TYPES = ("integer", "real")


def where_clause(where: dict[str, Any]) -> ColumnElement[bool]:
    """Build a boolean SQL expression for a fragment or conjunction.

    Raises:
        ValueError: If the fragment uses an unknown comparison key.
    """
    clauses: list[ColumnElement[bool]] = []
    for path, body in where.items():
        if path == "AND":
            clauses.extend(where_clause(part) for part in body)
        else:
            clauses.append(_field_clause(path, body))
    if not clauses:
        return true()
    return and_(*clauses)


def _lower(column: Any) -> Any:
    """Unicode lower(), so insensitive matches agree with ``str.lower``."""
    return getattr(func, FOLD_FUNCTION)(column)


def _json_path(path: str) -> str:
    return f'$."{path}"'


def _field_clause(path: str, body: dict[str, Any]) -> ColumnElement[bool]:
    value_col = func.json_extract(records.c.data, _json_path(path))
    type_col = func.json_type(records.c.data, _json_path(path))
    insensitive = body.get("mode") == "insensitive"

    if "not" in body:
        inner = _comparisons(value_col, type_col, body["not"], insensitive)
        return and_(type_col.is_not(None), type_col != "null", not_(inner))
    comparisons = {k: v for k, v in body.items() if k != "mode"}
    inner = _comparisons(value_col, type_col, comparisons, insensitive)
    return and_(type_col.is_not(None), type_col != "null", inner)


def _comparisons(
    value_col: Any,
    type_col: Any,
    comparisons: dict[str, Any],
    insensitive: bool,
) -> ColumnElement[bool]:
    parts = [_compare(value_col, type_col, k, v, insensitive) for k, v in comparisons.items()]
    return and_(*parts) if parts else true()


def _compare(
    value_col: Any,
    type_col: Any,
    key: str,
    expected: Any,
    insensitive: bool,
) -> ColumnElement[bool]:
    if expected is None:
        return false()

    if isinstance(expected, str):
        column = _lower(value_col) if insensitive else value_col
        text = expected.lower() if insensitive else expected
        is_text = type_col == "text"
        if key == "equals":
            return and_(is_text, column == text)
        if key == "contains":
            return and_(is_text, func.instr(column, text) > 0)
        if key == "startsWith":
            return and_(is_text, func.substr(column, 1, len(text)) == text)
        if key == "endsWith":
            if not text:
                return is_text
            return and_(is_text, func.substr(column, -len(text)) == text)
        if key in ("lt", "lte", "gt", "gte"):
            return and_(is_text, _ordering(column, key, text))
        msg = f"Unsupported comparison: {key!r}"
        raise ValueError(msg)

    if isinstance(expected, bool):
        if key != "equals":
            return false()
        return and_(type_col.in_(("true", "false")), value_col == int(expected))

    if isinstance(expected, (int, float)):
        is_number = type_col.in_(_NUMERIC_TYPES)
        if key == "equals":
            return and_(is_number, value_col == expected)
        if key in ("lt", "lte", "gt", "gte"):
            return and_(is_number, _ordering(value_col, key, expected))
        return false()

    msg = f"Unsupported filter value type: {type(expected).__name__}"
    raise ValueError(msg)


def _ordering(column: Any, key: str, expected: Any) -> ColumnElement[bool]:
    if key == "lt":
        return column < expected  # type: ignore[no-any-return]
    if key == "lte":
        return column <= expected  # type: ignore[no-any-return]
    if key == "gt":
        return column > expected  # type: ignore[no-any-return]
    return column >= expected  # type: ignore[no-any-return]


def channel_clause(where: dict[str, Any] | None) -> ColumnElement[bool]:
    """Build a where clause over the ``channels`` table.

    Accepts ``{"id"|"name": {"equals"|"contains"|"startsWith": str,
    "mode": "insensitive"?}}`` fragments, the same shape the compiler emits.

    Raises:
        ValueError: If the fragment names another column or comparison.
    """
    if not where:
        return true()
    clauses: list[ColumnElement[bool]] = []
    for path, body in where.items():
        if path not in ("id", "name"):
            msg = f"Channels cannot be filtered by {path!r}"
            raise ValueError(msg)
        insensitive = body.get("mode") == "insensitive"
        column = _lower(channels.c[path]) if insensitive else channels.c[path]
        for key, expected in body.items():
            if key == "mode":
                continue
            text = str(expected).lower() if insensitive else str(expected)
            if key == "equals":
                clauses.append(column == text)
            elif key == "contains":
                clauses.append(func.instr(column, text) > 0)
            elif key == "startsWith":
                clauses.append(func.substr(column, 1, len(text)) == text)
            else:
                msg = f"Unsupported comparison: {key!r}"
                raise ValueError(msg)
    return and_(*clauses)
