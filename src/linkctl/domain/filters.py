"""Filter predicates — compile, combine, evaluate, and edit filter lists.

A filter predicate is a ``(field, operator, value)`` triple. The compiler
turns it into a backend-ready *where fragment*::

    {"status": {"equals": "pending", "mode": "insensitive"}}
    {"email": {"not": {"endsWith": "@example.com"}}}

Fragments combine by conjunction (``{"AND": [...]}``). The same fragment
is evaluated in-process by :func:`matches` and translated to SQL by the
store, so both paths must agree.

Pure functions, no infrastructure dependencies.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

# Operators that compare for equality regardless of case flag.
_EQUALITY_OPERATORS = frozenset({"is", "not", "is_i", "not_i"})

COMPARISON_KEYS = frozenset(
    {"equals", "contains", "startsWith", "endsWith", "lt", "lte", "gt", "gte"}
)

_CAMEL_PATTERN = re.compile(r"_([a-z])")


@dataclass(frozen=True)
class FilterPredicate:
    """One condition on a rule.

    Persisted as ``{"type": operator, "field": field, "value": value}``.
    """

    field: str
    operator: str
    value: Any

    @property
    def key(self) -> tuple[str, str]:
        """Uniqueness key within a rule's filter list."""
        return (self.field, self.operator)

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.operator, "field": self.field, "value": self.value}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> FilterPredicate:
        return cls(field=str(data["field"]), operator=str(data["type"]), value=data.get("value"))


# ---------------------------------------------------------------------------
# Compiler
# ---------------------------------------------------------------------------


def operator_key(operator: str) -> tuple[str, bool]:
    """Split an operator into ``(comparison_key, negated)``.

    ``is_i``/``not_i``/``is``/``not`` compare with ``equals``. Other
    operators drop the ``_i`` suffix and ``not_`` prefix and are camel-cased,
    so ``not_starts_with_i`` becomes ``("startsWith", True)``.

    Raises:
        ValueError: If the operator does not map to a known comparison.
    """
    negated = operator.startswith("not_") or operator == "not"
    if operator in _EQUALITY_OPERATORS:
        return "equals", negated

    base = operator.removesuffix("_i")
    if base.startswith("not_"):
        base = base[len("not_") :]
    key = _CAMEL_PATTERN.sub(lambda m: m.group(1).upper(), base)
    if key not in COMPARISON_KEYS:
        msg = f"Unsupported filter operator: {operator!r}"
        raise ValueError(msg)
    return key, negated


def compile_predicate(
    path: str,
    operator: str,
    value: Any,
    *,
    insensitive: bool = False,
) -> dict[str, Any]:
    """Compile one predicate into a where fragment keyed by *path*."""
    key, negated = operator_key(operator)
    comparison: dict[str, Any] = {key: value}
    body: dict[str, Any] = {"not": comparison} if negated else dict(comparison)
    if insensitive:
        body["mode"] = "insensitive"
    return {path: body}


def conjunction(fragments: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Combine fragments so that all of them must hold."""
    return {"AND": list(fragments)}


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def matches(where: dict[str, Any], record: dict[str, Any]) -> bool:
    """Evaluate a where fragment (or conjunction) against a record dict.

    A missing or null field never matches, negated or not, mirroring
    SQL's three-valued logic.
    """
    for path, body in where.items():
        if path == "AND":
            if not all(matches(part, record) for part in body):
                return False
            continue
        if not _match_field(record.get(path), body):
            return False
    return True


def _match_field(actual: Any, body: dict[str, Any]) -> bool:
    if actual is None:
        return False
    insensitive = body.get("mode") == "insensitive"
    if "not" in body:
        return not _match_all(actual, body["not"], insensitive)
    comparisons = {k: v for k, v in body.items() if k != "mode"}
    return _match_all(actual, comparisons, insensitive)


def _match_all(actual: Any, comparisons: dict[str, Any], insensitive: bool) -> bool:
    return all(
        _compare(actual, key, expected, insensitive) for key, expected in comparisons.items()
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(actual: Any, key: str, expected: Any, insensitive: bool) -> bool:
    if expected is None:
        return False
    if insensitive and isinstance(actual, str) and isinstance(expected, str):
        actual, expected = actual.lower(), expected.lower()

    if key == "equals":
        if isinstance(actual, bool) != isinstance(expected, bool):
            return False
        return bool(actual == expected)
    if key in ("contains", "startsWith", "endsWith"):
        if not isinstance(actual, str) or not isinstance(expected, str):
            return False
        if key == "contains":
            return expected in actual
        if key == "startsWith":
            return actual.startswith(expected)
        return actual.endswith(expected)

    # Ordering comparisons: only between numbers, or between strings.
    both_numbers = _is_number(actual) and _is_number(expected)
    both_strings = isinstance(actual, str) and isinstance(expected, str)
    if not (both_numbers or both_strings):
        return False
    if key == "lt":
        return bool(actual < expected)
    if key == "lte":
        return bool(actual <= expected)
    if key == "gt":
        return bool(actual > expected)
    if key == "gte":
        return bool(actual >= expected)
    msg = f"Unsupported comparison: {key!r}"
    raise ValueError(msg)


# ---------------------------------------------------------------------------
# Filter list editing
# ---------------------------------------------------------------------------


def find_filter(
    filters: Sequence[FilterPredicate],
    field: str,
    operator: str,
) -> int | None:
    """Index of the predicate with key ``(field, operator)``, or None."""
    for index, predicate in enumerate(filters):
        if predicate.key == (field, operator):
            return index
    return None


def upsert_filter(
    filters: Sequence[FilterPredicate],
    predicate: FilterPredicate,
) -> tuple[FilterPredicate, ...]:
    """Replace the predicate sharing *predicate*'s key, or append it.

    A replaced predicate keeps its position; the list length only grows
    when the key is new.
    """
    updated = list(filters)
    index = find_filter(updated, predicate.field, predicate.operator)
    if index is None:
        updated.append(predicate)
    else:
        updated[index] = predicate
    return tuple(updated)


def remove_filter(
    filters: Sequence[FilterPredicate],
    field: str,
    operator: str,
) -> tuple[FilterPredicate, ...]:
    """Drop the predicate with key ``(field, operator)``.

    Raises:
        KeyError: If no such predicate exists.
    """
    index = find_filter(filters, field, operator)
    if index is None:
        raise KeyError((field, operator))
    return tuple(p for i, p in enumerate(filters) if i != index)
