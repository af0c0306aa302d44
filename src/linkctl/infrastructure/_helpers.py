"""Timestamp and label helpers shared by the store."""

from __future__ import annotations

from datetime import UTC, datetime


def today_iso() -> str:
    """Today's date as YYYY-MM-DD."""
    return datetime.now(UTC).strftime("%Y-%m-%d")


def now_iso() -> str:
    """Current UTC time as standard ISO 8601 (orders links created the same day)."""
    return datetime.now(UTC).isoformat()


def record_label(data: dict[str, object], label_field: str, fallback: str) -> str:
    """Display label of a record: its label field, or *fallback* when empty.

    Examples:
        >>> record_label({"order_number": "A-17"}, "order_number", "REC-0001")
        'A-17'
        >>> record_label({"order_number": ""}, "order_number", "REC-0001")
        'REC-0001'
    """
    value = data.get(label_field)
    if value is None or value == "":
        return fallback
    return str(value)
