"""Atomic sequential ID generation for channels, links, and records.

Uses the ``id_counters`` table inside the caller's transaction so the
counter increment commits or rolls back together with the insert that
consumes it. Minimum 4 digits, grows naturally past 9999.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select, update

from linkctl.infrastructure.database.schema import id_counters

if TYPE_CHECKING:
    from sqlalchemy import Connection

SEQUENTIAL_PREFIXES = ("CHN-", "LNK-", "REC-")
_VALID_PREFIXES = frozenset(SEQUENTIAL_PREFIXES)


def next_sequential_id(conn: Connection, type_prefix: str) -> str:
    """Claim the next sequential ID for *type_prefix*.

    Args:
        conn: Active SQLAlchemy connection (caller owns the transaction).
        type_prefix: One of ``"CHN-"``, ``"LNK-"`` or ``"REC-"``.

    Returns:
        The new ID string (e.g. ``"LNK-0001"``).

    Raises:
        ValueError: If *type_prefix* is not a recognized sequential type.
    """
    if type_prefix not in _VALID_PREFIXES:
        msg = (
            f"Unknown sequential type prefix: {type_prefix!r}. "
            f"Expected one of {sorted(_VALID_PREFIXES)}"
        )
        raise ValueError(msg)

    current_value: int = conn.execute(
        select(id_counters.c.next_value).where(id_counters.c.type_prefix == type_prefix)
    ).scalar_one()

    conn.execute(
        update(id_counters)
        .where(id_counters.c.type_prefix == type_prefix)
        .values(next_value=current_value + 1)
    )

    return f"{type_prefix}{current_value:04d}"
