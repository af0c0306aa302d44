"""Database engine setup for SQLite with WAL mode.

The store lives at ``{root}/.linkctl/linkctl.db`` unless configured
otherwise. SQLAlchemy Core (not ORM) is used: the gateway issues a handful
of explicit statements per mutation and needs no identity map.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, insert, select
from sqlalchemy.engine import Engine

from linkctl.infrastructure.database.counters import SEQUENTIAL_PREFIXES
from linkctl.infrastructure.database.schema import id_counters, metadata

# SQL name of the Unicode-aware lower() used by case-insensitive filters.
# SQLite's builtin lower() only folds ASCII.
FOLD_FUNCTION = "linkctl_lower"


def _fold(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def create_db_engine(db_path: Path) -> Engine:
    """Create a SQLite engine with WAL mode, foreign keys, and ``linkctl_lower``."""
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        dbapi_conn.create_function(FOLD_FUNCTION, 1, _fold, deterministic=True)

    return engine


def init_database(db_path: Path) -> Engine:
    """Create the database file, all tables, and seed the id counters.

    Idempotent — safe to call on an existing store.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    _seed_counters(engine)
    return engine


def _seed_counters(engine: Engine) -> None:
    """Insert initial counter rows for each sequential prefix if missing."""
    with engine.begin() as conn:
        for prefix in SEQUENTIAL_PREFIXES:
            row = conn.execute(
                select(id_counters.c.type_prefix).where(id_counters.c.type_prefix == prefix)
            ).first()
            if row is None:
                conn.execute(insert(id_counters).values(type_prefix=prefix, next_value=1))
