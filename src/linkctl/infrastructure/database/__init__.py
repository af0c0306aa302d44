"""SQLite database engine, schema, and ID counters via SQLAlchemy Core."""

from linkctl.infrastructure.database.counters import next_sequential_id
from linkctl.infrastructure.database.engine import create_db_engine, init_database
from linkctl.infrastructure.database.schema import (
    channels,
    id_counters,
    links,
    metadata,
    records,
)

__all__ = [
    "channels",
    "create_db_engine",
    "id_counters",
    "init_database",
    "links",
    "metadata",
    "next_sequential_id",
    "records",
]
