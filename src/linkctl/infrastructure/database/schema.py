"""SQLAlchemy Core table definitions for the linkctl store.

Filter lists and record data are stored as JSON text; predicate
translation reads record fields with SQLite's ``json_extract``.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

channels = Table(
    "channels",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False, unique=True),
    Column("created", Text, nullable=False),
)

links = Table(
    "links",
    metadata,
    Column("id", Text, primary_key=True),
    Column("owner", Text, nullable=False),
    Column("channel_id", Text, ForeignKey("channels.id"), nullable=False),
    Column("rank", Integer),  # NULL until the first committed reorder
    Column("filters", Text, nullable=False, default="[]", server_default="[]"),  # JSON array
    Column("created", Text, nullable=False),
    Column("created_at", Text, nullable=False),  # high-resolution, orders unranked links
    Column("modified", Text, nullable=False),
)

records = Table(
    "records",
    metadata,
    Column("id", Text, primary_key=True),
    Column("entity_type", Text, nullable=False),
    Column("label", Text),
    Column("data", Text, nullable=False, default="{}", server_default="{}"),  # JSON object
    Column("created", Text, nullable=False),
    Column("modified", Text, nullable=False),
)

id_counters = Table(
    "id_counters",
    metadata,
    Column("type_prefix", Text, primary_key=True),
    Column("next_value", Integer, nullable=False, default=1, server_default="1"),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_links_owner", links.c.owner)
Index("ix_links_channel", links.c.channel_id)
Index("ix_records_entity_type", records.c.entity_type)
