"""LinkStore — synchronous SQLAlchemy repository for the reference backend.

Every public method runs in its own transaction (``engine.begin()``), so a
batch either applies completely or not at all. Rows come back as plain
dicts in the wire shapes the gateway contract promises; filter lists and
record data are decoded from their JSON columns.

Expected failures (missing rows, stale reorders, unknown entity types)
raise :class:`~linkctl.infrastructure.gateway.MutationError` with a
machine-readable code. Anything else is a driver error and propagates.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update

from linkctl.domain.schema import get_entity_schema
from linkctl.infrastructure._helpers import now_iso, record_label, today_iso
from linkctl.infrastructure.database.counters import next_sequential_id
from linkctl.infrastructure.database.engine import init_database
from linkctl.infrastructure.database.schema import channels, links, records
from linkctl.infrastructure.gateway import MutationError
from linkctl.infrastructure.predicates import channel_clause, where_clause

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class LinkStore:
    """Repository encapsulating channels, links, and records.

    Constructed from a database path (created on first use) or an existing
    engine. Gateways wrap it; tests may use it directly to seed data.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def open(cls, db_path: Path) -> LinkStore:
        """Open (and initialize if needed) the store at *db_path*."""
        return cls(init_database(db_path))

    @property
    def engine(self) -> Engine:
        return self._engine

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Yield a connection that commits on success and rolls back on error."""
        with self._engine.begin() as conn:
            yield conn

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def create_channel(self, name: str) -> dict[str, Any]:
        """Insert a channel. Names are unique.

        Raises:
            MutationError: ``CONFLICT`` if the name is taken.
        """
        with self.transaction() as conn:
            taken = conn.execute(select(channels.c.id).where(channels.c.name == name)).first()
            if taken is not None:
                raise MutationError("CONFLICT", f"Channel already exists: {name!r}")
            channel_id = next_sequential_id(conn, "CHN-")
            conn.execute(insert(channels).values(id=channel_id, name=name, created=today_iso()))
        logger.debug("Created channel %s (%s)", channel_id, name)
        return {"id": channel_id, "name": name}

    def list_channels(
        self,
        where: dict[str, Any] | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """One page of channels ordered by name."""
        stmt = (
            select(channels.c.id, channels.c.name)
            .where(channel_clause(where))
            .order_by(channels.c.name, channels.c.id)
            .limit(limit)
            .offset(offset)
        )
        with self._engine.connect() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings()]

    def get_channel(self, channel_id: str) -> dict[str, Any]:
        """Fetch one channel.

        Raises:
            MutationError: ``NOT_FOUND`` if it does not exist.
        """
        with self._engine.connect() as conn:
            row = conn.execute(
                select(channels.c.id, channels.c.name).where(channels.c.id == channel_id)
            ).mappings().first()
        if row is None:
            raise MutationError("NOT_FOUND", f"No channel found with ID '{channel_id}'")
        return dict(row)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def list_links(self, owner: str) -> list[dict[str, Any]]:
        """Links of *owner*: rank ascending, unranked last in creation order."""
        stmt = (
            select(
                links.c.id,
                links.c.rank,
                links.c.channel_id,
                channels.c.name.label("channel_name"),
                links.c.filters,
            )
            .select_from(links.join(channels, links.c.channel_id == channels.c.id))
            .where(links.c.owner == owner)
            .order_by(links.c.rank.is_(None), links.c.rank, links.c.created_at, links.c.id)
        )
        with self._engine.connect() as conn:
            return [_link_row(row) for row in conn.execute(stmt).mappings()]

    def create_link(self, owner: str, channel_id: str) -> dict[str, Any]:
        """Bind a new, unranked link with no filters to a channel.

        Raises:
            MutationError: ``NOT_FOUND`` if the channel does not exist.
        """
        with self.transaction() as conn:
            channel = conn.execute(
                select(channels.c.name).where(channels.c.id == channel_id)
            ).first()
            if channel is None:
                raise MutationError("NOT_FOUND", f"No channel found with ID '{channel_id}'")
            link_id = next_sequential_id(conn, "LNK-")
            today = today_iso()
            conn.execute(
                insert(links).values(
                    id=link_id,
                    owner=owner,
                    channel_id=channel_id,
                    rank=None,
                    filters="[]",
                    created=today,
                    created_at=now_iso(),
                    modified=today,
                )
            )
        logger.debug("Created link %s for %s -> %s", link_id, owner, channel_id)
        return {
            "id": link_id,
            "rank": None,
            "channel_id": channel_id,
            "channel_name": channel.name,
            "filters": [],
        }

    def update_link(self, link_id: str, filters: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
        """Replace the whole filter list of a link.

        Raises:
            MutationError: ``NOT_FOUND`` if the link does not exist.
        """
        payload = [dict(f) for f in filters]
        with self.transaction() as conn:
            result = conn.execute(
                update(links)
                .where(links.c.id == link_id)
                .values(filters=json.dumps(payload), modified=today_iso())
            )
            if result.rowcount == 0:
                raise MutationError("NOT_FOUND", f"No link found with ID '{link_id}'")
        return {"id": link_id, "filters": payload}

    def batch_update_links(
        self,
        updates: Sequence[Mapping[str, Any]],
        expected_ids: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Apply ``[{"where": {"id"}, "data": {"rank"}}]`` in one transaction.

        When *expected_ids* is given, the owner's stored link ids must be
        exactly that set, otherwise nothing is written.

        Raises:
            MutationError: ``NOT_FOUND`` for an unknown link, ``CONFLICT``
                when the links span owners or the stored set has changed.
        """
        if not updates:
            return []
        ids = [str(u["where"]["id"]) for u in updates]
        with self.transaction() as conn:
            rows = conn.execute(
                select(links.c.id, links.c.owner).where(links.c.id.in_(ids))
            ).all()
            found = {row.id: row.owner for row in rows}
            missing = [link_id for link_id in ids if link_id not in found]
            if missing:
                raise MutationError("NOT_FOUND", f"No link found with ID '{missing[0]}'")
            owners = set(found.values())
            if len(owners) != 1:
                raise MutationError("CONFLICT", "Reordered links belong to different lists")

            if expected_ids is not None:
                owner = owners.pop()
                stored = set(
                    conn.execute(select(links.c.id).where(links.c.owner == owner)).scalars()
                )
                if stored != set(expected_ids):
                    raise MutationError(
                        "CONFLICT",
                        "Links were added or removed since the list was loaded",
                        {"stored": sorted(stored), "expected": sorted(expected_ids)},
                    )

            today = today_iso()
            applied: list[dict[str, Any]] = []
            for item in updates:
                link_id = str(item["where"]["id"])
                rank = item["data"]["rank"]
                conn.execute(
                    update(links).where(links.c.id == link_id).values(rank=rank, modified=today)
                )
                applied.append({"id": link_id, "rank": rank})
        return applied

    def delete_link(self, link_id: str) -> dict[str, Any]:
        """Delete a link irreversibly.

        Raises:
            MutationError: ``NOT_FOUND`` if the link does not exist.
        """
        with self.transaction() as conn:
            result = conn.execute(delete(links).where(links.c.id == link_id))
            if result.rowcount == 0:
                raise MutationError("NOT_FOUND", f"No link found with ID '{link_id}'")
        return {"id": link_id}

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def create_record(self, entity_type: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a record of a registered entity type.

        Raises:
            MutationError: ``UNKNOWN_ENTITY`` for an unregistered type.
        """
        label_field = _label_field(entity_type)
        payload = dict(data)
        with self.transaction() as conn:
            record_id = next_sequential_id(conn, "REC-")
            label = record_label(payload, label_field, record_id)
            today = today_iso()
            conn.execute(
                insert(records).values(
                    id=record_id,
                    entity_type=entity_type,
                    label=label,
                    data=json.dumps(payload),
                    created=today,
                    modified=today,
                )
            )
        return {"id": record_id, "label": label}

    def update_record(
        self,
        entity_type: str,
        record_id: str,
        data: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Merge changed fields into an existing record.

        Raises:
            MutationError: ``UNKNOWN_ENTITY`` or ``NOT_FOUND``.
        """
        label_field = _label_field(entity_type)
        with self.transaction() as conn:
            row = conn.execute(
                select(records.c.data).where(
                    records.c.id == record_id, records.c.entity_type == entity_type
                )
            ).first()
            if row is None:
                raise MutationError("NOT_FOUND", f"No {entity_type} found with ID '{record_id}'")
            merged = {**json.loads(row.data), **data}
            label = record_label(merged, label_field, record_id)
            conn.execute(
                update(records)
                .where(records.c.id == record_id)
                .values(label=label, data=json.dumps(merged), modified=today_iso())
            )
        return {"id": record_id, "label": label}

    def get_record(self, record_id: str) -> dict[str, Any]:
        """Fetch one record with decoded data.

        Raises:
            MutationError: ``NOT_FOUND`` if it does not exist.
        """
        with self._engine.connect() as conn:
            row = conn.execute(
                select(records.c.id, records.c.entity_type, records.c.label, records.c.data).where(
                    records.c.id == record_id
                )
            ).mappings().first()
        if row is None:
            raise MutationError("NOT_FOUND", f"No record found with ID '{record_id}'")
        return _record_row(row)

    def query_records(
        self,
        entity_type: str,
        where: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Records of *entity_type* matching a compiled where fragment."""
        stmt = (
            select(records.c.id, records.c.entity_type, records.c.label, records.c.data)
            .where(records.c.entity_type == entity_type)
            .order_by(records.c.id)
        )
        if where:
            stmt = stmt.where(where_clause(where))
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._engine.connect() as conn:
            return [_record_row(row) for row in conn.execute(stmt).mappings()]


# ---------------------------------------------------------------------------
# Row decoding
# ---------------------------------------------------------------------------


def _label_field(entity_type: str) -> str:
    try:
        return get_entity_schema(entity_type).label_field
    except KeyError:
        raise MutationError("UNKNOWN_ENTITY", f"Unknown entity type: {entity_type!r}") from None


def _link_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "rank": row["rank"],
        "channel_id": row["channel_id"],
        "channel_name": row["channel_name"],
        "filters": json.loads(row["filters"] or "[]"),
    }


def _record_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "entity_type": row["entity_type"],
        "label": row["label"],
        "data": json.loads(row["data"] or "{}"),
    }
