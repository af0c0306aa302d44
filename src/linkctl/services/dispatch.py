"""DispatchService — route records to channels through an owner's links.

Links are evaluated in rank order (the committed order, as the backend
returns it). The first link whose filters all match a record decides the
channel; a link without filters matches every record. Evaluation runs
in-process on the compiled predicates, while ``matches`` asks the backend
to run the same predicates as a query.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from linkctl.domain.filters import matches
from linkctl.domain.rules import Link
from linkctl.infrastructure.gateway import MutationError
from linkctl.services.base import BaseService
from linkctl.services.result import ServiceResult, failure
from linkctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from linkctl.domain.schema import EntitySchema
    from linkctl.infrastructure.gateway import MutationGateway
    from linkctl.plugins.manager import PluginManager
    from linkctl.services.notifier import Notifier

logger = logging.getLogger(__name__)


class DispatchService(BaseService):
    """Read-only evaluation of links against records."""

    def __init__(
        self,
        gateway: MutationGateway,
        schema: EntitySchema,
        *,
        notifier: Notifier | None = None,
        plugins: PluginManager | None = None,
    ) -> None:
        super().__init__(gateway, notifier=notifier, plugins=plugins)
        self._schema = schema

    def first_match(self, links: list[Link], data: dict[str, Any]) -> Link | None:
        """First link in *links* whose filters all match *data*."""
        for link in links:
            if matches(self._schema.compile_filters(link.filters), data):
                return link
        return None

    @traced
    async def route(self, owner: str, record_id: str) -> ServiceResult:
        """Find the channel that handles a stored record."""
        op = "route"
        try:
            record = await self._gateway.get_record(record_id)
            rows = await self._gateway.list_links(owner)
        except MutationError as exc:
            return failure(op, exc.code, exc.message, detail=exc.detail)

        if record["entity_type"] != self._schema.key:
            return failure(
                op,
                "UNKNOWN_ENTITY",
                f"Record '{record_id}' is a {record['entity_type']!r}, "
                f"links of {owner!r} route {self._schema.key!r}",
            )

        links = [Link.from_row(row) for row in rows]
        with trace_span("evaluate_links") as span:
            try:
                link = self.first_match(links, record["data"])
            except ValueError as exc:
                return failure(op, "UNKNOWN_OPERATOR", str(exc))
            if span is not None:
                span.annotate("links", len(links))

        data: dict[str, Any] = {"record": {"id": record["id"], "label": record["label"]}}
        if link is None:
            logger.debug("No link of %s matches %s", owner, record_id)
            return ServiceResult(
                ok=True,
                op=op,
                data={**data, "link": None, "channel": None},
                warnings=[f"No link of {owner!r} matches '{record_id}'"],
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={
                **data,
                "link": {"id": link.id, "rank": link.rank},
                "channel": link.channel.to_dict(),
            },
        )

    @traced
    async def matches_for_link(
        self,
        owner: str,
        link_id: str,
        *,
        limit: int | None = None,
    ) -> ServiceResult:
        """Records the backend finds for one link's filters."""
        op = "link_matches"
        try:
            rows = await self._gateway.list_links(owner)
        except MutationError as exc:
            return failure(op, exc.code, exc.message, detail=exc.detail)

        link = next((Link.from_row(r) for r in rows if r["id"] == link_id), None)
        if link is None:
            return failure(op, "NOT_FOUND", f"No link found with ID '{link_id}'")

        try:
            where = self._schema.compile_filters(link.filters)
            records = await self._gateway.query_records(self._schema.key, where, limit=limit)
        except ValueError as exc:
            return failure(op, "UNKNOWN_OPERATOR", str(exc))
        except MutationError as exc:
            return failure(op, exc.code, exc.message, detail=exc.detail)

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "link": {"id": link.id, "name": link.name},
                "where": where,
                "records": records,
                "count": len(records),
            },
        )
