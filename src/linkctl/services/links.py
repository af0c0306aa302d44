"""LinkService — the rule list engine of one owner.

Holds a :class:`~linkctl.domain.rules.LinkList` and drives every change to
it through the mutation gateway:

- Reordering is local (``move``/``reorder``) until ``commit_order`` sends
  one batched rank update.
- Everything else (add link, attach/remove filter, delete link) writes
  through to the backend first and touches local state only on success.

A failed mutation leaves local state as it was, emits a negative
notification, and returns ``ok=False``; the request may simply be retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from linkctl.domain.drafts import FilterDraft
from linkctl.domain.filters import FilterPredicate, remove_filter, upsert_filter
from linkctl.domain.rules import Link, LinkList
from linkctl.infrastructure.gateway import MutationError
from linkctl.services.base import BaseService
from linkctl.services.notifier import positive
from linkctl.services.result import ServiceResult, failure
from linkctl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from linkctl.domain.schema import EntitySchema
    from linkctl.infrastructure.gateway import MutationGateway
    from linkctl.plugins.manager import PluginManager
    from linkctl.services.notifier import Notifier

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


class LinkService(BaseService):
    """Ordered routing rules of one owner, with filter editing."""

    def __init__(
        self,
        gateway: MutationGateway,
        owner: str,
        schema: EntitySchema,
        *,
        notifier: Notifier | None = None,
        plugins: PluginManager | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        conflict_check: bool = True,
    ) -> None:
        super().__init__(gateway, notifier=notifier, plugins=plugins)
        self._owner = owner
        self._schema = schema
        self._page_size = page_size
        self._conflict_check = conflict_check
        self._links = LinkList(owner)

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def schema(self) -> EntitySchema:
        return self._schema

    @property
    def links(self) -> LinkList:
        return self._links

    @property
    def is_dirty(self) -> bool:
        return self._links.is_dirty

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    @traced
    async def load(self) -> ServiceResult:
        """Fetch the owner's links; committed and working start equal."""
        op = "load_links"
        try:
            rows = await self._gateway.list_links(self._owner)
        except MutationError as exc:
            return failure(op, exc.code, exc.message, detail=exc.detail)

        self._links = LinkList(self._owner, (Link.from_row(row) for row in rows))
        logger.debug("Loaded %d links for %s", len(self._links), self._owner)
        return ServiceResult(ok=True, op=op, data=self.snapshot())

    def snapshot(self) -> dict[str, Any]:
        """Current state as plain data (working order)."""
        return {
            "owner": self._owner,
            "dirty": self._links.is_dirty,
            "selected": self._links.selected_id,
            "links": [self._link_data(link) for link in self._links.working],
        }

    # ------------------------------------------------------------------
    # Local reorder
    # ------------------------------------------------------------------

    def move(self, link_id: str, index: int) -> ServiceResult:
        """Move one link to *index* (0-based) in the working order."""
        op = "move_link"
        try:
            self._links.move(link_id, index)
        except KeyError:
            return failure(op, "NOT_FOUND", f"No link found with ID '{link_id}'")
        return ServiceResult(ok=True, op=op, data=self._order_data())

    def reorder(self, ids: Sequence[str]) -> ServiceResult:
        """Replace the working order with a full permutation of link ids."""
        op = "reorder_links"
        try:
            self._links.reorder(ids)
        except ValueError as exc:
            return failure(op, "INVALID_ORDER", str(exc))
        return ServiceResult(ok=True, op=op, data=self._order_data())

    def _order_data(self) -> dict[str, Any]:
        return {"order": self._links.ids(), "dirty": self._links.is_dirty}

    @traced
    async def commit_order(self) -> ServiceResult:
        """Persist the working order as ranks 1..N in one batched mutation.

        With conflict checking on, the batch carries the working id set and
        the backend rejects it when links were added or removed elsewhere.
        """
        op = "commit_order"
        if self.busy:
            return self._busy_result(op)
        if not self._needs_commit():
            return ServiceResult(
                ok=True,
                op=op,
                data={"order": self._rank_data(), "changed": False},
                warnings=["Link order unchanged"],
            )

        assignments = self._links.rank_assignments()
        updates = [
            {"where": {"id": link_id}, "data": {"rank": rank}} for link_id, rank in assignments
        ]
        expected = self._links.ids() if self._conflict_check else None

        with self._in_flight(op), trace_span("batch_update_links") as span:
            if span is not None:
                span.annotate("links", len(updates))
            try:
                await self._gateway.batch_update_links(updates, expected)
            except MutationError as exc:
                return self._mutation_failed(op, exc, "Failed to update link order")

        self._links.commit_order()
        self._notifier.notify(positive("Link order updated successfully"))
        warnings: list[str] = []
        self._dispatch_event(
            "post_links_reorder",
            {"owner": self._owner, "order": self._links.ids()},
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"order": self._rank_data(), "changed": True},
            warnings=warnings,
        )

    def _needs_commit(self) -> bool:
        """Dirty, or some rank is not yet its 1-based position."""
        if self._links.is_dirty:
            return True
        return any(link.rank != index + 1 for index, link in enumerate(self._links.working))

    def _rank_data(self) -> list[dict[str, Any]]:
        return [{"id": link.id, "rank": link.rank} for link in self._links.working]

    # ------------------------------------------------------------------
    # Channels and links
    # ------------------------------------------------------------------

    @traced
    async def list_channels(
        self,
        where: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> ServiceResult:
        """One page of channels a new link can be bound to."""
        op = "list_channels"
        page = limit if limit is not None else self._page_size
        try:
            rows = await self._gateway.list_channels(where, limit=page, offset=offset)
        except MutationError as exc:
            return failure(op, exc.code, exc.message, detail=exc.detail)
        return ServiceResult(
            ok=True,
            op=op,
            data={"channels": rows, "count": len(rows), "limit": page, "offset": offset},
        )

    @traced
    async def add_link(self, channel_id: str) -> ServiceResult:
        """Bind a new, unranked link to a channel and append it."""
        op = "add_link"
        if self.busy:
            return self._busy_result(op)

        with self._in_flight(op):
            try:
                row = await self._gateway.create_link(self._owner, channel_id)
            except MutationError as exc:
                return self._mutation_failed(op, exc, "Failed to create link")

        link = Link.from_row(row)
        self._links.append(link)
        self._notifier.notify(positive("Link created successfully"))
        warnings: list[str] = []
        self._dispatch_event(
            "post_link_create",
            {"owner": self._owner, "link_id": link.id, "channel_id": link.channel_id},
            warnings,
        )
        return ServiceResult(
            ok=True, op=op, data={"link": self._link_data(link)}, warnings=warnings
        )

    @traced
    async def delete_link(self, link_id: str) -> ServiceResult:
        """Delete a link from the backend and both snapshots."""
        op = "delete_link"
        if self.busy:
            return self._busy_result(op)
        if self._links.get(link_id) is None:
            return failure(op, "NOT_FOUND", f"No link found with ID '{link_id}'")

        with self._in_flight(op):
            try:
                await self._gateway.delete_link(link_id)
            except MutationError as exc:
                return self._mutation_failed(op, exc, "Failed to delete link")

        self._links.remove(link_id)
        self._notifier.notify(positive("Link deleted successfully"))
        warnings: list[str] = []
        self._dispatch_event(
            "post_link_delete",
            {"owner": self._owner, "link_id": link_id},
            warnings,
        )
        return ServiceResult(ok=True, op=op, data={"id": link_id}, warnings=warnings)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, link_id: str) -> ServiceResult:
        """Select a link for filter editing (deselects any other)."""
        op = "select_link"
        try:
            self._links.select(link_id)
        except KeyError:
            return failure(op, "NOT_FOUND", f"No link found with ID '{link_id}'")
        return ServiceResult(ok=True, op=op, data={"selected": link_id})

    def clear_selection(self) -> ServiceResult:
        self._links.clear_selection()
        return ServiceResult(ok=True, op="clear_selection", data={"selected": None})

    # ------------------------------------------------------------------
    # Filters (selected link only)
    # ------------------------------------------------------------------

    @traced
    async def attach_filter(self, field: str, operator: str, value: Any) -> ServiceResult:
        """Add a filter to the selected link, or replace the one with the same key.

        The whole filter list is sent as a replacement write.
        """
        return await self._attach("attach_filter", field, operator, lambda d: d.with_value(value))

    @traced
    async def attach_filter_text(self, field: str, operator: str, text: str) -> ServiceResult:
        """Like :meth:`attach_filter`, with *text* parsed by the field's kind."""
        return await self._attach(
            "attach_filter", field, operator, lambda d: d.with_text(self._schema, text)
        )

    async def _attach(
        self,
        op: str,
        field: str,
        operator: str,
        set_value: Callable[[FilterDraft], FilterDraft],
    ) -> ServiceResult:
        link = self._links.selected
        if link is None:
            return failure(op, "NO_SELECTION", "Select a link before editing its filters")

        try:
            draft = FilterDraft().select_field(self._schema, field)
        except KeyError:
            return failure(
                op,
                "UNKNOWN_FIELD",
                f"{self._schema.label} has no filterable field {field!r}",
                detail={"available": sorted(self._schema.filterable())},
            )
        controller = self._schema.controller(field)
        capability = controller.filter
        assert capability is not None
        try:
            draft = draft.select_operator(self._schema, operator)
        except KeyError:
            return failure(
                op,
                "UNKNOWN_OPERATOR",
                f"{controller.label} does not support condition {operator!r}",
                detail={"available": list(controller.operator_types)},
            )
        try:
            draft = set_value(draft)
        except ValueError as exc:
            return failure(op, "VALIDATION_FAILED", str(exc), detail={"field": field})
        if not draft.is_submittable:
            return failure(op, "VALIDATION_FAILED", "Filter needs a value")
        messages = capability.value_messages(draft.value)
        if messages:
            return failure(op, "VALIDATION_FAILED", "; ".join(messages), detail={"field": field})

        if self.busy:
            return self._busy_result(op)

        predicate = draft.to_predicate()
        filters = upsert_filter(link.filters, predicate)
        result = await self._write_filters(
            op,
            link,
            filters,
            success="Filters updated successfully",
            failed="Failed to update filters",
        )
        if not result.ok:
            return result
        data = {**result.data, "filter": predicate.to_wire()}
        data["description"] = capability.describe(predicate.operator, predicate.value)
        return result.model_copy(update={"data": data})

    @traced
    async def remove_filter(self, field: str, operator: str) -> ServiceResult:
        """Delete the selected link's filter with key ``(field, operator)``."""
        op = "remove_filter"
        link = self._links.selected
        if link is None:
            return failure(op, "NO_SELECTION", "Select a link before editing its filters")
        try:
            filters = remove_filter(link.filters, field, operator)
        except KeyError:
            return failure(
                op,
                "NOT_FOUND",
                f"Link '{link.id}' has no filter {field!r} / {operator!r}",
            )
        if self.busy:
            return self._busy_result(op)

        return await self._write_filters(
            op,
            link,
            filters,
            success="Filter deleted successfully",
            failed="Failed to delete filter",
        )

    async def _write_filters(
        self,
        op: str,
        link: Link,
        filters: Sequence[FilterPredicate],
        *,
        success: str,
        failed: str,
    ) -> ServiceResult:
        with self._in_flight(op):
            try:
                row = await self._gateway.update_link(link.id, [f.to_wire() for f in filters])
            except MutationError as exc:
                return self._mutation_failed(op, exc, failed)

        stored = tuple(FilterPredicate.from_wire(f) for f in row.get("filters", []))
        updated = link.with_filters(stored)
        self._links.replace(updated)
        self._notifier.notify(positive(success))
        warnings: list[str] = []
        self._dispatch_event(
            "post_link_update",
            {
                "owner": self._owner,
                "link_id": link.id,
                "filters": [f.to_wire() for f in stored],
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"link": self._link_data(updated)},
            warnings=warnings,
        )

    def operators(self, field: str | None = None) -> ServiceResult:
        """Filter conditions offered per field, with their initial values."""
        op = "list_operators"
        filterable = self._schema.filterable()
        if field is not None:
            if field not in filterable:
                return failure(
                    op,
                    "UNKNOWN_FIELD",
                    f"{self._schema.label} has no filterable field {field!r}",
                    detail={"available": sorted(filterable)},
                )
            filterable = {field: filterable[field]}

        items = [
            {
                "field": path,
                "label": controller.label,
                "kind": str(controller.kind),
                "operator": operator,
                "condition": op_type.label,
                "initial": op_type.initial_value,
            }
            for path, controller in filterable.items()
            for operator, op_type in controller.operator_types.items()
        ]
        return ServiceResult(ok=True, op=op, data={"entity": self._schema.key, "items": items})

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def compile_link(self, link: Link) -> dict[str, Any]:
        """Conjunction of a link's compiled filters."""
        return self._schema.compile_filters(link.filters)

    def describe_filter(self, predicate: FilterPredicate) -> str:
        return self._schema.describe_filter(predicate)

    def _link_data(self, link: Link) -> dict[str, Any]:
        data = link.to_dict()
        data["descriptions"] = [self.describe_filter(f) for f in link.filters]
        data["selected"] = link.id == self._links.selected_id
        return data
