"""Pluggy hook specifications for linkctl lifecycle events and setup extensions.

Five lifecycle events fire after a mutation was confirmed by the backend.
One setup-time hook allows plugins to register custom entity schemas.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from linkctl.domain.schema import EntitySchema

hookspec = pluggy.HookspecMarker("linkctl")
hookimpl = pluggy.HookimplMarker("linkctl")


class LinkctlHookSpec:
    """Hook specifications for the linkctl plugin system."""

    @hookspec
    def post_link_create(self, owner: str, link_id: str, channel_id: str) -> None:
        """Called after a link was bound to a channel."""

    @hookspec
    def post_link_update(
        self,
        owner: str,
        link_id: str,
        filters: list[dict[str, Any]],
    ) -> None:
        """Called after a link's filter list was replaced."""

    @hookspec
    def post_link_delete(self, owner: str, link_id: str) -> None:
        """Called after a link was deleted."""

    @hookspec
    def post_links_reorder(self, owner: str, order: list[str]) -> None:
        """Called after a new link order was committed."""

    @hookspec
    def post_record_save(
        self,
        entity_type: str,
        record_id: str,
        created: bool,
        fields_changed: list[str],
    ) -> None:
        """Called after a record was created or updated."""

    @hookspec
    def register_entity_schemas(self) -> list[EntitySchema] | None:
        """Return entity schemas to add to ENTITY_REGISTRY."""
