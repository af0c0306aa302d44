"""Audit plugin — writes every confirmed mutation to the structured log.

Registered by the CLI context on startup. Output goes through structlog,
so ``--log-json`` turns it into a machine-readable audit trail.
"""

from __future__ import annotations

from typing import Any

import structlog

from linkctl.plugins.hookspecs import hookimpl


class AuditPlugin:
    """Log lifecycle events at INFO under the ``linkctl.audit`` logger."""

    def __init__(self) -> None:
        self._log = structlog.get_logger("linkctl.audit")

    @hookimpl
    def post_link_create(self, owner: str, link_id: str, channel_id: str) -> None:
        self._log.info("link.created", owner=owner, link_id=link_id, channel_id=channel_id)

    @hookimpl
    def post_link_update(self, owner: str, link_id: str, filters: list[dict[str, Any]]) -> None:
        self._log.info("link.updated", owner=owner, link_id=link_id, filters=len(filters))

    @hookimpl
    def post_link_delete(self, owner: str, link_id: str) -> None:
        self._log.info("link.deleted", owner=owner, link_id=link_id)

    @hookimpl
    def post_links_reorder(self, owner: str, order: list[str]) -> None:
        self._log.info("links.reordered", owner=owner, order=order)

    @hookimpl
    def post_record_save(
        self,
        entity_type: str,
        record_id: str,
        created: bool,
        fields_changed: list[str],
    ) -> None:
        self._log.info(
            "record.saved",
            entity_type=entity_type,
            record_id=record_id,
            created=created,
            fields=fields_changed,
        )
