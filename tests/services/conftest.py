"""Gateway doubles and plugin fixtures for service tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import pytest

from linkctl.infrastructure.gateway import MutationError, SqlGateway
from linkctl.infrastructure.store import LinkStore
from linkctl.plugins.hookspecs import hookimpl
from linkctl.plugins.manager import PluginManager

_T = TypeVar("_T")


class FlakyGateway(SqlGateway):
    """Fails the named store calls with ``MUTATION_FAILED``."""

    def __init__(self, store: LinkStore, *failing: str) -> None:
        super().__init__(store)
        self.failing = set(failing)

    async def _call(self, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        if fn.__name__ in self.failing:
            raise MutationError("MUTATION_FAILED", "Backend unavailable")
        return await super()._call(fn, *args, **kwargs)


class GatedGateway(SqlGateway):
    """Holds every write until ``gate`` is set; reads pass straight through."""

    _READS = frozenset({"list_links", "list_channels", "get_record", "query_records"})

    def __init__(self, store: LinkStore) -> None:
        super().__init__(store)
        self.gate = asyncio.Event()

    async def _call(self, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        if fn.__name__ not in self._READS:
            await self.gate.wait()
        return await super()._call(fn, *args, **kwargs)


class RecordingPlugin:
    """Plugin that records all hook calls for verification."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @hookimpl
    def post_link_create(self, owner: str, link_id: str, channel_id: str) -> None:
        self.calls.append(
            ("post_link_create", {"owner": owner, "link_id": link_id, "channel_id": channel_id})
        )

    @hookimpl
    def post_link_update(self, owner: str, link_id: str, filters: list[dict[str, Any]]) -> None:
        self.calls.append(
            ("post_link_update", {"owner": owner, "link_id": link_id, "filters": filters})
        )

    @hookimpl
    def post_link_delete(self, owner: str, link_id: str) -> None:
        self.calls.append(("post_link_delete", {"owner": owner, "link_id": link_id}))

    @hookimpl
    def post_links_reorder(self, owner: str, order: list[str]) -> None:
        self.calls.append(("post_links_reorder", {"owner": owner, "order": order}))

    @hookimpl
    def post_record_save(
        self,
        entity_type: str,
        record_id: str,
        created: bool,
        fields_changed: list[str],
    ) -> None:
        self.calls.append(
            (
                "post_record_save",
                {
                    "entity_type": entity_type,
                    "record_id": record_id,
                    "created": created,
                    "fields_changed": fields_changed,
                },
            )
        )


class FailingPlugin:
    @hookimpl
    def post_link_create(self, owner: str, link_id: str, channel_id: str) -> None:
        raise RuntimeError("plugin exploded")


@pytest.fixture
def recorder() -> RecordingPlugin:
    return RecordingPlugin()


@pytest.fixture
def plugins(recorder: RecordingPlugin) -> PluginManager:
    pm = PluginManager()
    pm.register_plugin(recorder, name="recorder")
    return pm


@pytest.fixture
def flaky(store: LinkStore) -> Callable[..., FlakyGateway]:
    """``flaky("update_link", ...)`` builds a gateway failing those calls."""
    return lambda *failing: FlakyGateway(store, *failing)


@pytest.fixture
def gated(store: LinkStore) -> GatedGateway:
    return GatedGateway(store)


@pytest.fixture
def failing_plugin() -> FailingPlugin:
    return FailingPlugin()
