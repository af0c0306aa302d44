"""Shared pytest fixtures and test helpers for linkctl tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from linkctl.domain.schema import ENTITY_REGISTRY, EntitySchema, get_entity_schema
from linkctl.infrastructure.gateway import SqlGateway
from linkctl.infrastructure.store import LinkStore
from linkctl.services.notifier import NotificationLog


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _restore_entity_registry() -> Iterator[None]:
    """Undo schema registrations made by config, plugins, or tests."""
    saved = dict(ENTITY_REGISTRY)
    yield
    ENTITY_REGISTRY.clear()
    ENTITY_REGISTRY.update(saved)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[LinkStore]:
    """Initialized SQLite store on a temp directory."""
    s = LinkStore.open(tmp_path / "linkctl.db")
    try:
        yield s
    finally:
        s.dispose()


@pytest.fixture
def gateway(store: LinkStore) -> SqlGateway:
    return SqlGateway(store)


@pytest.fixture
def notifications() -> NotificationLog:
    return NotificationLog()


@pytest.fixture
def order_schema() -> EntitySchema:
    return get_entity_schema("order")


@pytest.fixture
def _isolated_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project root so the CLI creates an isolated store.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command test
    classes.
    """
    monkeypatch.delenv("LINKCTL_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Seed helpers (data goes in through the synchronous store)
# ---------------------------------------------------------------------------


def _seed_links(
    store: LinkStore,
    owner: str,
    names: list[str],
    *,
    ranked: bool = True,
) -> list[dict[str, Any]]:
    """Create one channel and one link per name; rank them 1..N if *ranked*."""
    rows = []
    for name in names:
        channel = store.create_channel(name)
        rows.append(store.create_link(owner, channel["id"]))
    if ranked and rows:
        store.batch_update_links(
            [{"where": {"id": r["id"]}, "data": {"rank": i + 1}} for i, r in enumerate(rows)]
        )
    return rows


def _seed_order(store: LinkStore, **data: Any) -> dict[str, Any]:
    """Create an order record with sensible defaults."""
    payload = {"order_number": "A-1", "status": "pending", "currency": "USD", **data}
    return store.create_record("order", payload)


@pytest.fixture
def seed_links(store: LinkStore) -> Callable[..., list[dict[str, Any]]]:
    """``seed_links(owner, names, ranked=True)`` on the test store."""
    return lambda owner, names, **kwargs: _seed_links(store, owner, names, **kwargs)


@pytest.fixture
def seed_order(store: LinkStore) -> Callable[..., dict[str, Any]]:
    """``seed_order(**data)`` on the test store."""
    return lambda **data: _seed_order(store, **data)
