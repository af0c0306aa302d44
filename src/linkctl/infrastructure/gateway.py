"""Mutation gateway — the async persistence boundary of the engine.

Services only ever talk to a :class:`MutationGateway`. The reference
implementation, :class:`SqlGateway`, runs the blocking SQLAlchemy work of a
:class:`~linkctl.infrastructure.store.LinkStore` in a worker thread via
``asyncio.to_thread`` so the event loop never blocks.

Every failure crosses the boundary as a :class:`MutationError`; driver
exceptions are converted here and never reach a service.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from sqlalchemy.exc import SQLAlchemyError

if TYPE_CHECKING:
    from linkctl.infrastructure.store import LinkStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class MutationError(Exception):
    """A backend request failed.

    Attributes:
        code: Machine-readable error code (``NOT_FOUND``, ``CONFLICT``,
            ``UNKNOWN_ENTITY`` or ``MUTATION_FAILED``).
        message: Human-readable description.
        detail: Extra structured context for the error payload.
    """

    def __init__(
        self,
        code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail or {}


class MutationGateway(Protocol):
    """Backend contract consumed by the services."""

    async def list_channels(
        self,
        where: dict[str, Any] | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]: ...

    async def create_channel(self, name: str) -> dict[str, Any]: ...

    async def list_links(self, owner: str) -> list[dict[str, Any]]: ...

    async def create_link(self, owner: str, channel_id: str) -> dict[str, Any]: ...

    async def update_link(
        self, link_id: str, filters: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]: ...

    async def batch_update_links(
        self,
        updates: Sequence[Mapping[str, Any]],
        expected_ids: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]: ...

    async def delete_link(self, link_id: str) -> dict[str, Any]: ...

    async def create_record(self, entity_type: str, data: Mapping[str, Any]) -> dict[str, Any]: ...

    async def update_record(
        self, entity_type: str, record_id: str, data: Mapping[str, Any]
    ) -> dict[str, Any]: ...

    async def get_record(self, record_id: str) -> dict[str, Any]: ...

    async def query_records(
        self,
        entity_type: str,
        where: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...


class SqlGateway:
    """:class:`MutationGateway` over a SQLite :class:`LinkStore`."""

    def __init__(self, store: LinkStore) -> None:
        self._store = store

    @property
    def store(self) -> LinkStore:
        return self._store

    async def _call(self, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except MutationError:
            raise
        except SQLAlchemyError as exc:
            logger.warning("Store call %s failed: %s", fn.__name__, exc)
            raise MutationError("MUTATION_FAILED", f"Backend error: {exc}") from exc
        except ValueError as exc:
            raise MutationError("MUTATION_FAILED", str(exc)) from exc

    async def list_channels(
        self,
        where: dict[str, Any] | None = None,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        return await self._call(self._store.list_channels, where, limit=limit, offset=offset)

    async def create_channel(self, name: str) -> dict[str, Any]:
        return await self._call(self._store.create_channel, name)

    async def list_links(self, owner: str) -> list[dict[str, Any]]:
        return await self._call(self._store.list_links, owner)

    async def create_link(self, owner: str, channel_id: str) -> dict[str, Any]:
        return await self._call(self._store.create_link, owner, channel_id)

    async def update_link(
        self, link_id: str, filters: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        return await self._call(self._store.update_link, link_id, filters)

    async def batch_update_links(
        self,
        updates: Sequence[Mapping[str, Any]],
        expected_ids: Iterable[str] | None = None,
    ) -> list[dict[str, Any]]:
        expected = list(expected_ids) if expected_ids is not None else None
        return await self._call(self._store.batch_update_links, updates, expected)

    async def delete_link(self, link_id: str) -> dict[str, Any]:
        return await self._call(self._store.delete_link, link_id)

    async def create_record(self, entity_type: str, data: Mapping[str, Any]) -> dict[str, Any]:
        return await self._call(self._store.create_record, entity_type, data)

    async def update_record(
        self, entity_type: str, record_id: str, data: Mapping[str, Any]
    ) -> dict[str, Any]:
        return await self._call(self._store.update_record, entity_type, record_id, data)

    async def get_record(self, record_id: str) -> dict[str, Any]:
        return await self._call(self._store.get_record, record_id)

    async def query_records(
        self,
        entity_type: str,
        where: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self._call(self._store.query_records, entity_type, where, limit=limit)
