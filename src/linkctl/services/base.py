"""BaseService — foundation for the rule list engine and editing sessions.

Every service receives a :class:`MutationGateway`, a :class:`Notifier`, and
optionally a :class:`PluginManager` at construction time. A service instance
is one *surface*: it runs at most one mutation at a time and refuses further
mutation requests with ``BUSY`` while one is in flight.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from linkctl.services.notifier import NotificationLog, Notifier, negative
from linkctl.services.result import ServiceResult, failure

if TYPE_CHECKING:
    from linkctl.infrastructure.gateway import MutationError, MutationGateway
    from linkctl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class LinkService(BaseService):
            async def delete_link(self, link_id: str) -> ServiceResult:
                if self.busy:
                    return self._busy_result("delete_link")
                with self._in_flight("delete_link"):
                    await self._gateway.delete_link(link_id)
                ...
    """

    def __init__(
        self,
        gateway: MutationGateway,
        *,
        notifier: Notifier | None = None,
        plugins: PluginManager | None = None,
    ) -> None:
        self._gateway = gateway
        self._notifier: Notifier = notifier if notifier is not None else NotificationLog()
        self._plugins = plugins
        self._pending_op: str | None = None

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    # ------------------------------------------------------------------
    # In-flight guard
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        """Whether a mutation of this surface is awaiting the backend."""
        return self._pending_op is not None

    @contextmanager
    def _in_flight(self, op: str) -> Iterator[None]:
        """Mark *op* as the pending mutation for the duration of the block.

        Callers check :attr:`busy` first; the check and the claim happen
        without an ``await`` in between.
        """
        self._pending_op = op
        try:
            yield
        finally:
            self._pending_op = None

    def _busy_result(self, op: str) -> ServiceResult:
        return failure(
            op,
            "BUSY",
            f"Another change is still being saved ({self._pending_op})",
            detail={"pending": self._pending_op},
        )

    # ------------------------------------------------------------------
    # Failure reporting
    # ------------------------------------------------------------------

    def _mutation_failed(
        self,
        op: str,
        exc: MutationError,
        title: str,
    ) -> ServiceResult:
        """Report a backend failure: negative notification plus error result.

        Local state is left untouched by the caller, so the request may be
        retried.
        """
        logger.debug("%s failed: %s (%s)", op, exc.message, exc.code)
        self._notifier.notify(negative(title, exc.message))
        code = exc.code if exc.code in _PASSTHROUGH_CODES else "MUTATION_FAILED"
        return failure(op, code, exc.message, detail=exc.detail)

    # ------------------------------------------------------------------
    # Plugin events
    # ------------------------------------------------------------------

    def _dispatch_event(
        self,
        hook_name: str,
        payload: dict[str, Any],
        warnings: list[str],
    ) -> None:
        """Dispatch a lifecycle event. No-op without a plugin manager.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        if self._plugins is None:
            return
        try:
            self._plugins.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")


_PASSTHROUGH_CODES = frozenset({"NOT_FOUND", "CONFLICT", "UNKNOWN_ENTITY"})
