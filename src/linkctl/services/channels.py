"""ChannelService — seed the destinations links are bound to.

The rule list engine only reads channels; this service is how the CLI
creates them.
"""

from __future__ import annotations

from linkctl.infrastructure.gateway import MutationError
from linkctl.services.base import BaseService
from linkctl.services.notifier import positive
from linkctl.services.result import ServiceResult, failure
from linkctl.services.telemetry import traced


class ChannelService(BaseService):
    """Create channels."""

    @traced
    async def add_channel(self, name: str) -> ServiceResult:
        op = "add_channel"
        name = name.strip()
        if not name:
            return failure(op, "VALIDATION_FAILED", "Channel name must not be empty")
        if self.busy:
            return self._busy_result(op)

        with self._in_flight(op):
            try:
                channel = await self._gateway.create_channel(name)
            except MutationError as exc:
                return self._mutation_failed(op, exc, "Failed to create channel")

        self._notifier.notify(positive("Channel created successfully"))
        return ServiceResult(ok=True, op=op, data={"channel": channel})
