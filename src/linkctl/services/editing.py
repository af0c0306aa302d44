"""EditSession — the value editing state machine for one record.

A session starts in *create* mode with every field at its default value, or
switches to *update* mode by loading an existing record (every field then
remembers its loaded ``initial`` snapshot). Submission:

1. validates every field; any failure sets ``force_validation`` and stops,
2. sends only the fields whose serialized value differs from the default
   (create) or the initial snapshot (update),
3. on success notifies ``<label>: Created Successfully`` / ``Saved
   Successfully`` and releases the navigation guard.

While the session holds unsaved changes it engages an injected
:class:`NavigationGuard`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal

from linkctl.domain.values import (
    FieldValue,
    NullValue,
    PresentValue,
    UpdateValue,
    toggle_null,
    with_inner,
)
from linkctl.infrastructure.gateway import MutationError
from linkctl.services.base import BaseService
from linkctl.services.notifier import positive
from linkctl.services.result import ServiceResult, failure
from linkctl.services.telemetry import traced

if TYPE_CHECKING:
    from linkctl.domain.fields import FieldController
    from linkctl.domain.schema import EntitySchema
    from linkctl.infrastructure.gateway import MutationGateway
    from linkctl.plugins.manager import PluginManager
    from linkctl.services.notifier import Notifier

logger = logging.getLogger(__name__)

Mode = Literal["create", "update"]
State = Literal["editing", "loading", "created"]


class NavigationGuard:
    """Blocks leaving a surface while an editing session has unsaved changes.

    Injected into sessions; one session holds it at a time. Only the holder
    can release it.
    """

    def __init__(self) -> None:
        self._holder: object | None = None

    @property
    def engaged(self) -> bool:
        return self._holder is not None

    def engage(self, holder: object) -> None:
        self._holder = holder

    def release(self, holder: object) -> None:
        if self._holder is holder:
            self._holder = None

    def may_leave(self) -> bool:
        """Whether navigating away would lose no unsaved changes."""
        return self._holder is None


class EditSession(BaseService):
    """Create or update one record of an entity schema."""

    def __init__(
        self,
        gateway: MutationGateway,
        schema: EntitySchema,
        *,
        notifier: Notifier | None = None,
        plugins: PluginManager | None = None,
        guard: NavigationGuard | None = None,
    ) -> None:
        super().__init__(gateway, notifier=notifier, plugins=plugins)
        self._schema = schema
        self._guard = guard
        self._mode: Mode = "create"
        self._record_id: str | None = None
        self._label: str | None = None
        self._created = False
        self._force_validation = False
        self._values: dict[str, FieldValue] = self._defaults()

    def _defaults(self) -> dict[str, FieldValue]:
        return {path: c.default_value for path, c in self._schema.controllers.items()}

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def schema(self) -> EntitySchema:
        return self._schema

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def record_id(self) -> str | None:
        return self._record_id

    @property
    def label(self) -> str | None:
        return self._label

    @property
    def values(self) -> dict[str, FieldValue]:
        return dict(self._values)

    @property
    def force_validation(self) -> bool:
        return self._force_validation

    @property
    def state(self) -> State:
        if self.busy:
            return "loading"
        if self._created:
            return "created"
        return "editing"

    def changed_data(self) -> dict[str, Any]:
        """Wire payload of every field that differs from its baseline."""
        data: dict[str, Any] = {}
        for path, controller in self._schema.controllers.items():
            serialized = controller.serialize(self._values[path])
            if serialized != controller.serialize(self._baseline(controller)):
                data.update(serialized)
        return data

    def _baseline(self, controller: FieldController) -> FieldValue:
        value = self._values[controller.path]
        if isinstance(value, UpdateValue):
            return UpdateValue(inner=value.initial, initial=value.initial)
        return controller.default_value

    def invalid_fields(self) -> dict[str, list[str]]:
        """Validation messages of every invalid field, keyed by path."""
        invalid: dict[str, list[str]] = {}
        for path, controller in self._schema.controllers.items():
            messages = controller.validation_messages(self._values[path])
            if messages:
                invalid[path] = messages
        return invalid

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def set_value(self, path: str, raw: Any) -> ServiceResult:
        """Set a field to a raw value (``None`` makes it null)."""
        op = "set_value"
        if path not in self._values:
            return self._unknown_field(op, path)
        current = self._values[path]
        if raw is None:
            previous = current.inner.value if isinstance(current.inner, PresentValue) else None
            inner: NullValue | PresentValue = NullValue(previous=previous)
        else:
            inner = PresentValue(value=raw)
        self._values[path] = with_inner(current, inner)
        return self._changed(op, path)

    def set_text(self, path: str, text: str) -> ServiceResult:
        """Parse user text with the field's controller, then set it."""
        op = "set_value"
        if path not in self._values:
            return self._unknown_field(op, path)
        controller = self._schema.controller(path)
        try:
            raw = controller.parse(text)
        except ValueError as exc:
            return failure(op, "VALIDATION_FAILED", str(exc), detail={"field": path})
        return self.set_value(path, raw)

    def set_null(self, path: str) -> ServiceResult:
        """Toggle a nullable field between null and its remembered value."""
        op = "set_null"
        if path not in self._values:
            return self._unknown_field(op, path)
        controller = self._schema.controller(path)
        current = self._values[path]
        if isinstance(current.inner, PresentValue) and not controller.descriptor.is_nullable:
            return failure(op, "VALIDATION_FAILED", f"{controller.label} cannot be empty")
        self._values[path] = toggle_null(current)
        return self._changed(op, path)

    def _changed(self, op: str, path: str) -> ServiceResult:
        self._sync_guard()
        return ServiceResult(
            ok=True,
            op=op,
            data={"field": path, "changed": sorted(self.changed_data())},
        )

    def _unknown_field(self, op: str, path: str) -> ServiceResult:
        return failure(
            op,
            "UNKNOWN_FIELD",
            f"{self._schema.label} has no field {path!r}",
            detail={"available": list(self._values)},
        )

    def _sync_guard(self) -> None:
        if self._guard is None:
            return
        if self.changed_data() and not self._created:
            self._guard.engage(self)
        else:
            self._guard.release(self)

    def discard(self) -> ServiceResult:
        """Drop unsaved changes and release the navigation guard."""
        if self._mode == "update":
            self._values = {
                path: UpdateValue(inner=v.initial, initial=v.initial)
                for path, v in self._values.items()
                if isinstance(v, UpdateValue)
            }
        else:
            self._values = self._defaults()
        self._force_validation = False
        if self._guard is not None:
            self._guard.release(self)
        return ServiceResult(ok=True, op="discard", data={"mode": self._mode})

    # ------------------------------------------------------------------
    # Backend
    # ------------------------------------------------------------------

    @traced
    async def load(self, record_id: str) -> ServiceResult:
        """Switch to update mode on an existing record."""
        op = "load_record"
        if self.busy:
            return self._busy_result(op)
        with self._in_flight(op):
            try:
                record = await self._gateway.get_record(record_id)
            except MutationError as exc:
                return failure(op, exc.code, exc.message, detail=exc.detail)

        if record["entity_type"] != self._schema.key:
            return failure(
                op,
                "NOT_FOUND",
                f"No {self._schema.label.lower()} found with ID '{record_id}'",
            )

        data = record.get("data") or {}
        self._values = {
            path: controller.deserialize(data)
            for path, controller in self._schema.controllers.items()
        }
        self._mode = "update"
        self._record_id = record["id"]
        self._label = record.get("label") or record["id"]
        self._created = False
        self._force_validation = False
        self._sync_guard()
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": self._record_id, "label": self._label, "data": data},
        )

    @traced
    async def submit(self) -> ServiceResult:
        """Validate, then create or update the record with the changed fields."""
        op = "create_record" if self._mode == "create" else "update_record"
        if self.busy:
            return self._busy_result(op)

        invalid = self.invalid_fields()
        self._force_validation = bool(invalid)
        if invalid:
            return failure(
                op,
                "VALIDATION_FAILED",
                "; ".join(m for messages in invalid.values() for m in messages),
                detail={"fields": invalid},
            )

        data = self.changed_data()
        if self._mode == "update" and not data:
            return ServiceResult(
                ok=True,
                op=op,
                data={"id": self._record_id, "label": self._label, "fields": []},
                warnings=["No changes to save"],
            )

        with self._in_flight(op):
            try:
                if self._mode == "create":
                    item = await self._gateway.create_record(self._schema.key, data)
                else:
                    assert self._record_id is not None
                    item = await self._gateway.update_record(
                        self._schema.key, self._record_id, data
                    )
            except MutationError as exc:
                title = "Failed to create item" if self._mode == "create" else "Failed to save item"
                return self._mutation_failed(op, exc, title)

        created = self._mode == "create"
        self._record_id = str(item["id"])
        self._label = item.get("label") or self._record_id
        if created:
            self._created = True
        else:
            # The saved values become the new baseline.
            self._values = {
                path: UpdateValue(inner=v.inner, initial=v.inner)
                for path, v in self._values.items()
            }
        if self._guard is not None:
            self._guard.release(self)

        message = "Created Successfully" if created else "Saved Successfully"
        self._notifier.notify(positive(self._label, message))
        logger.debug("%s %s (%s)", op, self._record_id, ", ".join(sorted(data)))

        warnings: list[str] = []
        self._dispatch_event(
            "post_record_save",
            {
                "entity_type": self._schema.key,
                "record_id": self._record_id,
                "created": created,
                "fields_changed": sorted(data),
            },
            warnings,
        )
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": self._record_id, "label": self._label, "fields": sorted(data)},
            warnings=warnings,
        )
