"""Value envelopes — tagged wrappers for edited field values.

An edited value is always one of two inner shapes:

- ``NullValue(previous)``: the field is explicitly null; ``previous`` keeps
  the last non-null value so toggling null off restores it.
- ``PresentValue(value)``: the field holds a value.

The inner shape is wrapped with its provenance:

- ``CreateValue(inner)``: a record that has no backend identity yet.
- ``UpdateValue(inner, initial)``: an existing record; ``initial`` is the
  snapshot loaded from the backend and never changes.

Pure dataclasses, no infrastructure dependencies.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(frozen=True)
class NullValue:
    """The field is null."""

    kind: ClassVar[str] = "null"

    previous: Any = None


@dataclass(frozen=True)
class PresentValue:
    """The field holds a value."""

    kind: ClassVar[str] = "value"

    value: Any


InnerValue = NullValue | PresentValue


@dataclass(frozen=True)
class CreateValue:
    """Value of a field on a record being created."""

    kind: ClassVar[str] = "create"

    inner: InnerValue


@dataclass(frozen=True)
class UpdateValue:
    """Value of a field on an existing record, with its loaded snapshot."""

    kind: ClassVar[str] = "update"

    inner: InnerValue
    initial: InnerValue

    def is_unchanged(self) -> bool:
        """True when ``inner`` still matches ``initial``.

        Two nulls are equal regardless of their remembered ``previous``.
        """
        if isinstance(self.inner, NullValue) and isinstance(self.initial, NullValue):
            return True
        if isinstance(self.inner, PresentValue) and isinstance(self.initial, PresentValue):
            return bool(self.inner.value == self.initial.value)
        return False


FieldValue = CreateValue | UpdateValue


def wrap(raw: Any, *, previous: Any = None) -> InnerValue:
    """Wrap a raw wire value. ``None`` becomes a :class:`NullValue`."""
    if raw is None:
        return NullValue(previous=previous)
    return PresentValue(value=raw)


def unwrap(inner: InnerValue) -> Any:
    """Return the raw value held by *inner* (``None`` for nulls)."""
    if isinstance(inner, NullValue):
        return None
    return inner.value


def with_inner(value: FieldValue, inner: InnerValue) -> FieldValue:
    """Return a copy of *value* with a new inner shape (provenance kept)."""
    return dataclasses.replace(value, inner=inner)


def toggle_null(value: FieldValue) -> FieldValue:
    """Flip a value between null and present.

    Going null remembers the current value; coming back restores it. A null
    with nothing remembered stays null.
    """
    inner = value.inner
    if isinstance(inner, PresentValue):
        return with_inner(value, NullValue(previous=inner.value))
    if inner.previous is None:
        return value
    return with_inner(value, PresentValue(value=inner.previous))
