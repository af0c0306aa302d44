"""Field descriptors and the closed set of field controllers.

A :class:`FieldDescriptor` is the immutable metadata bundle for one field
of an entity schema. A :class:`FieldController` wraps a descriptor with the
behavior of its kind through a fixed capability interface:

- ``default_value`` / ``deserialize`` build value envelopes,
- ``serialize`` turns an envelope into its wire dict,
- ``validate`` / ``validation_messages`` check an envelope,
- ``filter`` exposes the optional filter capability (operator types,
  predicate building, display formatting).

The set of kinds is closed: :data:`CONTROLLER_REGISTRY` maps every
:class:`FieldKind` to exactly one controller class.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, ClassVar

from linkctl.domain.filters import compile_predicate
from linkctl.domain.values import (
    CreateValue,
    FieldValue,
    NullValue,
    PresentValue,
    UpdateValue,
    unwrap,
    wrap,
)


class FieldKind(StrEnum):
    """Supported field kinds."""

    TEXT = "text"
    INTEGER = "integer"
    CHECKBOX = "checkbox"
    SELECT = "select"


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LengthBounds:
    """Inclusive length limits for text values (None = unbounded)."""

    min: int | None = None
    max: int | None = None


@dataclass(frozen=True)
class MatchRule:
    """Regex a text value must match, with an optional human explanation."""

    pattern: str
    explanation: str | None = None
    flags: int = 0

    @property
    def regex(self) -> re.Pattern[str]:
        return re.compile(self.pattern, self.flags)


@dataclass(frozen=True)
class ValidationRules:
    """Validation rules for a field. Unused rules are ignored per kind."""

    is_required: bool = False
    length: LengthBounds = field(default_factory=LengthBounds)
    match: MatchRule | None = None
    min_value: int | None = None
    max_value: int | None = None


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str


@dataclass(frozen=True)
class FieldDescriptor:
    """Immutable metadata for one field of an entity schema."""

    path: str
    label: str
    kind: FieldKind
    validation: ValidationRules = field(default_factory=ValidationRules)
    default_value: Any = None
    description: str | None = None
    is_nullable: bool = False
    insensitive: bool = False  # compile filters with case-insensitive mode
    options: tuple[SelectOption, ...] = ()


@dataclass(frozen=True)
class OperatorType:
    """One filter condition offered by a field kind."""

    label: str
    initial_value: Any


# ---------------------------------------------------------------------------
# Filter capability
# ---------------------------------------------------------------------------


class FilterCapability:
    """Filter sub-protocol of a controller."""

    def __init__(self, controller: FieldController) -> None:
        self._controller = controller

    @property
    def operator_types(self) -> dict[str, OperatorType]:
        return self._controller.operator_types

    def build_predicate(self, operator: str, value: Any) -> dict[str, Any]:
        """Compile ``(operator, value)`` into a where fragment for this field.

        Raises:
            KeyError: If the operator is not offered by this field kind.
        """
        if operator not in self.operator_types:
            raise KeyError(operator)
        descriptor = self._controller.descriptor
        return compile_predicate(
            descriptor.path,
            operator,
            value,
            insensitive=descriptor.insensitive,
        )

    def value_messages(self, value: Any) -> list[str]:
        """Why *value* can never match this field, if it cannot.

        Only the kind is checked. Length and pattern rules apply to stored
        values, not to the fragments a filter compares against.
        """
        return self._controller.kind_messages(value)

    def format(self, operator: str, value: Any) -> str:
        """Condition text, e.g. ``is exactly: "pending"``."""
        op_type = self.operator_types.get(operator)
        label = op_type.label if op_type is not None else operator
        return f'{label.lower()}: "{self._controller.format_value(value)}"'

    def describe(self, operator: str, value: Any) -> str:
        """Full readable filter, e.g. ``Status is exactly: "pending"``."""
        return f"{self._controller.label} {self.format(operator, value)}"


# ---------------------------------------------------------------------------
# Controller interface
# ---------------------------------------------------------------------------


class FieldController(ABC):
    """Behavior bundle for one field kind.

    Subclasses provide ``kind_messages`` (is the value of this kind at all),
    ``_check`` (full validation of a present value),
    ``parse`` (text input to a value), and ``operator_types``.
    """

    kind: ClassVar[FieldKind]
    # Value remembered by a null that was never non-null.
    empty_value: ClassVar[Any] = None

    def __init__(self, descriptor: FieldDescriptor) -> None:
        self._descriptor = descriptor

    @property
    def descriptor(self) -> FieldDescriptor:
        return self._descriptor

    @property
    def path(self) -> str:
        return self._descriptor.path

    @property
    def label(self) -> str:
        return self._descriptor.label

    # -- envelopes ------------------------------------------------------

    @property
    def default_value(self) -> CreateValue:
        return CreateValue(inner=wrap(self._descriptor.default_value, previous=self.empty_value))

    def deserialize(self, data: dict[str, Any]) -> UpdateValue:
        """Build an update envelope from a loaded record's data."""
        inner = wrap(data.get(self.path), previous=self.empty_value)
        return UpdateValue(inner=inner, initial=inner)

    def serialize(self, value: FieldValue) -> dict[str, Any]:
        return {self.path: unwrap(value.inner)}

    # -- validation -----------------------------------------------------

    def validation_messages(self, value: FieldValue) -> list[str]:
        # Unchanged values on an existing record are never sent, and may be
        # null only because the field is not readable.
        if isinstance(value, UpdateValue) and self.is_unchanged(value):
            return []
        if isinstance(value.inner, NullValue):
            if self._descriptor.validation.is_required:
                return [f"{self.label} is required"]
            return []
        return self._check(value.inner.value)

    def is_unchanged(self, value: UpdateValue) -> bool:
        """True when *value* serializes exactly like its loaded snapshot."""
        initial = UpdateValue(inner=value.initial, initial=value.initial)
        return self.serialize(value) == self.serialize(initial)

    def validate(self, value: FieldValue) -> bool:
        return not self.validation_messages(value)

    @abstractmethod
    def kind_messages(self, raw: Any) -> list[str]:
        """Messages when *raw* is not a value of this kind."""
        ...

    @abstractmethod
    def _check(self, raw: Any) -> list[str]:
        """Validation messages for a present value."""
        ...

    # -- input / display ------------------------------------------------

    @abstractmethod
    def parse(self, text: str) -> Any:
        """Convert user text input into a value of this kind.

        Raises:
            ValueError: If *text* cannot be converted.
        """
        ...

    def format_value(self, value: Any) -> str:
        return "" if value is None else str(value)

    # -- filter ---------------------------------------------------------

    @property
    @abstractmethod
    def operator_types(self) -> dict[str, OperatorType]:
        """Filter conditions offered by this kind (empty = not filterable)."""
        ...

    @property
    def filter(self) -> FilterCapability | None:
        if not self.operator_types:
            return None
        return FilterCapability(self)


# ---------------------------------------------------------------------------
# Concrete controllers
# ---------------------------------------------------------------------------


_TEXT_OPERATORS: dict[str, OperatorType] = {
    "contains_i": OperatorType("Contains", ""),
    "not_contains_i": OperatorType("Does not contain", ""),
    "is_i": OperatorType("Is exactly", ""),
    "not_i": OperatorType("Is not exactly", ""),
    "starts_with_i": OperatorType("Starts with", ""),
    "not_starts_with_i": OperatorType("Does not start with", ""),
    "ends_with_i": OperatorType("Ends with", ""),
    "not_ends_with_i": OperatorType("Does not end with", ""),
}

_INTEGER_OPERATORS: dict[str, OperatorType] = {
    "is": OperatorType("Is exactly", None),
    "not": OperatorType("Is not exactly", None),
    "lt": OperatorType("Is less than", None),
    "lte": OperatorType("Is less than or equal to", None),
    "gt": OperatorType("Is greater than", None),
    "gte": OperatorType("Is greater than or equal to", None),
}

_CHECKBOX_OPERATORS: dict[str, OperatorType] = {
    "is": OperatorType("Is", True),
    "not": OperatorType("Is not", True),
}

_TRUE_WORDS = frozenset({"true", "yes", "y", "1", "on"})
_FALSE_WORDS = frozenset({"false", "no", "n", "0", "off"})


class TextController(FieldController):
    """Free text. Length bounds and pattern match."""

    kind = FieldKind.TEXT
    empty_value = ""

    def kind_messages(self, raw: Any) -> list[str]:
        if not isinstance(raw, str):
            return [f"{self.label} must be text"]
        return []

    def _check(self, raw: Any) -> list[str]:
        if not isinstance(raw, str):
            return self.kind_messages(raw)

        label = self.label
        rules = self._descriptor.validation
        messages: list[str] = []
        if rules.length.min is not None and len(raw) < rules.length.min:
            if rules.length.min == 1:
                messages.append(f"{label} must not be empty")
            else:
                messages.append(f"{label} must be at least {rules.length.min} characters long")
        if rules.length.max is not None and len(raw) > rules.length.max:
            messages.append(f"{label} must be no longer than {rules.length.max} characters")
        if rules.match is not None and rules.match.regex.search(raw) is None:
            messages.append(rules.match.explanation or f"{label} must match {rules.match.pattern}")
        return messages

    def parse(self, text: str) -> str:
        return text

    @property
    def operator_types(self) -> dict[str, OperatorType]:
        return _TEXT_OPERATORS


class IntegerController(FieldController):
    """Whole numbers with optional inclusive bounds."""

    kind = FieldKind.INTEGER

    def kind_messages(self, raw: Any) -> list[str]:
        if isinstance(raw, bool) or not isinstance(raw, int):
            return [f"{self.label} must be a whole number"]
        return []

    def _check(self, raw: Any) -> list[str]:
        if isinstance(raw, bool) or not isinstance(raw, int):
            return self.kind_messages(raw)

        label = self.label
        rules = self._descriptor.validation
        messages: list[str] = []
        if rules.min_value is not None and raw < rules.min_value:
            messages.append(f"{label} must be at least {rules.min_value}")
        if rules.max_value is not None and raw > rules.max_value:
            messages.append(f"{label} must be no greater than {rules.max_value}")
        return messages

    def parse(self, text: str) -> int:
        return int(text.strip())

    @property
    def operator_types(self) -> dict[str, OperatorType]:
        return _INTEGER_OPERATORS


class CheckboxController(FieldController):
    """Boolean flag. Never null: a missing default means unchecked."""

    kind = FieldKind.CHECKBOX
    empty_value = False

    @property
    def default_value(self) -> CreateValue:
        return CreateValue(inner=PresentValue(bool(self._descriptor.default_value)))

    def kind_messages(self, raw: Any) -> list[str]:
        if not isinstance(raw, bool):
            return [f"{self.label} must be checked or unchecked"]
        return []

    def _check(self, raw: Any) -> list[str]:
        return self.kind_messages(raw)

    def parse(self, text: str) -> bool:
        word = text.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        msg = f"Not a boolean: {text!r}"
        raise ValueError(msg)

    def format_value(self, value: Any) -> str:
        return "checked" if value else "unchecked"

    @property
    def operator_types(self) -> dict[str, OperatorType]:
        return _CHECKBOX_OPERATORS


class SelectController(FieldController):
    """One value out of a fixed list of options."""

    kind = FieldKind.SELECT

    def kind_messages(self, raw: Any) -> list[str]:
        allowed = [option.value for option in self._descriptor.options]
        if raw not in allowed:
            return [f"{self.label} must be one of: {', '.join(allowed)}"]
        return []

    def _check(self, raw: Any) -> list[str]:
        return self.kind_messages(raw)

    def parse(self, text: str) -> str:
        value = text.strip()
        for option in self._descriptor.options:
            if value in (option.value, option.label):
                return option.value
        msg = f"Unknown option for {self.label}: {text!r}"
        raise ValueError(msg)

    def format_value(self, value: Any) -> str:
        for option in self._descriptor.options:
            if option.value == value:
                return option.label
        return super().format_value(value)

    @property
    def operator_types(self) -> dict[str, OperatorType]:
        initial = self._descriptor.options[0].value if self._descriptor.options else None
        return {
            "is": OperatorType("Is", initial),
            "not": OperatorType("Is not", initial),
        }


CONTROLLER_REGISTRY: dict[FieldKind, type[FieldController]] = {
    FieldKind.TEXT: TextController,
    FieldKind.INTEGER: IntegerController,
    FieldKind.CHECKBOX: CheckboxController,
    FieldKind.SELECT: SelectController,
}


def build_controller(descriptor: FieldDescriptor) -> FieldController:
    """Instantiate the controller for *descriptor*'s kind."""
    return CONTROLLER_REGISTRY[descriptor.kind](descriptor)
