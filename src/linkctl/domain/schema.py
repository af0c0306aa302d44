"""Entity schemas — the field descriptor registry.

An :class:`EntitySchema` is loaded once per entity type and bundles its
field descriptors with the controllers built from them. Built-in schemas
are code-baked; config (``[entities.<key>]``) and plugins
(``register_entity_schemas``) may add more through
:func:`register_entity_schema`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from linkctl.domain.fields import (
    FieldController,
    FieldDescriptor,
    FieldKind,
    FilterCapability,
    LengthBounds,
    MatchRule,
    SelectOption,
    ValidationRules,
    build_controller,
)
from linkctl.domain.filters import FilterPredicate, compile_predicate, conjunction


@dataclass(frozen=True)
class EntitySchema:
    """Field descriptors of one entity type, in display order."""

    key: str
    label: str
    label_field: str
    descriptors: tuple[FieldDescriptor, ...]
    _controllers: dict[str, FieldController] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for descriptor in self.descriptors:
            self._controllers[descriptor.path] = build_controller(descriptor)

    @property
    def controllers(self) -> dict[str, FieldController]:
        """Controllers keyed by field path (display order)."""
        return dict(self._controllers)

    def controller(self, path: str) -> FieldController:
        """Controller for *path*.

        Raises:
            KeyError: If the schema has no such field.
        """
        return self._controllers[path]

    def filterable(self) -> dict[str, FieldController]:
        """Controllers that expose a filter capability."""
        return {path: c for path, c in self._controllers.items() if c.filter is not None}

    def capability(self, path: str, operator: str) -> FilterCapability | None:
        """Filter capability of *path* if it offers *operator*, else None."""
        controller = self._controllers.get(path)
        if controller is None or operator not in controller.operator_types:
            return None
        return controller.filter

    def compile_filters(self, filters: Iterable[FilterPredicate]) -> dict[str, Any]:
        """Conjunction of compiled predicates (empty = matches everything).

        Predicates on fields or operators the schema does not offer compile
        case-sensitively.

        Raises:
            ValueError: If an operator maps to no comparison.
        """
        fragments = []
        for predicate in filters:
            capability = self.capability(predicate.field, predicate.operator)
            if capability is not None:
                fragments.append(capability.build_predicate(predicate.operator, predicate.value))
            else:
                fragments.append(
                    compile_predicate(predicate.field, predicate.operator, predicate.value)
                )
        return conjunction(fragments)

    def describe_filter(self, predicate: FilterPredicate) -> str:
        """Readable filter text, e.g. ``Status is exactly: "pending"``."""
        capability = self.capability(predicate.field, predicate.operator)
        if capability is None:
            return f'{predicate.field} {predicate.operator}: "{predicate.value}"'
        return capability.describe(predicate.operator, predicate.value)


ENTITY_REGISTRY: dict[str, EntitySchema] = {}


def register_entity_schema(schema: EntitySchema, *, replace: bool = False) -> None:
    """Add *schema* to :data:`ENTITY_REGISTRY`.

    Raises:
        ValueError: If the key is taken and *replace* is False, or the
            label field is not one of the schema's fields.
    """
    if schema.key in ENTITY_REGISTRY and not replace:
        msg = f"Entity schema already registered: {schema.key!r}"
        raise ValueError(msg)
    if schema.label_field not in {d.path for d in schema.descriptors}:
        msg = f"Label field {schema.label_field!r} is not a field of {schema.key!r}"
        raise ValueError(msg)
    ENTITY_REGISTRY[schema.key] = schema


def get_entity_schema(key: str) -> EntitySchema:
    """Look up a registered schema.

    Raises:
        KeyError: If no schema is registered under *key*.
    """
    return ENTITY_REGISTRY[key]


# ---------------------------------------------------------------------------
# Config-driven schemas
# ---------------------------------------------------------------------------


def descriptor_from_mapping(path: str, spec: Mapping[str, Any]) -> FieldDescriptor:
    """Build a descriptor from a config mapping (one ``[entities.x.fields.y]`` table).

    Raises:
        ValueError: If ``kind`` is missing or unknown.
    """
    kind = FieldKind(str(spec.get("kind", "")))
    match: MatchRule | None = None
    if spec.get("match"):
        match = MatchRule(
            pattern=str(spec["match"]),
            explanation=spec.get("match_explanation"),
        )
    validation = ValidationRules(
        is_required=bool(spec.get("required", False)),
        length=LengthBounds(min=spec.get("min_length"), max=spec.get("max_length")),
        match=match,
        min_value=spec.get("min"),
        max_value=spec.get("max"),
    )
    options = tuple(_option(o) for o in spec.get("options", ()))
    return FieldDescriptor(
        path=path,
        label=str(spec.get("label") or path.replace("_", " ").capitalize()),
        kind=kind,
        validation=validation,
        default_value=spec.get("default"),
        description=spec.get("description"),
        is_nullable=bool(spec.get("nullable", False)),
        insensitive=bool(spec.get("insensitive", False)),
        options=options,
    )


def _option(raw: Any) -> SelectOption:
    if isinstance(raw, Mapping):
        return SelectOption(value=str(raw["value"]), label=str(raw.get("label", raw["value"])))
    return SelectOption(value=str(raw), label=str(raw))


def schema_from_mapping(key: str, spec: Mapping[str, Any]) -> EntitySchema:
    """Build an :class:`EntitySchema` from an ``[entities.<key>]`` table."""
    fields_spec: Mapping[str, Mapping[str, Any]] = spec.get("fields", {})
    descriptors = tuple(descriptor_from_mapping(p, s) for p, s in fields_spec.items())
    label_field = str(spec.get("label_field") or (descriptors[0].path if descriptors else "id"))
    return EntitySchema(
        key=key,
        label=str(spec.get("label") or key.capitalize()),
        label_field=label_field,
        descriptors=descriptors,
    )


# ---------------------------------------------------------------------------
# Built-in schemas
# ---------------------------------------------------------------------------


def _order_descriptors() -> Iterable[FieldDescriptor]:
    yield FieldDescriptor(
        path="order_number",
        label="Order number",
        kind=FieldKind.TEXT,
        validation=ValidationRules(is_required=True, length=LengthBounds(min=1, max=64)),
    )
    yield FieldDescriptor(
        path="email",
        label="Email",
        kind=FieldKind.TEXT,
        validation=ValidationRules(
            match=MatchRule(r"^[^@\s]+@[^@\s]+$", "Email must be a valid email address"),
        ),
        is_nullable=True,
        insensitive=True,
    )
    yield FieldDescriptor(
        path="status",
        label="Status",
        kind=FieldKind.TEXT,
        default_value="pending",
        insensitive=True,
    )
    yield FieldDescriptor(
        path="shop",
        label="Shop",
        kind=FieldKind.TEXT,
        insensitive=True,
    )
    yield FieldDescriptor(
        path="total",
        label="Total",
        kind=FieldKind.INTEGER,
        validation=ValidationRules(min_value=0),
        description="Order total in minor currency units.",
        is_nullable=True,
    )
    yield FieldDescriptor(
        path="currency",
        label="Currency",
        kind=FieldKind.SELECT,
        default_value="USD",
        options=(
            SelectOption("USD", "US Dollar"),
            SelectOption("EUR", "Euro"),
            SelectOption("GBP", "Pound Sterling"),
        ),
    )
    yield FieldDescriptor(
        path="is_priority",
        label="Priority",
        kind=FieldKind.CHECKBOX,
        default_value=False,
    )
    yield FieldDescriptor(
        path="note",
        label="Note",
        kind=FieldKind.TEXT,
        validation=ValidationRules(length=LengthBounds(max=500)),
        is_nullable=True,
    )


def _register_builtin_schemas() -> None:
    """Populate :data:`ENTITY_REGISTRY` with built-in schemas."""
    ENTITY_REGISTRY["order"] = EntitySchema(
        key="order",
        label="Order",
        label_field="order_number",
        descriptors=tuple(_order_descriptors()),
    )


_register_builtin_schemas()
