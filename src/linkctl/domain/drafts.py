"""Filter drafts — editor state for adding or re-editing one filter.

A draft walks through three choices: field, condition (operator), value.
Choosing a field resets the rest; choosing a condition seeds the value with
that condition's initial value. Loading a stored predicate into a draft
and submitting it unchanged reproduces the same predicate.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from linkctl.domain.filters import FilterPredicate

if TYPE_CHECKING:
    from linkctl.domain.schema import EntitySchema


@dataclass(frozen=True)
class FilterDraft:
    field_path: str | None = None
    operator: str | None = None
    value: Any = None

    @classmethod
    def from_predicate(cls, predicate: FilterPredicate) -> FilterDraft:
        return cls(field_path=predicate.field, operator=predicate.operator, value=predicate.value)

    def select_field(self, schema: EntitySchema, path: str) -> FilterDraft:
        """Choose a field. Only filterable fields may be chosen.

        Raises:
            KeyError: If *path* is not a filterable field of *schema*.
        """
        if path not in schema.filterable():
            raise KeyError(path)
        return FilterDraft(field_path=path)

    def select_operator(self, schema: EntitySchema, operator: str) -> FilterDraft:
        """Choose a condition and seed the value with its initial value.

        Raises:
            ValueError: If no field has been chosen yet.
            KeyError: If the chosen field does not offer *operator*.
        """
        if self.field_path is None:
            msg = "Choose a field before choosing a condition"
            raise ValueError(msg)
        op_type = schema.controller(self.field_path).operator_types[operator]
        return dataclasses.replace(self, operator=operator, value=op_type.initial_value)

    def with_value(self, value: Any) -> FilterDraft:
        return dataclasses.replace(self, value=value)

    def with_text(self, schema: EntitySchema, text: str) -> FilterDraft:
        """Set the value from user input, parsed by the chosen field's kind.

        Raises:
            ValueError: If no field has been chosen yet, or *text* does not
                parse as a value of the field's kind.
        """
        if self.field_path is None:
            msg = "Choose a field before entering a value"
            raise ValueError(msg)
        return self.with_value(schema.controller(self.field_path).parse(text))

    @property
    def is_submittable(self) -> bool:
        return self.field_path is not None and self.operator is not None and self.value is not None

    def to_predicate(self) -> FilterPredicate:
        """Freeze the draft into a predicate.

        Raises:
            ValueError: If the draft is incomplete.
        """
        if not self.is_submittable:
            msg = "Filter needs a field, a condition, and a value"
            raise ValueError(msg)
        assert self.field_path is not None and self.operator is not None
        return FilterPredicate(field=self.field_path, operator=self.operator, value=self.value)
