"""Tests for field controllers and their filter capability."""

from __future__ import annotations

from typing import Any

import pytest

from linkctl.domain.fields import (
    CONTROLLER_REGISTRY,
    CheckboxController,
    FieldDescriptor,
    FieldKind,
    IntegerController,
    LengthBounds,
    MatchRule,
    SelectController,
    SelectOption,
    TextController,
    ValidationRules,
    build_controller,
)
from linkctl.domain.values import CreateValue, NullValue, PresentValue, UpdateValue


def _text(**kwargs: Any) -> TextController:
    descriptor = FieldDescriptor(path="name", label="Name", kind=FieldKind.TEXT, **kwargs)
    return TextController(descriptor)


class TestRegistry:
    def test_every_kind_has_a_controller(self) -> None:
        assert set(CONTROLLER_REGISTRY) == set(FieldKind)

    def test_build_controller(self) -> None:
        descriptor = FieldDescriptor(path="n", label="N", kind=FieldKind.INTEGER)
        assert isinstance(build_controller(descriptor), IntegerController)


class TestEnvelopes:
    def test_default_value_null_without_default(self) -> None:
        assert _text().default_value == CreateValue(inner=NullValue(previous=""))

    def test_default_value_present(self) -> None:
        assert _text(default_value="x").default_value == CreateValue(inner=PresentValue("x"))

    def test_deserialize_snapshot(self) -> None:
        value = _text().deserialize({"name": "Jane"})
        assert value == UpdateValue(inner=PresentValue("Jane"), initial=PresentValue("Jane"))

    def test_deserialize_missing_is_null(self) -> None:
        value = _text().deserialize({})
        assert isinstance(value.inner, NullValue)

    def test_serialize(self) -> None:
        controller = _text()
        assert controller.serialize(CreateValue(inner=PresentValue("a"))) == {"name": "a"}
        assert controller.serialize(CreateValue(inner=NullValue(previous="a"))) == {"name": None}


class TestTextValidation:
    def test_required(self) -> None:
        controller = _text(validation=ValidationRules(is_required=True))
        messages = controller.validation_messages(CreateValue(inner=NullValue()))
        assert messages == ["Name is required"]

    def test_optional_null_is_valid(self) -> None:
        assert _text().validate(CreateValue(inner=NullValue()))

    def test_length_bounds(self) -> None:
        controller = _text(validation=ValidationRules(length=LengthBounds(min=3, max=5)))
        assert controller.validation_messages(CreateValue(inner=PresentValue("ab"))) == [
            "Name must be at least 3 characters long"
        ]
        assert controller.validation_messages(CreateValue(inner=PresentValue("abcdef"))) == [
            "Name must be no longer than 5 characters"
        ]
        assert controller.validate(CreateValue(inner=PresentValue("abcd")))

    def test_min_length_one_reads_not_empty(self) -> None:
        controller = _text(validation=ValidationRules(length=LengthBounds(min=1)))
        assert controller.validation_messages(CreateValue(inner=PresentValue(""))) == [
            "Name must not be empty"
        ]

    def test_match_explanation(self) -> None:
        rule = MatchRule(r"^\d+$", "Name must be digits")
        controller = _text(validation=ValidationRules(match=rule))
        assert controller.validation_messages(CreateValue(inner=PresentValue("x1"))) == [
            "Name must be digits"
        ]

    def test_unchanged_update_is_always_valid(self) -> None:
        controller = _text(validation=ValidationRules(is_required=True))
        value = UpdateValue(inner=NullValue(), initial=NullValue())
        assert controller.validate(value)


class TestIntegerController:
    @pytest.fixture
    def controller(self) -> IntegerController:
        descriptor = FieldDescriptor(
            path="total",
            label="Total",
            kind=FieldKind.INTEGER,
            validation=ValidationRules(min_value=0, max_value=10),
        )
        return IntegerController(descriptor)

    def test_bounds(self, controller: IntegerController) -> None:
        assert controller.validation_messages(CreateValue(inner=PresentValue(-1))) == [
            "Total must be at least 0"
        ]
        assert controller.validation_messages(CreateValue(inner=PresentValue(11))) == [
            "Total must be no greater than 10"
        ]

    def test_unchanged_compares_serialized_values(self, controller: IntegerController) -> None:
        value = UpdateValue(inner=PresentValue(None), initial=NullValue())
        assert controller.is_unchanged(value)
        assert controller.validate(value)
        assert not controller.is_unchanged(UpdateValue(inner=PresentValue(3), initial=NullValue()))

    def test_rejects_bool(self, controller: IntegerController) -> None:
        assert not controller.validate(CreateValue(inner=PresentValue(True)))

    def test_parse(self, controller: IntegerController) -> None:
        assert controller.parse(" 42 ") == 42
        with pytest.raises(ValueError):
            controller.parse("4.2")


class TestCheckboxController:
    @pytest.fixture
    def controller(self) -> CheckboxController:
        descriptor = FieldDescriptor(path="flag", label="Flag", kind=FieldKind.CHECKBOX)
        return CheckboxController(descriptor)

    def test_default_is_unchecked(self, controller: CheckboxController) -> None:
        assert controller.default_value == CreateValue(inner=PresentValue(False))

    @pytest.mark.parametrize(("text", "expected"), [("yes", True), ("0", False), ("TRUE", True)])
    def test_parse(self, controller: CheckboxController, text: str, expected: bool) -> None:
        assert controller.parse(text) is expected

    def test_parse_rejects_other_words(self, controller: CheckboxController) -> None:
        with pytest.raises(ValueError, match="Not a boolean"):
            controller.parse("maybe")


class TestSelectController:
    @pytest.fixture
    def controller(self) -> SelectController:
        descriptor = FieldDescriptor(
            path="currency",
            label="Currency",
            kind=FieldKind.SELECT,
            options=(SelectOption("USD", "US Dollar"), SelectOption("EUR", "Euro")),
        )
        return SelectController(descriptor)

    def test_parse_by_value_or_label(self, controller: SelectController) -> None:
        assert controller.parse("EUR") == "EUR"
        assert controller.parse("US Dollar") == "USD"

    def test_parse_unknown(self, controller: SelectController) -> None:
        with pytest.raises(ValueError, match="Unknown option"):
            controller.parse("JPY")

    def test_validation(self, controller: SelectController) -> None:
        assert controller.validation_messages(CreateValue(inner=PresentValue("JPY"))) == [
            "Currency must be one of: USD, EUR"
        ]

    def test_operator_initial_is_first_option(self, controller: SelectController) -> None:
        assert controller.operator_types["is"].initial_value == "USD"


class TestFilterCapability:
    def test_text_operators_and_initial_values(self) -> None:
        capability = _text().filter
        assert capability is not None
        assert "contains_i" in capability.operator_types
        assert capability.operator_types["is_i"].initial_value == ""

    def test_build_predicate_uses_insensitive_flag(self) -> None:
        capability = _text(insensitive=True).filter
        assert capability is not None
        assert capability.build_predicate("is_i", "x") == {
            "name": {"equals": "x", "mode": "insensitive"}
        }

    def test_build_predicate_rejects_foreign_operator(self) -> None:
        capability = _text().filter
        assert capability is not None
        with pytest.raises(KeyError):
            capability.build_predicate("gte", 1)

    def test_describe(self) -> None:
        capability = _text().filter
        assert capability is not None
        assert capability.describe("is_i", "Jane") == 'Name is exactly: "Jane"'

    def test_describe_uses_option_labels(self) -> None:
        descriptor = FieldDescriptor(
            path="currency",
            label="Currency",
            kind=FieldKind.SELECT,
            options=(SelectOption("EUR", "Euro"),),
        )
        capability = SelectController(descriptor).filter
        assert capability is not None
        assert capability.format("is", "EUR") == 'is: "Euro"'

    @pytest.mark.parametrize(
        ("kind", "value", "message"),
        [
            (FieldKind.INTEGER, "100", "Total must be a whole number"),
            (FieldKind.INTEGER, True, "Total must be a whole number"),
            (FieldKind.CHECKBOX, "yes", "Total must be checked or unchecked"),
            (FieldKind.TEXT, 5, "Total must be text"),
        ],
    )
    def test_value_of_wrong_kind(self, kind: FieldKind, value: Any, message: str) -> None:
        descriptor = FieldDescriptor(path="total", label="Total", kind=kind)
        capability = build_controller(descriptor).filter
        assert capability is not None
        assert capability.value_messages(value) == [message]

    def test_value_ignores_stored_value_rules(self) -> None:
        capability = _text(validation=ValidationRules(length=LengthBounds(min=5))).filter
        assert capability is not None
        assert capability.value_messages("ab") == []
