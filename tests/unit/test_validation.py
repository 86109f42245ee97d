"""
Unit tests for schema, capability and input/output validation.

Tests cover:
- Type checks for every primitive type
- Format, enum, bounds and pattern checks
- Nested item/property validation
- Capability structural validation
- Input validation and defaults
- Output formatting
"""

from typing import Any

import pytest

from enact.errors import (
    ERROR_INVALID_ENUM,
    ERROR_INVALID_FORMAT,
    ERROR_INVALID_TYPE,
    ERROR_MISSING_FIELD,
    ERROR_OUT_OF_RANGE,
    ERROR_PATTERN_MISMATCH,
    InvalidCapabilityTypeError,
    InvalidEnumError,
    InvalidFormatError,
    InvalidTypeError,
    MissingFieldError,
    MissingRequiredInputError,
    OutOfRangeError,
    PatternMismatchError,
    SchemaViolationError,
)
from enact.schema import Capability, Parameter, Schema
from enact.validation import (
    apply_input_defaults,
    format_outputs,
    validate_against_schema,
    validate_capability_structure,
    validate_inputs,
)


def param(name: str, required: bool = False, **schema: Any) -> Parameter:
    return Parameter.model_validate({"name": name, "required": required, "schema": schema})


# =============================================================================
# Type Checks
# =============================================================================


class TestTypeValidation:
    """Tests for the type check."""

    @pytest.mark.parametrize(
        ("type_name", "value"),
        [
            ("string", "hello"),
            ("number", 1.5),
            ("number", 3),
            ("integer", 3),
            ("integer", 4.0),
            ("boolean", False),
            ("array", [1, 2]),
            ("object", {"a": 1}),
        ],
    )
    def test_matching_types_pass(self, type_name: str, value: Any) -> None:
        validate_against_schema(value, Schema(type=type_name), "field")

    @pytest.mark.parametrize(
        ("type_name", "value"),
        [
            ("string", 1),
            ("number", "1"),
            ("number", True),
            ("integer", 1.5),
            ("integer", False),
            ("boolean", 0),
            ("array", "abc"),
            ("array", {"a": 1}),
            ("object", [1]),
            ("object", None),
        ],
    )
    def test_mismatched_types_fail(self, type_name: str, value: Any) -> None:
        with pytest.raises(InvalidTypeError) as exc_info:
            validate_against_schema(value, Schema(type=type_name), "field")
        assert exc_info.value.code == ERROR_INVALID_TYPE
        assert exc_info.value.field_label == "field"
        assert exc_info.value.expected == type_name

    def test_unknown_type_rejects(self) -> None:
        with pytest.raises(InvalidTypeError):
            validate_against_schema("x", Schema(type="uuid"), "field")

    def test_type_mismatch_stops_other_checks(self) -> None:
        """A wrong type is reported even if the enum would also fail."""
        schema = Schema(type="string", enum=["a"], pattern="^z$")
        with pytest.raises(InvalidTypeError):
            validate_against_schema(5, schema, "field")

    def test_no_type_accepts_anything(self) -> None:
        validate_against_schema(object(), Schema(), "field")


# =============================================================================
# Format / Enum / Bounds / Pattern
# =============================================================================


class TestFormatValidation:
    """Tests for named formats."""

    def test_valid_email(self) -> None:
        validate_against_schema("ada@example.com", Schema(type="string", format="email"), "email")

    def test_invalid_email(self) -> None:
        with pytest.raises(InvalidFormatError) as exc_info:
            validate_against_schema("not-an-email", Schema(type="string", format="email"), "email")
        assert exc_info.value.code == ERROR_INVALID_FORMAT
        assert "email" in exc_info.value.message

    @pytest.mark.parametrize(
        "value",
        ["2024-05-01T10:20:30Z", "2024-05-01T10:20:30.123Z", "2024-05-01T10:20:30+02:00"],
    )
    def test_valid_date_time(self, value: str) -> None:
        validate_against_schema(value, Schema(type="string", format="date-time"), "at")

    def test_invalid_date_time(self) -> None:
        with pytest.raises(InvalidFormatError):
            validate_against_schema("2024-05-01", Schema(type="string", format="date-time"), "at")

    @pytest.mark.parametrize(
        ("format_name", "value"),
        [("email", "a@b.c\n"), ("date-time", "2024-01-01T00:00:00Z\n")],
    )
    def test_trailing_newline_rejected(self, format_name: str, value: str) -> None:
        with pytest.raises(InvalidFormatError):
            validate_against_schema(value, Schema(type="string", format=format_name), "field")

    def test_unknown_format_ignored(self) -> None:
        validate_against_schema("anything", Schema(type="string", format="hostname"), "host")

    def test_format_only_checked_for_string_type(self) -> None:
        validate_against_schema(1.5, Schema(type="number", format="float"), "price")


class TestEnumValidation:
    """Tests for enumerated values."""

    def test_value_in_enum(self) -> None:
        validate_against_schema("spanish", Schema(type="string", enum=["english", "spanish"]), "lang")

    def test_value_not_in_enum(self) -> None:
        with pytest.raises(InvalidEnumError) as exc_info:
            validate_against_schema("german", Schema(type="string", enum=["english", "spanish"]), "lang")
        assert exc_info.value.code == ERROR_INVALID_ENUM
        assert "english" in exc_info.value.expected
        assert "german" in exc_info.value.actual

    @pytest.mark.parametrize(("value", "allowed"), [(False, [0, 1]), (1, [True]), (0.0, [False])])
    def test_booleans_never_equal_numbers(self, value: Any, allowed: list[Any]) -> None:
        with pytest.raises(InvalidEnumError):
            validate_against_schema(value, Schema(enum=allowed), "flag")

    def test_nested_boolean_not_equal_number(self) -> None:
        with pytest.raises(InvalidEnumError):
            validate_against_schema({"a": [1]}, Schema(enum=[{"a": [True]}]), "obj")

    def test_integer_equals_float(self) -> None:
        validate_against_schema(1.0, Schema(enum=[1, 2]), "n")

    def test_enum_deep_equality(self) -> None:
        schema = Schema(type="object", enum=[{"a": [1, 2]}])
        validate_against_schema({"a": [1, 2]}, schema, "obj")


class TestBoundsValidation:
    """Tests for inclusive numeric bounds."""

    @pytest.mark.parametrize("value", [0, 10, 5.5])
    def test_within_bounds(self, value: float) -> None:
        validate_against_schema(value, Schema(type="number", minimum=0, maximum=10), "n")

    @pytest.mark.parametrize("value", [-1, 11])
    def test_one_unit_outside_fails(self, value: int) -> None:
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_against_schema(value, Schema(type="integer", minimum=0, maximum=10), "n")
        assert exc_info.value.code == ERROR_OUT_OF_RANGE

    def test_message_names_bound(self) -> None:
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_against_schema(0, Schema(type="integer", minimum=1), "count")
        assert exc_info.value.expected == ">= 1"
        assert "count" in exc_info.value.message


class TestPatternValidation:
    """Tests for string patterns."""

    def test_pattern_match(self) -> None:
        validate_against_schema("AAPL", Schema(type="string", pattern="^[A-Z]+$"), "ticker")

    def test_pattern_mismatch(self) -> None:
        with pytest.raises(PatternMismatchError) as exc_info:
            validate_against_schema("aapl", Schema(type="string", pattern="^[A-Z]+$"), "ticker")
        assert exc_info.value.code == ERROR_PATTERN_MISMATCH

    def test_pattern_not_auto_anchored(self) -> None:
        validate_against_schema("xx42yy", Schema(type="string", pattern="[0-9]+"), "code")


class TestNestedValidation:
    """Tests for array items and object properties."""

    def test_array_items_validated(self) -> None:
        schema = Schema.model_validate({"type": "array", "items": {"type": "integer"}})
        with pytest.raises(InvalidTypeError) as exc_info:
            validate_against_schema([1, "two"], schema, "numbers")
        assert exc_info.value.field_label == "numbers[1]"

    def test_object_properties_validated(self) -> None:
        schema = Schema.model_validate(
            {"type": "object", "properties": {"age": {"type": "integer", "minimum": 0}}}
        )
        validate_against_schema({"name": "x"}, schema, "person")
        with pytest.raises(OutOfRangeError) as exc_info:
            validate_against_schema({"age": -3}, schema, "person")
        assert exc_info.value.field_label == "person.age"

    def test_violations_share_base_class(self) -> None:
        with pytest.raises(SchemaViolationError):
            validate_against_schema("x", Schema(type="integer"), "n")


# =============================================================================
# Capability Structure
# =============================================================================


def _capability(**overrides: Any) -> Capability:
    data: dict[str, Any] = {
        "enact": "1.0.0",
        "id": "Cap",
        "description": "A capability",
        "version": "1.0.0",
        "type": "atomic",
        "tasks": [{"id": "t", "type": "script"}],
        "flow": {"steps": [{"task": "t"}]},
    }
    data.update(overrides)
    return Capability.model_validate({k: v for k, v in data.items() if v is not None})


class TestCapabilityStructure:
    """Tests for validate_capability_structure."""

    def test_valid_capability(self) -> None:
        validate_capability_structure(_capability())

    @pytest.mark.parametrize("field", ["enact", "id", "description", "version", "type", "tasks", "flow"])
    def test_missing_field(self, field: str) -> None:
        with pytest.raises(MissingFieldError) as exc_info:
            validate_capability_structure(_capability(**{field: None}))
        assert exc_info.value.code == ERROR_MISSING_FIELD
        assert exc_info.value.field_name == field

    def test_empty_task_list_is_missing(self) -> None:
        with pytest.raises(MissingFieldError):
            validate_capability_structure(_capability(tasks=[]))

    def test_invalid_type(self) -> None:
        with pytest.raises(InvalidCapabilityTypeError) as exc_info:
            validate_capability_structure(_capability(type="workflow"))
        assert exc_info.value.code == ERROR_INVALID_TYPE

    def test_dangling_task_reference_not_checked(self) -> None:
        validate_capability_structure(_capability(flow={"steps": [{"task": "ghost"}]}))


# =============================================================================
# Inputs / Outputs
# =============================================================================


class TestValidateInputs:
    """Tests for validate_inputs."""

    def test_missing_required_input(self) -> None:
        with pytest.raises(MissingRequiredInputError) as exc_info:
            validate_inputs([param("name", required=True, type="string")], {})
        assert exc_info.value.input_name == "name"

    def test_optional_input_may_be_absent(self) -> None:
        validate_inputs([param("name", type="string")], {})

    def test_present_input_validated(self) -> None:
        with pytest.raises(InvalidTypeError):
            validate_inputs([param("count", type="integer")], {"count": "3"})

    def test_extra_inputs_ignored(self) -> None:
        validate_inputs([param("name", type="string")], {"name": "x", "other": 1})

    def test_no_specs(self) -> None:
        validate_inputs(None, {"anything": 1})

    def test_idempotent(self) -> None:
        specs = [param("name", required=True, type="string")]
        outcomes = []
        for _ in range(2):
            with pytest.raises(MissingRequiredInputError) as exc_info:
                validate_inputs(specs, {})
            outcomes.append(exc_info.value.to_dict())
        assert outcomes[0] == outcomes[1]


class TestApplyInputDefaults:
    """Tests for apply_input_defaults."""

    def test_fills_absent_defaults(self) -> None:
        specs = [param("language", type="string", default="english"), param("name", type="string")]
        assert apply_input_defaults(specs, {"name": "Ada"}) == {"name": "Ada", "language": "english"}

    def test_caller_value_wins(self) -> None:
        specs = [param("language", type="string", default="english")]
        assert apply_input_defaults(specs, {"language": "french"}) == {"language": "french"}

    def test_does_not_mutate(self) -> None:
        values = {"name": "Ada"}
        apply_input_defaults([param("x", default=1)], values)
        assert values == {"name": "Ada"}


class TestFormatOutputs:
    """Tests for format_outputs."""

    def test_no_specs_returns_raw_results(self) -> None:
        results = {"a": {"x": 1}, "b": {"y": 2}}
        assert format_outputs(None, results) == results

    def test_first_task_wins(self) -> None:
        results = {"first": {"value": 1}, "second": {"value": 2}}
        assert format_outputs([param("value")], results) == {"value": 1}

    def test_missing_output_is_none(self) -> None:
        assert format_outputs([param("missing")], {"a": {"x": 1}}) == {"missing": None}

    def test_valid_output_round_trips(self) -> None:
        value = {"items": [1, 2, 3]}
        specs = [param("payload", type="object")]
        assert format_outputs(specs, {"t": {"payload": value}})["payload"] == value

    def test_invalid_output_raises(self) -> None:
        with pytest.raises(InvalidTypeError) as exc_info:
            format_outputs([param("price", type="number")], {"t": {"price": "cheap"}})
        assert exc_info.value.field_label == "output.price"
