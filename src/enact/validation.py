"""
Validation for capabilities, inputs and outputs.

All functions here are pure: they either return normally or raise an
EnactError subclass describing the first violation found.

Schema checks run in a fixed order: type, format, enum, numeric bounds,
pattern, then nested items/properties. A type mismatch stops validation
immediately.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any

from enact.errors import (
    InvalidCapabilityTypeError,
    InvalidEnumError,
    InvalidFormatError,
    InvalidTypeError,
    MissingFieldError,
    MissingRequiredInputError,
    OutOfRangeError,
    PatternMismatchError,
    describe_value,
)
from enact.schema import Capability, Parameter, Schema


REQUIRED_CAPABILITY_FIELDS = ("enact", "id", "description", "version", "type", "tasks", "flow")
CAPABILITY_TYPES = ("atomic", "composite")

FORMAT_PATTERNS: dict[str, re.Pattern[str]] = {
    "email": re.compile(r"^.+@.+\..+$"),
    "date-time": re.compile(
        r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(.\d+)?(Z|[+-]\d{2}:\d{2})$"
    ),
}


# =============================================================================
# Schema Validation
# =============================================================================


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a JSON number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_array(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _matches_type(value: Any, type_name: str) -> bool:
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "number":
        return _is_number(value)
    if type_name == "integer":
        if isinstance(value, float):
            return value.is_integer()
        return _is_number(value)
    if type_name == "boolean":
        return isinstance(value, bool)
    if type_name == "array":
        return _is_array(value)
    if type_name == "object":
        return isinstance(value, Mapping)
    return False


def _json_equal(left: Any, right: Any) -> bool:
    """Deep equality under JSON semantics: booleans never equal numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(_json_equal(left[k], right[k]) for k in left)
    if _is_array(left) and _is_array(right):
        return len(left) == len(right) and all(_json_equal(a, b) for a, b in zip(left, right))
    return left == right


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def validate_against_schema(value: Any, schema: Schema, field: str) -> None:
    """
    Validate a value against a schema.

    Args:
        value: The value to check
        schema: The schema it must satisfy
        field: Label used in error messages (e.g. "name", "output.price")

    Raises:
        SchemaViolationError: The first violated constraint
    """
    if schema.type and not _matches_type(value, schema.type):
        raise InvalidTypeError(
            field_label=field,
            expected=schema.type,
            actual=describe_value(value),
        )

    is_string = isinstance(value, str)

    if schema.format and schema.type == "string":
        matcher = FORMAT_PATTERNS.get(schema.format)
        # Unknown formats are not an error
        if matcher is not None and not matcher.fullmatch(value):
            raise InvalidFormatError(
                field_label=field,
                expected=schema.format,
                actual=describe_value(value),
            )

    if schema.enum is not None and not any(_json_equal(value, allowed) for allowed in schema.enum):
        raise InvalidEnumError(
            field_label=field,
            expected=f"[{', '.join(str(v) for v in schema.enum)}]",
            actual=describe_value(value),
        )

    if _is_number(value):
        if schema.minimum is not None and value < schema.minimum:
            raise OutOfRangeError(
                field_label=field,
                expected=f">= {_format_bound(schema.minimum)}",
                actual=describe_value(value),
            )
        if schema.maximum is not None and value > schema.maximum:
            raise OutOfRangeError(
                field_label=field,
                expected=f"<= {_format_bound(schema.maximum)}",
                actual=describe_value(value),
            )

    if schema.pattern and is_string and not re.search(schema.pattern, value):
        raise PatternMismatchError(
            field_label=field,
            expected=schema.pattern,
            actual=describe_value(value),
        )

    if schema.items is not None and _is_array(value):
        for index, item in enumerate(value):
            validate_against_schema(item, schema.items, f"{field}[{index}]")

    if schema.properties and isinstance(value, Mapping):
        for name, prop_schema in schema.properties.items():
            if name in value:
                validate_against_schema(value[name], prop_schema, f"{field}.{name}")


# =============================================================================
# Capability Validation
# =============================================================================


def validate_capability_structure(capability: Capability) -> None:
    """
    Check that a capability has every required top-level field.

    This is a shallow gate: flow steps are not checked against the task list.

    Raises:
        MissingFieldError: A required field is absent or empty
        InvalidCapabilityTypeError: type is not atomic or composite
    """
    for name in REQUIRED_CAPABILITY_FIELDS:
        if not getattr(capability, name, None):
            raise MissingFieldError(field_name=name, capability_id=capability.id)

    if capability.type not in CAPABILITY_TYPES:
        raise InvalidCapabilityTypeError(
            capability_type=capability.type,
            capability_id=capability.id,
        )


# =============================================================================
# Input / Output Validation
# =============================================================================


def validate_inputs(specs: Sequence[Parameter] | None, values: Mapping[str, Any]) -> None:
    """
    Validate caller inputs against the declared parameters.

    Keys in ``values`` with no declared parameter are ignored.

    Raises:
        MissingRequiredInputError: A required input is absent
        SchemaViolationError: A supplied input violates its schema
    """
    if not specs:
        return

    for spec in specs:
        value = values.get(spec.name)
        if value is None:
            if spec.required:
                raise MissingRequiredInputError(input_name=spec.name)
            continue
        if spec.schema_ is not None:
            validate_against_schema(value, spec.schema_, spec.name)


def apply_input_defaults(
    specs: Sequence[Parameter] | None,
    values: Mapping[str, Any],
) -> dict[str, Any]:
    """Return a copy of ``values`` with schema defaults filled in for absent inputs."""
    resolved = dict(values)
    for spec in specs or ():
        if resolved.get(spec.name) is None and spec.schema_ is not None and spec.schema_.has_default:
            resolved[spec.name] = spec.schema_.default
    return resolved


def format_outputs(
    specs: Sequence[Parameter] | None,
    results: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Collect declared outputs from per-task results.

    For each declared output the first task result (in execution order) that
    defines the name wins. Outputs no task produced map to None.

    Args:
        specs: Declared outputs; when None the raw results are returned
        results: Task id -> result mapping, in execution order

    Raises:
        SchemaViolationError: A produced output violates its schema
    """
    if specs is None:
        return dict(results)

    outputs: dict[str, Any] = {}
    for spec in specs:
        value = None
        for task_result in results.values():
            if isinstance(task_result, Mapping) and task_result.get(spec.name) is not None:
                value = task_result[spec.name]
                break

        if value is not None and spec.schema_ is not None:
            validate_against_schema(value, spec.schema_, f"output.{spec.name}")

        outputs[spec.name] = value

    return outputs
