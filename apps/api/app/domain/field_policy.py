"""Field allow-list and required-field checks applied to write payloads."""

from __future__ import annotations

from typing import Any

from app.domain.entities import describe
from app.errors import ValidationError, ValidationErrorKind


def restrict_to_allowed(entity_name: str, partial_record: dict[str, Any]) -> dict[str, Any]:
    """Reject any field outside the entity's writable set.

    Enum-constrained fields are checked first, then unknown fields, then
    string-only fields. Nothing is dropped: the record is returned as given
    when it passes.
    """
    descriptor = describe(entity_name)

    for field_name, allowed_values in descriptor.enum_constraints.items():
        if field_name not in partial_record:
            continue
        value = partial_record[field_name]
        if not isinstance(value, str) or value not in allowed_values:
            raise ValidationError(
                ValidationErrorKind.INVALID_ENUM,
                field_name,
                f"{field_name} must be one of {', '.join(sorted(allowed_values))}",
            )

    for field_name in partial_record:
        if not descriptor.is_writable(field_name):
            raise ValidationError(
                ValidationErrorKind.UNKNOWN_FIELD,
                field_name,
                f"The property {field_name} is not valid",
            )

    for field_name in descriptor.string_fields:
        if field_name in partial_record and not isinstance(partial_record[field_name], str):
            raise ValidationError(
                ValidationErrorKind.INVALID_VALUE,
                field_name,
                f"The property {field_name} must be a string",
            )

    return partial_record


def enforce_required(entity_name: str, partial_record: dict[str, Any]) -> dict[str, Any]:
    """Require every declared field to be present and non-empty."""
    descriptor = describe(entity_name)
    working_copy = {key: value for key, value in partial_record.items() if key in descriptor.required_fields}

    for field_name in descriptor.required_fields:
        if field_name not in working_copy:
            raise ValidationError(
                ValidationErrorKind.MISSING_FIELD,
                field_name,
                f"The property {field_name} is required",
            )
        value = working_copy[field_name]
        if value is None:
            raise ValidationError(
                ValidationErrorKind.NULL_FIELD,
                field_name,
                f"The property {field_name} cannot be null",
            )
        if value == "":
            raise ValidationError(
                ValidationErrorKind.EMPTY_STRING,
                field_name,
                f"The property {field_name} cannot be an empty string",
            )
        if isinstance(value, (list, tuple, set)) and len(value) == 0:
            raise ValidationError(
                ValidationErrorKind.EMPTY_ARRAY,
                field_name,
                f"The property {field_name} cannot be an empty array",
            )

    return partial_record


__all__ = ["enforce_required", "restrict_to_allowed"]
