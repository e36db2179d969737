"""Record validation service for validating record data against collection schemas.

Checks a record payload (field slug -> value) against the collection's
``Field`` definitions and applies default values. Validation never raises:
every problem is returned as a ``FieldError`` and all keys are checked, so a
caller always sees the complete list.

Values are never coerced across types here; a valid value is copied into the
normalized payload unchanged.
"""

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from folio.domain.entities.collection import Field, FieldType

DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


@dataclass(frozen=True)
class FieldError:
    """A single record validation error."""

    field: str
    message: str
    code: str


@dataclass
class ValidationResult:
    """Outcome of validating one record payload.

    Attributes:
        valid: True when no errors were found.
        errors: Every problem found, in schema order after unknown keys.
        normalized: Payload to persist, defaults applied.
    """

    valid: bool
    errors: list[FieldError] = field(default_factory=list)
    normalized: dict[str, Any] = field(default_factory=dict)


def _choice_values(options: dict[str, Any]) -> set[str]:
    """Allowed values of a select field; choices are ``{value, label}`` or plain strings."""
    values: set[str] = set()
    choices = options.get("choices")
    if not isinstance(choices, list):
        return values
    for choice in choices:
        if isinstance(choice, dict):
            choice = choice.get("value")
        # Malformed choices can never match a string value
        if isinstance(choice, str):
            values.add(choice)
    return values


def _bound_option(f: Field, key: str) -> tuple[int | float | None, FieldError | None]:
    """Read a numeric bound from field options; a non-numeric bound is a field error."""
    bound = f.options.get(key)
    if bound is None:
        return None, None
    if isinstance(bound, bool) or not isinstance(bound, (int, float)):
        return None, FieldError(
            field=f.slug,
            message=f"Field option '{key}' must be a number, got {type(bound).__name__}",
            code="invalid_option",
        )
    return bound, None


class RecordValidator:
    """Validator for record data against collection schemas.

    Validates field types and options, required fields, and applies default
    values. Field types this version does not know are accepted as is.
    """

    @classmethod
    def validate_text(cls, value: Any, f: Field) -> FieldError | None:
        """Validate a text or textarea value, including length and pattern options."""
        if not isinstance(value, str):
            return FieldError(
                field=f.slug,
                message=f"Expected text value, got {type(value).__name__}",
                code="invalid_type",
            )

        min_length, error = _bound_option(f, "minLength")
        if error:
            return error
        if min_length is not None and len(value) < min_length:
            return FieldError(
                field=f.slug,
                message=f"Must be at least {min_length} characters",
                code="too_short",
            )

        max_length, error = _bound_option(f, "maxLength")
        if error:
            return error
        if max_length is not None and len(value) > max_length:
            return FieldError(
                field=f.slug,
                message=f"Must be at most {max_length} characters",
                code="too_long",
            )

        pattern = f.options.get("pattern")
        if pattern:
            try:
                compiled = re.compile(pattern)
            except (re.error, TypeError):
                return FieldError(
                    field=f.slug,
                    message=f"Field pattern '{pattern}' is not a valid regular expression",
                    code="invalid_pattern",
                )
            if not compiled.search(value):
                return FieldError(
                    field=f.slug,
                    message=f"Value does not match pattern '{pattern}'",
                    code="pattern_mismatch",
                )

        return None

    @classmethod
    def validate_number(cls, value: Any, f: Field) -> FieldError | None:
        """Validate a number value and its min/max bounds."""
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return FieldError(
                field=f.slug,
                message=f"Expected number value, got {type(value).__name__}",
                code="invalid_type",
            )
        if isinstance(value, float) and not math.isfinite(value):
            return FieldError(
                field=f.slug,
                message="Number must be finite",
                code="invalid_type",
            )

        minimum, error = _bound_option(f, "min")
        if error:
            return error
        if minimum is not None and value < minimum:
            return FieldError(
                field=f.slug,
                message=f"Must be greater than or equal to {minimum}",
                code="below_min",
            )

        maximum, error = _bound_option(f, "max")
        if error:
            return error
        if maximum is not None and value > maximum:
            return FieldError(
                field=f.slug,
                message=f"Must be less than or equal to {maximum}",
                code="above_max",
            )

        return None

    @classmethod
    def validate_boolean(cls, value: Any, f: Field) -> FieldError | None:
        if not isinstance(value, bool):
            return FieldError(
                field=f.slug,
                message=f"Expected boolean value, got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_date(cls, value: Any, f: Field) -> FieldError | None:
        """Validate a calendar date in ``YYYY-MM-DD`` form."""
        if not isinstance(value, str):
            return FieldError(
                field=f.slug,
                message=f"Expected date string, got {type(value).__name__}",
                code="invalid_type",
            )
        if not DATE_PATTERN.match(value):
            return FieldError(
                field=f.slug,
                message="Invalid date format. Use YYYY-MM-DD",
                code="invalid_date_format",
            )
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            return FieldError(
                field=f.slug,
                message=f"'{value}' is not a valid calendar date",
                code="invalid_date",
            )
        return None

    @classmethod
    def validate_datetime(cls, value: Any, f: Field) -> FieldError | None:
        """Validate an ISO 8601 timestamp string."""
        if not isinstance(value, str):
            return FieldError(
                field=f.slug,
                message=f"Expected datetime string, got {type(value).__name__}",
                code="invalid_type",
            )
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return FieldError(
                field=f.slug,
                message="Invalid datetime format. Use ISO 8601 format (e.g., 2024-01-01T12:00:00Z)",
                code="invalid_datetime_format",
            )
        return None

    @classmethod
    def validate_select(cls, value: Any, f: Field) -> FieldError | None:
        if not isinstance(value, str):
            return FieldError(
                field=f.slug,
                message=f"Expected choice value, got {type(value).__name__}",
                code="invalid_type",
            )
        if value not in _choice_values(f.options):
            return FieldError(
                field=f.slug,
                message=f"'{value}' is not one of the allowed choices",
                code="invalid_choice",
            )
        return None

    @classmethod
    def validate_multi_select(cls, value: Any, f: Field) -> FieldError | None:
        """Validate a list of choice values; the first bad element is reported."""
        if not isinstance(value, list):
            return FieldError(
                field=f.slug,
                message=f"Expected a list of choices, got {type(value).__name__}",
                code="invalid_type",
            )
        allowed = _choice_values(f.options)
        for item in value:
            if not isinstance(item, str) or item not in allowed:
                return FieldError(
                    field=f.slug,
                    message=f"'{item}' is not one of the allowed choices",
                    code="invalid_choice",
                )
        return None

    @classmethod
    def validate_relation(cls, value: Any, f: Field) -> FieldError | None:
        """Validate a related record ID.

        The ID is opaque here; whether the related record exists is not checked.
        """
        if not isinstance(value, str):
            return FieldError(
                field=f.slug,
                message=f"Expected related record ID (string), got {type(value).__name__}",
                code="invalid_type",
            )
        return None

    @classmethod
    def validate_json(cls, value: Any, f: Field) -> FieldError | None:
        return None

    @classmethod
    def validate_field_value(cls, value: Any, f: Field) -> FieldError | None:
        """Validate a single non-null value against its field definition.

        Returns:
            FieldError if invalid, None if valid or the type is unknown.
        """
        validators = {
            FieldType.TEXT: cls.validate_text,
            FieldType.TEXTAREA: cls.validate_text,
            FieldType.NUMBER: cls.validate_number,
            FieldType.BOOLEAN: cls.validate_boolean,
            FieldType.DATE: cls.validate_date,
            FieldType.DATETIME: cls.validate_datetime,
            FieldType.SELECT: cls.validate_select,
            FieldType.MULTI_SELECT: cls.validate_multi_select,
            FieldType.RELATION: cls.validate_relation,
            FieldType.JSON: cls.validate_json,
        }

        validator = validators.get(f.type)
        if validator is None:
            return None
        return validator(value, f)

    @classmethod
    def validate(
        cls,
        data: dict[str, Any],
        fields: Iterable[Field],
        is_update: bool = False,
    ) -> ValidationResult:
        """Validate record data against a collection's fields and apply defaults.

        Args:
            data: The record data to validate.
            fields: Field definitions of the collection.
            is_update: If True, fields absent from ``data`` are left alone
                (no required check, no defaults).

        Returns:
            ValidationResult with every error found and the normalized payload.
        """
        fields = list(fields)
        errors: list[FieldError] = []
        normalized: dict[str, Any] = {}

        known = {f.slug for f in fields}
        for key in data:
            if key not in known:
                errors.append(
                    FieldError(
                        field=key,
                        message=f"Unknown field '{key}' not defined in collection schema",
                        code="unknown_field",
                    )
                )

        for f in fields:
            present = f.slug in data
            value = data.get(f.slug)

            if value is None:
                if is_update:
                    if not present:
                        continue
                    if f.is_required:
                        errors.append(
                            FieldError(
                                field=f.slug,
                                message=f"Required field '{f.slug}' cannot be null",
                                code="required_null",
                            )
                        )
                    else:
                        # Explicit null on update clears the value
                        normalized[f.slug] = None
                    continue

                if f.is_required:
                    errors.append(
                        FieldError(
                            field=f.slug,
                            message=f"Required field '{f.slug}' is missing",
                            code="required_missing",
                        )
                    )
                elif f.default_value is not None:
                    normalized[f.slug] = f.default_value
                continue

            error = cls.validate_field_value(value, f)
            if error:
                errors.append(error)
            else:
                normalized[f.slug] = value

        return ValidationResult(valid=not errors, errors=errors, normalized=normalized)
