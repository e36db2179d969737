"""Field expression parsing.

Every field reference in a composition config is a small expression:

- ``category``          a field of the source collection (or a unique join match)
- ``accounts.type``     a field qualified with its collection slug
- ``month(date)``       a date part of a date/datetime field

Names are checked against a strict identifier pattern before they go
anywhere near the schema lookup.
"""

import re
from dataclasses import dataclass
from enum import Enum

from folio.core.query.exceptions import FieldExpressionError

FIELD_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
QUALIFIED_FIELD_PATTERN = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_-]*)\.([a-zA-Z_][a-zA-Z0-9_]*)$")
FUNCTION_PATTERN = re.compile(r"^\s*(\w+)\(\s*([^()]+?)\s*\)\s*$")


class DatePart(str, Enum):
    """Date/time functions allowed in field expressions."""

    MONTH = "month"
    YEAR = "year"
    DAY = "day"
    DATE = "date"


@dataclass(frozen=True)
class FieldExpression:
    """Parsed field expression.

    Attributes:
        field: Field slug.
        collection: Collection slug for qualified references.
        function: Date part applied to the field, if any.
    """

    field: str
    collection: str | None = None
    function: DatePart | None = None

    @property
    def reference(self) -> str:
        """The field reference without any function applied."""
        if self.collection:
            return f"{self.collection}.{self.field}"
        return self.field

    @property
    def alias(self) -> str:
        """Output key for this expression (``month(date)`` -> ``month_date``)."""
        base = self.reference.replace(".", "_").replace("-", "_")
        if self.function:
            return f"{self.function.value}_{base}".lower()
        return base.lower()


def sanitize_field_name(name: str) -> str:
    """Validate that a field name only uses identifier characters.

    Raises:
        FieldExpressionError: If the name is empty or has unsafe characters.
    """
    if not FIELD_NAME_PATTERN.match(name or ""):
        raise FieldExpressionError(
            f"Invalid field name: '{name}'. Only alphanumeric characters and "
            "underscores allowed, must start with a letter or underscore."
        )
    return name


def parse_qualified_field(expr: str) -> tuple[str, str] | None:
    """Split ``collection.field`` into its parts, or return None."""
    match = QUALIFIED_FIELD_PATTERN.match(expr)
    if match:
        return match.group(1), match.group(2)
    return None


def _parse_reference(expr: str) -> FieldExpression:
    qualified = parse_qualified_field(expr)
    if qualified:
        return FieldExpression(field=qualified[1], collection=qualified[0])
    return FieldExpression(field=sanitize_field_name(expr))


def parse_field_expression(expr: str) -> FieldExpression:
    """Parse a field expression string.

    Examples:
        >>> parse_field_expression("category")
        FieldExpression(field='category', collection=None, function=None)
        >>> parse_field_expression("month(accounts.opened)").alias
        'month_accounts_opened'

    Raises:
        FieldExpressionError: If the function is unknown or a name is invalid.
    """
    if not isinstance(expr, str):
        raise FieldExpressionError(f"Field expression must be a string, got {type(expr).__name__}")

    expr = expr.strip()
    match = FUNCTION_PATTERN.match(expr)
    if match:
        name, argument = match.groups()
        try:
            function = DatePart(name.lower())
        except ValueError:
            allowed = ", ".join(part.value for part in DatePart)
            raise FieldExpressionError(
                f"Unknown function: '{name}'. Allowed functions: {allowed}"
            ) from None
        reference = _parse_reference(argument)
        return FieldExpression(
            field=reference.field,
            collection=reference.collection,
            function=function,
        )

    return _parse_reference(expr)
