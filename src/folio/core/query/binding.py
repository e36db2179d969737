"""Value coercion and runtime parameter binding.

Literal filter values are coerced at compile time and named params at
execution time, with the same rules: a value is converted to the kind its
predicate compares as, or rejected. Query-string params always arrive as
strings, so numeric and boolean kinds accept their string spellings.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from folio.core.exceptions import RuntimeParamError
from folio.core.query.config import FilterOperator
from folio.core.query.plan import ParamHole, QueryPlan, ValueKind

TRUE_STRINGS = frozenset({"true", "1", "yes"})
FALSE_STRINGS = frozenset({"false", "0", "no"})


def coerce_value(kind: ValueKind, value: Any) -> Any:
    """Convert a single value to the given kind.

    Raises:
        ValueError: If the value cannot represent the kind.
    """
    if kind is ValueKind.NUMBER:
        if isinstance(value, bool):
            raise ValueError("Expected a number, got a boolean")
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            try:
                number = int(text)
            except ValueError:
                try:
                    number = float(text)
                except ValueError:
                    raise ValueError(f"Expected a number, got '{value}'") from None
        else:
            raise ValueError(f"Expected a number, got {type(value).__name__}")
        if isinstance(number, float) and not math.isfinite(number):
            raise ValueError("Expected a finite number")
        return number

    if kind is ValueKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in TRUE_STRINGS:
                return True
            if lowered in FALSE_STRINGS:
                return False
        raise ValueError(f"Expected a boolean, got '{value}'")

    if kind is ValueKind.TIMESTAMP:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            except ValueError:
                raise ValueError(f"Expected an ISO 8601 timestamp, got '{value}'") from None
        raise ValueError(f"Expected an ISO 8601 timestamp, got {type(value).__name__}")

    if kind is ValueKind.JSON:
        if isinstance(value, (str, bool, int, float)):
            return value
        raise ValueError(f"Expected a scalar value, got {type(value).__name__}")

    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError(f"Expected a scalar value, got {type(value).__name__}")


def coerce_operand(operator: FilterOperator, kind: ValueKind, value: Any) -> Any:
    """Convert a filter operand for the given operator and comparison kind.

    ``in`` needs a list and returns a tuple; ``eq``/``neq`` accept None
    (rendered as IS NULL / IS NOT NULL); ``contains`` always takes text.

    Raises:
        ValueError: If the operand does not fit the operator or kind.
    """
    if operator is FilterOperator.IN:
        if not isinstance(value, (list, tuple)):
            raise ValueError("'in' operator requires a list value")
        return tuple(coerce_value(kind, item) for item in value)

    if value is None:
        if operator in (FilterOperator.EQ, FilterOperator.NEQ):
            return None
        raise ValueError(f"'{operator.value}' operator requires a value")

    if operator is FilterOperator.CONTAINS:
        return coerce_value(ValueKind.TEXT, value)

    return coerce_value(kind, value)


def bind_params(plan: QueryPlan, params: Mapping[str, Any]) -> dict[str, Any]:
    """Bind every param hole of a plan from caller-supplied values.

    Extra keys in ``params`` are ignored.

    Returns:
        Mapping of param name to coerced value.

    Raises:
        RuntimeParamError: If a required param is missing or has a bad value.
    """
    missing = [name for name in plan.params if name not in params]
    if missing:
        raise RuntimeParamError(
            f"Missing required parameter(s): {', '.join(missing)}",
            details={"missing": missing},
        )

    bound: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    for predicate in plan.predicates:
        operand = predicate.operand
        if not isinstance(operand, ParamHole):
            continue
        try:
            bound[operand.name] = coerce_operand(
                predicate.operator, predicate.value_kind, params[operand.name]
            )
        except ValueError as e:
            errors.append({"param": operand.name, "message": str(e)})

    if errors:
        names = ", ".join(error["param"] for error in errors)
        raise RuntimeParamError(f"Invalid value for parameter(s): {names}", details=errors)

    return bound


def wrap_query_string_params(plan: QueryPlan, params: Mapping[str, Any]) -> dict[str, Any]:
    """Turn single query-string values of ``in`` params into one-element lists.

    A query-string key given once arrives as one string, so the list shape
    an ``in`` param needs cannot be spelled for a single value. Typed params
    (JSON bodies) are bound as sent and never pass through here.
    """
    list_params = {
        predicate.operand.name
        for predicate in plan.predicates
        if predicate.operator is FilterOperator.IN and isinstance(predicate.operand, ParamHole)
    }
    return {
        name: [value] if name in list_params and isinstance(value, str) else value
        for name, value in params.items()
    }
