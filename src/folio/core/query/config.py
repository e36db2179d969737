"""Composition config model.

A composition config is the declarative, tenant-authored description of a
read query. The known clauses form a closed pydantic model; any other
top-level keys are kept in an explicit ``extras`` bag and written back on
dump, so a config survives a save/load cycle unchanged.

Enumerated values (operators, join types, functions, directions) are kept as
plain strings here and checked by the compiler, which reports every bad value
with its config path instead of failing on the first one.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, model_validator

from folio.core.query.exceptions import CompilationError, CompileError


class JoinType(str, Enum):
    """Join types for composition queries."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"


class FilterOperator(str, Enum):
    """Filter operators for composition queries."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    IN = "in"


class AggregateFunction(str, Enum):
    """Aggregate functions for composition queries."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class SortDirection(str, Enum):
    """Sort directions for composition queries."""

    ASC = "asc"
    DESC = "desc"


class JoinCondition(BaseModel):
    """Field pair joined on: ``left`` from the tables so far, ``right`` from the joined one."""

    model_config = ConfigDict(extra="forbid")

    left: str
    right: str


class JoinClause(BaseModel):
    model_config = ConfigDict(extra="forbid")

    collection: str
    on: JoinCondition
    type: str = JoinType.INNER.value


class FilterClause(BaseModel):
    """A single filter: a literal ``value`` or a named runtime ``param``.

    Whether ``value`` was supplied at all (as opposed to supplied as null)
    is read from ``model_fields_set``.
    """

    model_config = ConfigDict(extra="forbid")

    field: str
    operator: str
    value: Any = None
    param: str | None = None

    @property
    def has_value(self) -> bool:
        return "value" in self.model_fields_set


class AggregationClause(BaseModel):
    model_config = ConfigDict(extra="forbid")

    field: str | None = None
    function: str
    alias: str


class SortClause(BaseModel):
    model_config = ConfigDict(extra="forbid")

    field: str
    direction: str = SortDirection.ASC.value


class CompositionConfig(BaseModel):
    """Declarative composition query.

    Example:
        CompositionConfig.model_validate({
            "from": "expenses",
            "groupBy": ["category"],
            "aggregations": [{"field": "amount", "function": "sum", "alias": "total"}],
        })
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    from_: str = Field(alias="from")
    joins: list[JoinClause] = Field(default_factory=list)
    filters: list[FilterClause] = Field(default_factory=list)
    group_by: list[str] = Field(default_factory=list, alias="groupBy")
    aggregations: list[AggregationClause] = Field(default_factory=list)
    select: list[str] = Field(default_factory=list)
    sort: list[SortClause] = Field(default_factory=list)
    limit: StrictInt | None = None
    extras: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def collect_extras(cls, data: Any) -> Any:
        """Move unknown top-level keys into the ``extras`` bag."""
        if not isinstance(data, dict):
            return data

        known: set[str] = set()
        for name, info in cls.model_fields.items():
            if name == "extras":
                continue
            known.add(name)
            if info.alias:
                known.add(info.alias)

        extras = {key: value for key, value in data.items() if key not in known}
        if not extras:
            return data

        core = {key: value for key, value in data.items() if key in known}
        core["extras"] = extras
        return core

    @property
    def is_aggregate(self) -> bool:
        return bool(self.aggregations or self.group_by)

    def to_json(self) -> dict[str, Any]:
        """Dump the config in its persisted shape, extras included."""
        payload = self.model_dump(by_alias=True, exclude_unset=True)
        payload.update(self.extras)
        return payload


def _format_location(loc: tuple[Any, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def load_config(data: Any) -> CompositionConfig:
    """Parse raw config data, reporting structural problems as compile errors.

    Raises:
        CompilationError: If the payload does not have the config shape.
    """
    if isinstance(data, CompositionConfig):
        return data
    try:
        return CompositionConfig.model_validate(data)
    except ValidationError as e:
        errors = [
            CompileError(
                message=error["msg"],
                field=_format_location(error["loc"]) or "config",
                code="invalid_config",
            )
            for error in e.errors()
        ]
        raise CompilationError(errors) from e
