"""Query plan: the compiler's resolved, injection-safe intermediate form.

A plan holds only resolved identifiers (collection ids, schema-checked field
slugs, generated SQL aliases and labels) and typed operands. Runtime
parameters stay as named ``ParamHole`` entries until execution. Plans are
immutable and compare by value, so compiling the same config twice yields
equal plans.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from folio.core.query.config import AggregateFunction, FilterOperator, JoinType, SortDirection
from folio.core.query.field_expression import DatePart


class ValueKind(str, Enum):
    """How values of a column are compared, bound and read back."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    JSON = "json"


class SystemColumn(str, Enum):
    """Record columns that live outside the JSON payload."""

    ID = "id"
    DATA = "data"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


@dataclass(frozen=True)
class ResolvedSource:
    """A collection taking part in the query.

    Attributes:
        alias: Generated SQL alias (``r`` for the source, ``j0``... for joins).
        collection_id: Resolved collection ID.
        collection_slug: Slug the config used to name it.
        workspace_id: Workspace the collection belonged to at compile time.
    """

    alias: str
    collection_id: str
    collection_slug: str
    workspace_id: str


@dataclass(frozen=True)
class ColumnRef:
    """A resolved reference to one value of one source row.

    Exactly one of ``field_slug`` (a key in the JSON payload) and
    ``system_column`` is set.
    """

    source_alias: str
    value_kind: ValueKind
    field_slug: str | None = None
    system_column: SystemColumn | None = None
    date_part: DatePart | None = None
    field_type: str | None = None


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class ParamHole:
    """Named runtime parameter, bound at execution time."""

    name: str


@dataclass(frozen=True)
class Predicate:
    """A typed filter condition.

    ``value_kind`` is the kind the operand is compared as, which may differ
    from the column's own kind (``contains`` always compares text).
    """

    column: ColumnRef
    operator: FilterOperator
    operand: Literal | ParamHole
    value_kind: ValueKind


@dataclass(frozen=True)
class ResolvedJoin:
    source: ResolvedSource
    join_type: JoinType
    left: ColumnRef
    right: ColumnRef


@dataclass(frozen=True)
class OutputColumn:
    """A column of the result set.

    Attributes:
        label: Generated SQL label (``c0``, ``c1``...).
        name: Key the value is returned under.
        value_kind: Kind used to convert stored values back.
        column: Source column, None for ``count(*)``.
        aggregate: Aggregate function applied, if any.
    """

    label: str
    name: str
    value_kind: ValueKind
    column: ColumnRef | None = None
    aggregate: AggregateFunction | None = None


@dataclass(frozen=True)
class OrderItem:
    """Sort key: an output label or, for default projections, a source column."""

    direction: SortDirection
    label: str | None = None
    column: ColumnRef | None = None


@dataclass(frozen=True)
class QueryPlan:
    workspace_id: str
    source: ResolvedSource
    joins: tuple[ResolvedJoin, ...]
    columns: tuple[OutputColumn, ...]
    predicates: tuple[Predicate, ...]
    group_by: tuple[str, ...]
    order_by: tuple[OrderItem, ...]
    limit: int
    is_aggregate: bool

    @property
    def sources(self) -> tuple[ResolvedSource, ...]:
        return (self.source,) + tuple(join.source for join in self.joins)

    @property
    def params(self) -> tuple[str, ...]:
        """Names of the runtime parameters this plan needs, in filter order."""
        return tuple(
            predicate.operand.name
            for predicate in self.predicates
            if isinstance(predicate.operand, ParamHole)
        )
