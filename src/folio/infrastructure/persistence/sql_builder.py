"""SQL builder for query plans.

Renders a ``QueryPlan`` into a single parameterized SELECT over the records
table. Every value, including field slugs (as JSON paths), collection IDs and
the workspace ID, is passed as a named bind parameter; the only identifiers
written into the statement text are generated aliases (``r``, ``j0``...),
output labels (``c0``...) and fixed record column names.

Each source collection is read through a derived table filtered by workspace
and collection, so joined rows can never come from another collection or
workspace, outer joins included.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from folio.core.query.config import AggregateFunction, FilterOperator, JoinType, SortDirection
from folio.core.query.field_expression import DatePart
from folio.core.query.plan import (
    ColumnRef,
    Literal,
    OutputColumn,
    Predicate,
    QueryPlan,
    ResolvedSource,
    SystemColumn,
    ValueKind,
)
from folio.infrastructure.persistence.database import SQLITE_LOWER_FUNCTION

SQLITE = "sqlite"
POSTGRESQL = "postgresql"
SUPPORTED_DIALECTS = frozenset({SQLITE, POSTGRESQL})

SQLITE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

COMPARISON_SQL: dict[FilterOperator, str] = {
    FilterOperator.EQ: "=",
    FilterOperator.NEQ: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
}

JOIN_SQL: dict[JoinType, str] = {
    JoinType.INNER: "INNER JOIN",
    JoinType.LEFT: "LEFT JOIN",
    JoinType.RIGHT: "RIGHT JOIN",
}

AGGREGATE_SQL: dict[AggregateFunction, str] = {
    AggregateFunction.COUNT: "COUNT",
    AggregateFunction.SUM: "SUM",
    AggregateFunction.AVG: "AVG",
    AggregateFunction.MIN: "MIN",
    AggregateFunction.MAX: "MAX",
}

SQLITE_DATE_PARTS: dict[DatePart, str] = {
    DatePart.MONTH: "strftime('%Y-%m', {expr})",
    DatePart.YEAR: "strftime('%Y', {expr})",
    DatePart.DAY: "strftime('%Y-%m-%d', {expr})",
    DatePart.DATE: "date({expr})",
}

POSTGRES_DATE_PARTS: dict[DatePart, str] = {
    DatePart.MONTH: "to_char(CAST({expr} AS DATE), 'YYYY-MM')",
    DatePart.YEAR: "to_char(CAST({expr} AS DATE), 'YYYY')",
    DatePart.DAY: "to_char(CAST({expr} AS DATE), 'YYYY-MM-DD')",
    DatePart.DATE: "CAST({expr} AS DATE)",
}


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so a value matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class BuiltQuery:
    """A rendered statement.

    Attributes:
        sql: Statement text with ``:name`` placeholders.
        params: Bind parameter values.
        json_labels: Output labels whose values come back as JSON text.
    """

    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    json_labels: frozenset[str] = frozenset()


class SQLBuilder:
    """Renders query plans for one SQL dialect."""

    def __init__(self, dialect_name: str):
        if dialect_name not in SUPPORTED_DIALECTS:
            raise ValueError(f"Unsupported database dialect: {dialect_name}")
        self.dialect_name = dialect_name
        self.param_counter = 0
        self.params: dict[str, Any] = {}

    @property
    def is_postgres(self) -> bool:
        return self.dialect_name == POSTGRESQL

    def build(self, plan: QueryPlan, bound: dict[str, Any]) -> BuiltQuery:
        """Render a plan with its runtime params bound.

        Args:
            plan: Compiled query plan.
            bound: Coerced values for every param hole of the plan.

        Returns:
            The statement and its bind parameters.
        """
        self.param_counter = 0
        self.params = {}

        workspace = self._bind(plan.workspace_id)
        json_labels: set[str] = set()

        select_items = []
        for column in plan.columns:
            expr, is_json_text = self._output(column)
            if is_json_text:
                json_labels.add(column.label)
            select_items.append(f"{expr} AS {column.label}")

        clauses = [
            "SELECT " + ", ".join(select_items),
            "FROM " + self._source(plan.source, workspace),
        ]
        for join in plan.joins:
            joined = self._source(join.source, workspace)
            left = self._column(join.left)
            right = self._column(join.right)
            if join.left.value_kind != join.right.value_kind:
                left, right = f"CAST({left} AS TEXT)", f"CAST({right} AS TEXT)"
            clauses.append(f"{JOIN_SQL[join.join_type]} {joined} ON {left} = {right}")

        if plan.predicates:
            conditions = [self._predicate(predicate, bound) for predicate in plan.predicates]
            clauses.append("WHERE " + " AND ".join(conditions))

        if plan.group_by:
            clauses.append("GROUP BY " + ", ".join(plan.group_by))

        if plan.order_by:
            order_items = []
            for item in plan.order_by:
                target = item.label if item.label is not None else self._column(item.column)
                direction = "DESC" if item.direction is SortDirection.DESC else "ASC"
                order_items.append(f"{target} {direction}")
            clauses.append("ORDER BY " + ", ".join(order_items))

        clauses.append(f"LIMIT {self._bind(plan.limit)}")

        return BuiltQuery(
            sql="\n".join(clauses),
            params=dict(self.params),
            json_labels=frozenset(json_labels),
        )

    def _bind(self, value: Any) -> str:
        """Register a bind parameter and return its placeholder."""
        param_name = f"param_{self.param_counter}"
        self.param_counter += 1
        self.params[param_name] = value
        return f":{param_name}"

    def _source(self, source: ResolvedSource, workspace: str) -> str:
        collection = self._bind(source.collection_id)
        return (
            "(SELECT * FROM records "
            f"WHERE workspace_id = {workspace} AND collection_id = {collection}) "
            f"AS {source.alias}"
        )

    def _field(self, ref: ColumnRef, as_json: bool = False) -> str:
        """Extract a payload key; ``as_json`` keeps the JSON encoding (PostgreSQL only)."""
        if self.is_postgres:
            path = self._bind(ref.field_slug)
            operator = "->" if as_json else "->>"
            return f"({ref.source_alias}.data {operator} CAST({path} AS TEXT))"
        path = self._bind(f'$."{ref.field_slug}"')
        return f"json_extract({ref.source_alias}.data, {path})"

    def _column(self, ref: ColumnRef) -> str:
        """Render a column reference with its date part applied."""
        if ref.system_column is not None:
            expr = f"{ref.source_alias}.{ref.system_column.value}"
        else:
            expr = self._field(ref)

        if ref.date_part is not None:
            templates = POSTGRES_DATE_PARTS if self.is_postgres else SQLITE_DATE_PARTS
            expr = templates[ref.date_part].format(expr=expr)
        return expr

    def _typed(self, ref: ColumnRef, kind: ValueKind) -> str:
        """Render a column for comparison as the given kind."""
        expr = self._column(ref)
        if ref.system_column is not None or ref.date_part is not None:
            return expr
        if kind is ValueKind.NUMBER:
            return f"CAST({expr} AS {'NUMERIC' if self.is_postgres else 'REAL'})"
        if kind is ValueKind.BOOLEAN and self.is_postgres:
            return f"CAST({expr} AS BOOLEAN)"
        return expr

    def _adapt(self, kind: ValueKind, value: Any) -> Any:
        """Convert a coerced value to what the driver compares correctly."""
        if kind is ValueKind.TIMESTAMP and isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            if self.is_postgres:
                return value
            return value.astimezone(timezone.utc).strftime(SQLITE_TIMESTAMP_FORMAT)
        if kind is ValueKind.BOOLEAN and not self.is_postgres:
            return int(value)
        if kind is ValueKind.JSON and self.is_postgres:
            if isinstance(value, bool):
                return "true" if value else "false"
            return str(value)
        return value

    def _predicate(self, predicate: Predicate, bound: dict[str, Any]) -> str:
        operand = predicate.operand
        value = operand.value if isinstance(operand, Literal) else bound[operand.name]
        kind = predicate.value_kind
        operator = predicate.operator

        if operator is FilterOperator.CONTAINS:
            expr = self._column(predicate.column)
            pattern = self._bind(f"%{escape_like(str(value).lower())}%")
            lower = "LOWER" if self.is_postgres else SQLITE_LOWER_FUNCTION
            return f"{lower}(CAST({expr} AS TEXT)) LIKE {pattern} ESCAPE '\\'"

        expr = self._typed(predicate.column, kind)

        if operator is FilterOperator.IN:
            values = tuple(value)
            if not values:
                return "1 = 0"
            placeholders = ", ".join(self._bind(self._adapt(kind, item)) for item in values)
            return f"{expr} IN ({placeholders})"

        if value is None:
            if operator is FilterOperator.EQ:
                return f"{expr} IS NULL"
            return f"{expr} IS NOT NULL"

        placeholder = self._bind(self._adapt(kind, value))
        return f"{expr} {COMPARISON_SQL[operator]} {placeholder}"

    def _output(self, column: OutputColumn) -> tuple[str, bool]:
        """Render a select item; returns the expression and whether it yields JSON text."""
        ref = column.column

        if column.aggregate is not None:
            function = AGGREGATE_SQL[column.aggregate]
            if ref is None:
                return f"{function}(*)", False
            if column.aggregate in (AggregateFunction.SUM, AggregateFunction.AVG) or (
                column.aggregate is not AggregateFunction.COUNT
                and ref.value_kind is ValueKind.NUMBER
            ):
                return f"{function}({self._typed(ref, ValueKind.NUMBER)})", False
            return f"{function}({self._column(ref)})", False

        if ref.system_column is SystemColumn.DATA:
            return f"{ref.source_alias}.data", True

        if ref.value_kind is ValueKind.JSON and ref.date_part is None and self.is_postgres:
            return self._field(ref, as_json=True), True

        return self._column(ref), False
