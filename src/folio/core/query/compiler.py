"""Composition config compiler.

Resolves a ``CompositionConfig`` against a ``SchemaSnapshot`` of one
workspace and produces a ``QueryPlan``. Every identifier in the plan has been
checked against the schema and every literal coerced to the kind it is
compared as, so the SQL builder never needs to interpolate user text.

Problems are accumulated and raised together as one ``CompilationError``.
The only fail-fast step is resolving ``from``: without a source collection
nothing else can be checked.
"""

from typing import Any

from folio.core.logging import get_logger
from folio.core.query.binding import coerce_operand
from folio.core.query.config import (
    AggregateFunction,
    CompositionConfig,
    FilterOperator,
    JoinType,
    SortDirection,
    load_config,
)
from folio.core.query.exceptions import CompilationError, CompileError, FieldExpressionError
from folio.core.query.field_expression import (
    FIELD_NAME_PATTERN,
    FieldExpression,
    parse_field_expression,
)
from folio.core.query.plan import (
    ColumnRef,
    Literal,
    OrderItem,
    OutputColumn,
    ParamHole,
    Predicate,
    QueryPlan,
    ResolvedJoin,
    ResolvedSource,
    SystemColumn,
    ValueKind,
)
from folio.domain.entities.collection import Collection, FieldType
from folio.domain.services.schema_snapshot import SchemaSnapshot

logger = get_logger(__name__)

DEFAULT_MAX_LIMIT = 1000

SOURCE_ALIAS = "r"

# Record columns addressable by name in field expressions
SYSTEM_COLUMN_KINDS: dict[SystemColumn, ValueKind] = {
    SystemColumn.ID: ValueKind.TEXT,
    SystemColumn.CREATED_AT: ValueKind.TIMESTAMP,
    SystemColumn.UPDATED_AT: ValueKind.TIMESTAMP,
}

FIELD_TYPE_KINDS: dict[FieldType, ValueKind] = {
    FieldType.TEXT: ValueKind.TEXT,
    FieldType.TEXTAREA: ValueKind.TEXT,
    FieldType.NUMBER: ValueKind.NUMBER,
    FieldType.BOOLEAN: ValueKind.BOOLEAN,
    FieldType.DATE: ValueKind.TEXT,
    FieldType.DATETIME: ValueKind.TEXT,
    FieldType.SELECT: ValueKind.TEXT,
    FieldType.MULTI_SELECT: ValueKind.JSON,
    FieldType.RELATION: ValueKind.TEXT,
    FieldType.JSON: ValueKind.JSON,
}

NON_NUMERIC_TYPES = frozenset(
    {
        FieldType.TEXT,
        FieldType.TEXTAREA,
        FieldType.BOOLEAN,
        FieldType.SELECT,
        FieldType.MULTI_SELECT,
        FieldType.RELATION,
    }
)
TEMPORAL_TYPES = frozenset({FieldType.DATE, FieldType.DATETIME})
DATE_FUNCTION_TYPES = frozenset({FieldType.DATE, FieldType.DATETIME, FieldType.JSON})

ORDERING_OPERATORS = frozenset(
    {FilterOperator.GT, FilterOperator.GTE, FilterOperator.LT, FilterOperator.LTE}
)

# Aggregate output kind; None keeps the kind of the aggregated column
AGGREGATE_KINDS: dict[AggregateFunction, ValueKind | None] = {
    AggregateFunction.COUNT: ValueKind.NUMBER,
    AggregateFunction.SUM: ValueKind.NUMBER,
    AggregateFunction.AVG: ValueKind.NUMBER,
    AggregateFunction.MIN: None,
    AggregateFunction.MAX: None,
}
NUMERIC_AGGREGATES = frozenset({AggregateFunction.SUM, AggregateFunction.AVG})
COUNT_ALL = "*"


def _allowed(enum_cls: type) -> str:
    return ", ".join(member.value for member in enum_cls)


def _field_type(column: ColumnRef) -> FieldType | None:
    if column.field_type is None:
        return None
    try:
        return FieldType(column.field_type)
    except ValueError:
        return None


def _may_be_numeric(column: ColumnRef) -> bool:
    """False when the column is statically known not to hold numbers."""
    if column.date_part is not None or column.system_column is not None:
        return False
    field_type = _field_type(column)
    if field_type is None:
        return True
    return field_type not in NON_NUMERIC_TYPES and field_type not in TEMPORAL_TYPES


class _Scope:
    """Sources visible while compiling one config."""

    def __init__(self, snapshot: SchemaSnapshot) -> None:
        self.snapshot = snapshot
        self.sources: list[ResolvedSource] = []

    def by_slug(self, slug: str) -> ResolvedSource | None:
        for source in self.sources:
            if source.collection_slug == slug:
                return source
        return None

    def column(self, source: ResolvedSource, name: str) -> ColumnRef | None:
        """Resolve a name on one source: a user field first, then a system column."""
        field = self.snapshot.field(source.collection_id, name)
        if field is not None:
            kind = FIELD_TYPE_KINDS.get(field.type, ValueKind.TEXT)
            return ColumnRef(
                source_alias=source.alias,
                value_kind=kind,
                field_slug=field.slug,
                field_type=field.field_type.lower(),
            )
        try:
            system_column = SystemColumn(name)
        except ValueError:
            return None
        if system_column not in SYSTEM_COLUMN_KINDS:
            return None
        return ColumnRef(
            source_alias=source.alias,
            value_kind=SYSTEM_COLUMN_KINDS[system_column],
            system_column=system_column,
        )


class _Compilation:
    """State of a single ``compile`` call."""

    def __init__(
        self,
        config: CompositionConfig,
        workspace_id: str,
        snapshot: SchemaSnapshot,
        max_limit: int,
    ) -> None:
        self.config = config
        self.workspace_id = workspace_id
        self.scope = _Scope(snapshot)
        self.max_limit = max_limit
        self.errors: list[CompileError] = []

    def error(self, message: str, field: str, code: str) -> None:
        self.errors.append(CompileError(message=message, field=field, code=code))

    # Resolution

    def resolve_collection(self, slug: str, path: str) -> Collection | None:
        collection = self.scope.snapshot.collection(slug)
        if collection is None or collection.workspace_id != self.workspace_id:
            self.error(f"Collection '{slug}' not found", path, "unknown_collection")
            return None
        return collection

    def resolve_expression(
        self,
        expr: Any,
        path: str,
        sources: list[ResolvedSource] | None = None,
        allow_function: bool = True,
    ) -> tuple[FieldExpression, ColumnRef] | None:
        """Parse and resolve a field expression against the sources in scope.

        ``sources`` restricts resolution to a subset of the scope (used for
        join conditions). Returns None after recording an error.
        """
        try:
            parsed = parse_field_expression(expr)
        except FieldExpressionError as e:
            self.error(str(e), path, "invalid_field_expression")
            return None

        if parsed.function is not None and not allow_function:
            self.error(
                f"Functions are not allowed here: '{expr}'", path, "function_not_allowed"
            )
            return None

        candidates = sources if sources is not None else self.scope.sources
        column = self._resolve_reference(parsed, path, candidates)
        if column is None:
            return None

        if parsed.function is not None:
            column = self._apply_date_part(parsed, column, path)
            if column is None:
                return None

        return parsed, column

    def _resolve_reference(
        self,
        parsed: FieldExpression,
        path: str,
        candidates: list[ResolvedSource],
    ) -> ColumnRef | None:
        if parsed.collection is not None:
            source = next(
                (s for s in candidates if s.collection_slug == parsed.collection), None
            )
            if source is None:
                self.error(
                    f"Collection '{parsed.collection}' is not part of this query",
                    path,
                    "unknown_collection",
                )
                return None
            column = self.scope.column(source, parsed.field)
            if column is None:
                self.error(
                    f"Field '{parsed.field}' not found in collection '{parsed.collection}'",
                    path,
                    "unknown_field",
                )
            return column

        # The first candidate wins, then a unique match among the others
        first, rest = candidates[0], candidates[1:]
        column = self.scope.column(first, parsed.field)
        if column is not None:
            return column

        matches = [
            c for c in (self.scope.column(source, parsed.field) for source in rest) if c
        ]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            self.error(
                f"Field '{parsed.field}' is ambiguous; qualify it with a collection slug",
                path,
                "ambiguous_field",
            )
            return None

        self.error(f"Field '{parsed.field}' not found", path, "unknown_field")
        return None

    def _apply_date_part(
        self, parsed: FieldExpression, column: ColumnRef, path: str
    ) -> ColumnRef | None:
        if column.system_column is not None:
            allowed = column.value_kind is ValueKind.TIMESTAMP
        else:
            allowed = _field_type(column) in DATE_FUNCTION_TYPES
        if not allowed:
            self.error(
                f"Function '{parsed.function.value}' requires a date or datetime field",
                path,
                "invalid_function_argument",
            )
            return None
        return ColumnRef(
            source_alias=column.source_alias,
            value_kind=ValueKind.TEXT,
            field_slug=column.field_slug,
            system_column=column.system_column,
            date_part=parsed.function,
            field_type=column.field_type,
        )

    # Clauses

    def compile_joins(self) -> list[ResolvedJoin]:
        joins: list[ResolvedJoin] = []
        for index, join in enumerate(self.config.joins):
            path = f"joins[{index}]"
            valid = True

            try:
                join_type = JoinType(join.type.lower())
            except ValueError:
                self.error(
                    f"Invalid join type '{join.type}'. Allowed: {_allowed(JoinType)}",
                    f"{path}.type",
                    "invalid_join_type",
                )
                join_type = None
                valid = False

            collection = self.resolve_collection(join.collection, f"{path}.collection")
            if collection is None:
                continue
            if self.scope.by_slug(collection.slug) is not None:
                self.error(
                    f"Collection '{collection.slug}' is already part of this query",
                    f"{path}.collection",
                    "duplicate_collection",
                )
                continue

            source = ResolvedSource(
                alias=f"j{len(self.scope.sources) - 1}",
                collection_id=collection.id,
                collection_slug=collection.slug,
                workspace_id=collection.workspace_id,
            )
            left = self.resolve_expression(
                join.on.left, f"{path}.on.left", list(self.scope.sources), allow_function=False
            )
            right = self.resolve_expression(
                join.on.right, f"{path}.on.right", [source], allow_function=False
            )
            # Later clauses may still reference the collection
            self.scope.sources.append(source)

            if left is None or right is None or not valid:
                continue
            joins.append(
                ResolvedJoin(source=source, join_type=join_type, left=left[1], right=right[1])
            )
        return joins

    def compile_filters(self) -> list[Predicate]:
        predicates: list[Predicate] = []
        seen_params: set[str] = set()
        for index, clause in enumerate(self.config.filters):
            path = f"filters[{index}]"

            try:
                operator = FilterOperator(clause.operator.lower())
            except ValueError:
                self.error(
                    f"Invalid operator '{clause.operator}'. Allowed: {_allowed(FilterOperator)}",
                    f"{path}.operator",
                    "invalid_operator",
                )
                operator = None

            if clause.param is not None and clause.has_value:
                self.error(
                    "A filter takes either a 'value' or a 'param', not both",
                    path,
                    "ambiguous_operand",
                )
                continue
            if clause.param is None and not clause.has_value:
                self.error("A filter needs a 'value' or a 'param'", path, "missing_operand")
                continue

            if clause.param is not None:
                if not FIELD_NAME_PATTERN.match(clause.param):
                    self.error(
                        f"Invalid param name '{clause.param}'", f"{path}.param", "invalid_param"
                    )
                    continue
                if clause.param in seen_params:
                    self.error(
                        f"Param '{clause.param}' is declared more than once",
                        f"{path}.param",
                        "duplicate_param",
                    )
                    continue
                seen_params.add(clause.param)

            resolved = self.resolve_expression(clause.field, f"{path}.field")
            if resolved is None or operator is None:
                continue
            column = resolved[1]

            kind = self._comparison_kind(column, operator)
            if kind is None:
                self.error(
                    f"Operator '{operator.value}' cannot be used on non-numeric field "
                    f"'{clause.field}'",
                    f"{path}.operator",
                    "invalid_operator_for_type",
                )
                continue

            if clause.param is not None:
                operand: Literal | ParamHole = ParamHole(clause.param)
            else:
                try:
                    operand = Literal(coerce_operand(operator, kind, clause.value))
                except ValueError as e:
                    self.error(str(e), f"{path}.value", "invalid_value")
                    continue

            predicates.append(
                Predicate(column=column, operator=operator, operand=operand, value_kind=kind)
            )
        return predicates

    @staticmethod
    def _comparison_kind(column: ColumnRef, operator: FilterOperator) -> ValueKind | None:
        """Kind an operand is compared as, or None when the operator is not allowed."""
        if operator is FilterOperator.CONTAINS:
            return ValueKind.TEXT

        if operator not in ORDERING_OPERATORS:
            return column.value_kind

        if column.date_part is not None:
            return ValueKind.TEXT
        if column.system_column is not None:
            if column.value_kind is ValueKind.TIMESTAMP:
                return ValueKind.TIMESTAMP
            return None

        field_type = _field_type(column)
        if field_type in TEMPORAL_TYPES:
            return ValueKind.TEXT
        if field_type in NON_NUMERIC_TYPES:
            return None
        # Numbers, json payloads and types unknown to this version
        return ValueKind.NUMBER

    def compile_group_by(self) -> list[tuple[FieldExpression, ColumnRef, str]]:
        groups: list[tuple[FieldExpression, ColumnRef, str]] = []
        seen: set[ColumnRef] = set()
        for index, expr in enumerate(self.config.group_by):
            path = f"groupBy[{index}]"
            resolved = self.resolve_expression(expr, path)
            if resolved is None:
                continue
            parsed, column = resolved
            if column in seen:
                self.error(f"Duplicate groupBy entry '{expr}'", path, "duplicate_group_by")
                continue
            seen.add(column)
            groups.append((parsed, column, path))
        return groups

    def compile_select(self) -> list[tuple[FieldExpression, ColumnRef, str]]:
        items: list[tuple[FieldExpression, ColumnRef, str]] = []
        for index, expr in enumerate(self.config.select):
            path = f"select[{index}]"
            resolved = self.resolve_expression(expr, path)
            if resolved is not None:
                items.append((resolved[0], resolved[1], path))
        return items

    def compile_aggregations(
        self,
    ) -> list[tuple[str, AggregateFunction, ColumnRef | None, str]]:
        aggregations: list[tuple[str, AggregateFunction, ColumnRef | None, str]] = []
        seen_aliases: set[str] = set()
        for index, clause in enumerate(self.config.aggregations):
            path = f"aggregations[{index}]"

            try:
                function = AggregateFunction(clause.function.lower())
            except ValueError:
                self.error(
                    f"Invalid aggregate function '{clause.function}'. "
                    f"Allowed: {_allowed(AggregateFunction)}",
                    f"{path}.function",
                    "invalid_function",
                )
                function = None

            # Output names are lowercase, like field expression aliases
            alias = clause.alias.lower()
            alias_ok = True
            if not FIELD_NAME_PATTERN.match(clause.alias):
                self.error(f"Invalid alias '{clause.alias}'", f"{path}.alias", "invalid_alias")
                alias_ok = False
            elif alias in seen_aliases:
                self.error(
                    f"Duplicate aggregation alias '{clause.alias}'",
                    f"{path}.alias",
                    "duplicate_alias",
                )
                alias_ok = False
            seen_aliases.add(alias)

            column: ColumnRef | None = None
            if clause.field is None or clause.field.strip() in ("", COUNT_ALL):
                if function is not None and function is not AggregateFunction.COUNT:
                    self.error(
                        f"Function '{function.value}' requires a field",
                        f"{path}.field",
                        "missing_field",
                    )
                    continue
            else:
                resolved = self.resolve_expression(clause.field, f"{path}.field")
                if resolved is None:
                    continue
                column = resolved[1]
                if function in NUMERIC_AGGREGATES and not _may_be_numeric(column):
                    self.error(
                        f"Function '{function.value}' requires a numeric field",
                        f"{path}.field",
                        "invalid_function_for_type",
                    )
                    continue

            if function is None or not alias_ok:
                continue
            aggregations.append((alias, function, column, path))
        return aggregations

    def compile_limit(self) -> int:
        limit = self.config.limit
        if limit is None:
            return self.max_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            self.error("Limit must be a positive integer", "limit", "invalid_limit")
            return self.max_limit
        if limit > self.max_limit:
            logger.debug("Clamping composition limit", requested=limit, max_limit=self.max_limit)
        return min(limit, self.max_limit)

    # Output

    def build_columns(
        self,
        groups: list[tuple[FieldExpression, ColumnRef, str]],
        select: list[tuple[FieldExpression, ColumnRef, str]],
        aggregations: list[tuple[str, AggregateFunction, ColumnRef | None, str]],
    ) -> tuple[list[OutputColumn], list[str]]:
        """Build output columns and the labels to group by."""
        columns: list[OutputColumn] = []
        names: set[str] = set()

        def add(name: str, kind: ValueKind, column=None, aggregate=None) -> OutputColumn:
            output = OutputColumn(
                label=f"c{len(columns)}",
                name=name,
                value_kind=kind,
                column=column,
                aggregate=aggregate,
            )
            columns.append(output)
            names.add(name)
            return output

        if self.config.is_aggregate:
            grouped = {column for _, column, _ in groups}
            for parsed, column, path in select:
                if column not in grouped:
                    self.error(
                        f"Column '{parsed.reference}' must appear in groupBy or be aggregated",
                        path,
                        "ungrouped_column",
                    )

            group_labels: list[str] = []
            for parsed, column, path in groups:
                if parsed.alias in names:
                    self.error(
                        f"Output name '{parsed.alias}' is produced twice", path, "duplicate_output"
                    )
                    continue
                group_labels.append(add(parsed.alias, column.value_kind, column).label)

            for alias, function, column, path in aggregations:
                if alias in names:
                    self.error(
                        f"Alias '{alias}' collides with a grouped column",
                        f"{path}.alias",
                        "duplicate_alias",
                    )
                    continue
                kind = AGGREGATE_KINDS[function]
                if kind is None:
                    kind = column.value_kind if column is not None else ValueKind.NUMBER
                add(alias, kind, column, function)
            return columns, group_labels

        if select:
            for parsed, column, path in select:
                if parsed.alias in names:
                    self.error(
                        f"Output name '{parsed.alias}' is produced twice", path, "duplicate_output"
                    )
                    continue
                add(parsed.alias, column.value_kind, column)
            return columns, []

        # Default projection of the source collection
        for system_column in (
            SystemColumn.ID,
            SystemColumn.DATA,
            SystemColumn.CREATED_AT,
            SystemColumn.UPDATED_AT,
        ):
            kind = SYSTEM_COLUMN_KINDS.get(system_column, ValueKind.JSON)
            add(
                system_column.value,
                kind,
                ColumnRef(source_alias=SOURCE_ALIAS, value_kind=kind, system_column=system_column),
            )
        return columns, []

    def compile_sort(self, columns: list[OutputColumn]) -> list[OrderItem]:
        by_name = {column.name: column for column in columns}
        by_ref = {
            column.column: column
            for column in columns
            if column.column is not None and column.aggregate is None
        }
        default_projection = not self.config.is_aggregate and not self.config.select

        order: list[OrderItem] = []
        for index, clause in enumerate(self.config.sort):
            path = f"sort[{index}]"

            try:
                direction = SortDirection(clause.direction.lower())
            except ValueError:
                self.error(
                    f"Invalid sort direction '{clause.direction}'. "
                    f"Allowed: {_allowed(SortDirection)}",
                    f"{path}.direction",
                    "invalid_direction",
                )
                direction = None

            # Output names first; a default projection sorts by source columns
            output = None if default_projection else by_name.get(clause.field.lower())
            if output is not None:
                if direction is not None:
                    order.append(OrderItem(direction=direction, label=output.label))
                continue

            resolved = self.resolve_expression(clause.field, f"{path}.field")
            if resolved is None:
                continue
            column = resolved[1]

            if column in by_ref:
                item = OrderItem(direction=direction, label=by_ref[column].label)
            elif default_projection:
                item = OrderItem(direction=direction, column=column)
            else:
                self.error(
                    f"Sort field '{clause.field}' must be a selected column, "
                    "a groupBy column or an aggregation alias",
                    f"{path}.field",
                    "invalid_sort_field",
                )
                continue

            if direction is not None:
                order.append(item)
        return order

    def run(self) -> QueryPlan:
        collection = self.resolve_collection(self.config.from_, "from")
        if collection is None:
            raise CompilationError(self.errors)

        source = ResolvedSource(
            alias=SOURCE_ALIAS,
            collection_id=collection.id,
            collection_slug=collection.slug,
            workspace_id=collection.workspace_id,
        )
        self.scope.sources.append(source)

        joins = self.compile_joins()
        predicates = self.compile_filters()
        groups = self.compile_group_by()
        aggregations = self.compile_aggregations()
        select = self.compile_select()
        columns, group_labels = self.build_columns(groups, select, aggregations)
        order_by = self.compile_sort(columns)
        limit = self.compile_limit()

        if self.errors:
            raise CompilationError(self.errors)

        return QueryPlan(
            workspace_id=self.workspace_id,
            source=source,
            joins=tuple(joins),
            columns=tuple(columns),
            predicates=tuple(predicates),
            group_by=tuple(group_labels),
            order_by=tuple(order_by),
            limit=limit,
            is_aggregate=self.config.is_aggregate,
        )


class QueryCompiler:
    """Compiles composition configs into query plans.

    The compiler holds no state between calls; each ``compile`` works on its
    own scratch state, so one instance can be shared across requests.
    """

    def __init__(self, max_limit: int = DEFAULT_MAX_LIMIT):
        if max_limit < 1:
            raise ValueError("max_limit must be a positive integer")
        self.max_limit = max_limit

    def compile(
        self,
        config: CompositionConfig | dict[str, Any],
        workspace_id: str,
        snapshot: SchemaSnapshot,
    ) -> QueryPlan:
        """Compile a config for one workspace.

        Args:
            config: Parsed config or its raw JSON form.
            workspace_id: Workspace the query is scoped to.
            snapshot: Schema of that workspace.

        Returns:
            The resolved query plan.

        Raises:
            CompilationError: With every problem found in the config.
        """
        config = load_config(config)
        if snapshot.workspace_id != workspace_id:
            raise CompilationError(
                [CompileError("Schema does not belong to this workspace", "from", "unknown_collection")]
            )

        plan = _Compilation(config, workspace_id, snapshot, self.max_limit).run()
        logger.debug(
            "Compiled composition config",
            workspace_id=workspace_id,
            source=plan.source.collection_slug,
            joins=len(plan.joins),
            params=list(plan.params),
        )
        return plan


def compile_composition(
    config: CompositionConfig | dict[str, Any],
    workspace_id: str,
    snapshot: SchemaSnapshot,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> QueryPlan:
    """Compile a config with a one-off compiler. See ``QueryCompiler.compile``."""
    return QueryCompiler(max_limit).compile(config, workspace_id, snapshot)
