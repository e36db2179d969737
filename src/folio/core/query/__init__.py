"""Composition query compiler.

Turns a ``CompositionConfig`` into a ``QueryPlan`` against a schema snapshot
and binds runtime params to the plan's param holes. Nothing here touches
storage.
"""

from folio.core.query.binding import (
    bind_params,
    coerce_operand,
    coerce_value,
    wrap_query_string_params,
)
from folio.core.query.compiler import DEFAULT_MAX_LIMIT, QueryCompiler, compile_composition
from folio.core.query.config import (
    AggregateFunction,
    AggregationClause,
    CompositionConfig,
    FilterClause,
    FilterOperator,
    JoinClause,
    JoinType,
    SortClause,
    SortDirection,
    load_config,
)
from folio.core.query.exceptions import CompilationError, CompileError, FieldExpressionError
from folio.core.query.field_expression import DatePart, FieldExpression, parse_field_expression
from folio.core.query.plan import QueryPlan, ValueKind

__all__ = [
    "AggregateFunction",
    "AggregationClause",
    "CompilationError",
    "CompileError",
    "CompositionConfig",
    "DEFAULT_MAX_LIMIT",
    "DatePart",
    "FieldExpression",
    "FieldExpressionError",
    "FilterClause",
    "FilterOperator",
    "JoinClause",
    "JoinType",
    "QueryCompiler",
    "QueryPlan",
    "SortClause",
    "SortDirection",
    "ValueKind",
    "bind_params",
    "coerce_operand",
    "coerce_value",
    "compile_composition",
    "load_config",
    "parse_field_expression",
    "wrap_query_string_params",
]
