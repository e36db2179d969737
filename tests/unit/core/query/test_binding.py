"""Unit tests for value coercion and runtime param binding."""

from datetime import date, datetime, timezone

import pytest

from folio.core.exceptions import RuntimeParamError
from folio.core.query.binding import (
    bind_params,
    coerce_operand,
    coerce_value,
    wrap_query_string_params,
)
from folio.core.query.config import FilterOperator
from folio.core.query.plan import (
    ColumnRef,
    Literal,
    OutputColumn,
    ParamHole,
    Predicate,
    QueryPlan,
    ResolvedSource,
    ValueKind,
)


class TestCoerceValue:
    @pytest.mark.parametrize(
        "raw, expected",
        [(5, 5), (2.5, 2.5), ("42", 42), (" 3.25 ", 3.25), ("-7", -7)],
    )
    def test_numbers(self, raw, expected):
        assert coerce_value(ValueKind.NUMBER, raw) == expected

    @pytest.mark.parametrize("raw", [True, "abc", None, [1], "nan", "inf"])
    def test_bad_numbers(self, raw):
        with pytest.raises(ValueError):
            coerce_value(ValueKind.NUMBER, raw)

    @pytest.mark.parametrize(
        "raw, expected",
        [(True, True), (False, False), ("true", True), ("FALSE", False), ("1", True),
         ("no", False), (1, True), (0, False)],
    )
    def test_booleans(self, raw, expected):
        assert coerce_value(ValueKind.BOOLEAN, raw) is expected

    @pytest.mark.parametrize("raw", ["maybe", 2, None, 1.0])
    def test_bad_booleans(self, raw):
        with pytest.raises(ValueError):
            coerce_value(ValueKind.BOOLEAN, raw)

    def test_timestamps(self):
        assert coerce_value(ValueKind.TIMESTAMP, "2024-01-01T10:00:00Z") == datetime(
            2024, 1, 1, 10, tzinfo=timezone.utc
        )
        assert coerce_value(ValueKind.TIMESTAMP, date(2024, 3, 1)) == datetime(2024, 3, 1)
        with pytest.raises(ValueError):
            coerce_value(ValueKind.TIMESTAMP, "yesterday")

    def test_text_stringifies_scalars(self):
        assert coerce_value(ValueKind.TEXT, "Food") == "Food"
        assert coerce_value(ValueKind.TEXT, 10) == "10"
        assert coerce_value(ValueKind.TEXT, True) == "true"
        with pytest.raises(ValueError):
            coerce_value(ValueKind.TEXT, {"a": 1})

    def test_json_accepts_scalars_only(self):
        assert coerce_value(ValueKind.JSON, "home") == "home"
        with pytest.raises(ValueError):
            coerce_value(ValueKind.JSON, ["home"])


class TestCoerceOperand:
    def test_in_returns_tuple(self):
        assert coerce_operand(FilterOperator.IN, ValueKind.NUMBER, ["1", 2]) == (1, 2)

    def test_in_requires_list(self):
        with pytest.raises(ValueError, match="list"):
            coerce_operand(FilterOperator.IN, ValueKind.TEXT, "Food")

    def test_empty_in_list(self):
        assert coerce_operand(FilterOperator.IN, ValueKind.TEXT, []) == ()

    @pytest.mark.parametrize("operator", [FilterOperator.EQ, FilterOperator.NEQ])
    def test_null_allowed_for_equality(self, operator):
        assert coerce_operand(operator, ValueKind.NUMBER, None) is None

    def test_null_rejected_for_ordering(self):
        with pytest.raises(ValueError):
            coerce_operand(FilterOperator.GT, ValueKind.NUMBER, None)

    def test_contains_is_text(self):
        assert coerce_operand(FilterOperator.CONTAINS, ValueKind.NUMBER, 12) == "12"


def plan_with(*predicates: Predicate) -> QueryPlan:
    source = ResolvedSource(alias="r", collection_id="c1", collection_slug="expenses", workspace_id="ws")
    return QueryPlan(
        workspace_id="ws",
        source=source,
        joins=(),
        columns=(OutputColumn(label="c0", name="id", value_kind=ValueKind.TEXT),),
        predicates=predicates,
        group_by=(),
        order_by=(),
        limit=10,
        is_aggregate=False,
    )


def predicate(slug, kind, operator, operand) -> Predicate:
    return Predicate(
        column=ColumnRef(source_alias="r", value_kind=kind, field_slug=slug),
        operator=operator,
        operand=operand,
        value_kind=kind,
    )


class TestBindParams:
    def test_binds_and_coerces(self):
        plan = plan_with(
            predicate("category", ValueKind.TEXT, FilterOperator.EQ, ParamHole("category")),
            predicate("amount", ValueKind.NUMBER, FilterOperator.GTE, ParamHole("min")),
            predicate("paid", ValueKind.BOOLEAN, FilterOperator.EQ, Literal(True)),
        )

        bound = bind_params(plan, {"category": "Food", "min": "100", "unused": "x"})

        assert bound == {"category": "Food", "min": 100}

    def test_missing_params_are_listed(self):
        plan = plan_with(
            predicate("category", ValueKind.TEXT, FilterOperator.EQ, ParamHole("category")),
            predicate("amount", ValueKind.NUMBER, FilterOperator.GT, ParamHole("min")),
        )

        with pytest.raises(RuntimeParamError) as exc_info:
            bind_params(plan, {})

        assert exc_info.value.details == {"missing": ["category", "min"]}
        assert exc_info.value.status_code == 400
        assert "category" in exc_info.value.message

    def test_bad_values_are_reported_per_param(self):
        plan = plan_with(
            predicate("amount", ValueKind.NUMBER, FilterOperator.GT, ParamHole("min")),
            predicate("paid", ValueKind.BOOLEAN, FilterOperator.EQ, ParamHole("paid")),
        )

        with pytest.raises(RuntimeParamError) as exc_info:
            bind_params(plan, {"min": "lots", "paid": "maybe"})

        assert [d["param"] for d in exc_info.value.details] == ["min", "paid"]

    def test_in_binds_lists(self):
        plan = plan_with(
            predicate("category", ValueKind.TEXT, FilterOperator.IN, ParamHole("cats")),
        )
        assert bind_params(plan, {"cats": ["Food", "Rent"]}) == {"cats": ("Food", "Rent")}

    @pytest.mark.parametrize("value", ["Food", 5, True, {"a": 1}])
    def test_in_rejects_non_list(self, value):
        plan = plan_with(
            predicate("amount", ValueKind.NUMBER, FilterOperator.IN, ParamHole("xs")),
        )

        with pytest.raises(RuntimeParamError) as exc_info:
            bind_params(plan, {"xs": value})

        assert exc_info.value.details == [
            {"param": "xs", "message": "'in' operator requires a list value"}
        ]

    def test_plan_without_params(self):
        assert bind_params(plan_with(), {"anything": 1}) == {}


class TestWrapQueryStringParams:
    def test_single_value_for_in_becomes_list(self):
        plan = plan_with(
            predicate("category", ValueKind.TEXT, FilterOperator.IN, ParamHole("cats")),
            predicate("amount", ValueKind.NUMBER, FilterOperator.GT, ParamHole("min")),
        )

        params = wrap_query_string_params(plan, {"cats": "Food", "min": "10", "extra": "x"})

        assert params == {"cats": ["Food"], "min": "10", "extra": "x"}
        assert bind_params(plan, params) == {"cats": ("Food",), "min": 10}

    def test_repeated_values_are_kept(self):
        plan = plan_with(
            predicate("category", ValueKind.TEXT, FilterOperator.IN, ParamHole("cats")),
        )
        assert wrap_query_string_params(plan, {"cats": ["Food", "Rent"]}) == {
            "cats": ["Food", "Rent"]
        }

    def test_literal_in_is_not_a_param(self):
        plan = plan_with(
            predicate("category", ValueKind.TEXT, FilterOperator.IN, Literal(("Food",))),
        )
        assert wrap_query_string_params(plan, {"category": "Food"}) == {"category": "Food"}
