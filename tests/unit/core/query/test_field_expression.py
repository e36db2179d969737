"""Unit tests for field expression parsing."""

import pytest

from folio.core.query.exceptions import FieldExpressionError
from folio.core.query.field_expression import DatePart, FieldExpression, parse_field_expression


class TestParseFieldExpression:
    def test_plain_field(self):
        parsed = parse_field_expression("category")
        assert parsed == FieldExpression(field="category")
        assert parsed.reference == "category"
        assert parsed.alias == "category"

    def test_qualified_field(self):
        parsed = parse_field_expression("accounts.type")
        assert parsed.collection == "accounts"
        assert parsed.field == "type"
        assert parsed.reference == "accounts.type"
        assert parsed.alias == "accounts_type"

    def test_qualified_field_with_dashed_collection_slug(self):
        parsed = parse_field_expression("line-items.qty")
        assert parsed.collection == "line-items"
        assert parsed.alias == "line_items_qty"

    @pytest.mark.parametrize(
        "expr,part",
        [
            ("month(spent_on)", DatePart.MONTH),
            ("YEAR(spent_on)", DatePart.YEAR),
            ("day( spent_on )", DatePart.DAY),
            ("date(spent_on)", DatePart.DATE),
        ],
    )
    def test_date_functions(self, expr, part):
        parsed = parse_field_expression(expr)
        assert parsed.function is part
        assert parsed.field == "spent_on"
        assert parsed.alias == f"{part.value}_spent_on"

    def test_function_on_qualified_field(self):
        parsed = parse_field_expression("month(expenses.spent_on)")
        assert parsed.collection == "expenses"
        assert parsed.alias == "month_expenses_spent_on"

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_field_expression("  amount ").field == "amount"

    def test_unknown_function(self):
        with pytest.raises(FieldExpressionError, match="Unknown function"):
            parse_field_expression("week(spent_on)")

    @pytest.mark.parametrize(
        "expr",
        ["", "1amount", "amount; DROP TABLE records", "amount--", "a.b.c", "data->>'x'"],
    )
    def test_unsafe_names_are_rejected(self, expr):
        with pytest.raises(FieldExpressionError):
            parse_field_expression(expr)

    def test_non_string_is_rejected(self):
        with pytest.raises(FieldExpressionError, match="must be a string"):
            parse_field_expression(42)
