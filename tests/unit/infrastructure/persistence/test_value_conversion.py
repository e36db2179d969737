"""Unit tests for converting stored values back to their API form."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from folio.core.query.plan import OutputColumn, ValueKind
from folio.infrastructure.persistence.query_executor import convert_value


def column(kind: ValueKind) -> OutputColumn:
    return OutputColumn(label="c0", name="value", value_kind=kind)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (250.0, 250),
        (12.5, 12.5),
        (Decimal("140"), 140),
        (Decimal("2.25"), 2.25),
        ("42", 42),
        ("4.5", 4.5),
        ("n/a", "n/a"),
        (True, 1),
    ],
)
def test_numbers(raw, expected):
    value = convert_value(column(ValueKind.NUMBER), raw)
    assert value == expected
    assert type(value) is type(expected)


@pytest.mark.parametrize(
    "raw, expected", [(1, True), (0, False), ("true", True), ("FALSE", False), (True, True)]
)
def test_booleans(raw, expected):
    assert convert_value(column(ValueKind.BOOLEAN), raw) is expected


def test_timestamps_are_rendered_in_utc_iso_format():
    converted = convert_value(column(ValueKind.TIMESTAMP), "2024-01-05 10:30:00.000000")
    assert converted == "2024-01-05T10:30:00+00:00"

    aware = datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc)
    assert convert_value(column(ValueKind.TIMESTAMP), aware) == "2024-01-05T10:30:00+00:00"


def test_json_text_is_decoded():
    assert convert_value(column(ValueKind.JSON), '["home", "work"]') == ["home", "work"]
    assert convert_value(column(ValueKind.JSON), "home") == "home"
    assert convert_value(column(ValueKind.JSON), '"quoted"', encoded=True) == "quoted"
    assert convert_value(column(ValueKind.JSON), {"a": 1}) == {"a": 1}


def test_text_passes_through():
    assert convert_value(column(ValueKind.TEXT), "Food") == "Food"
    assert convert_value(column(ValueKind.TEXT), date(2024, 1, 5)) == "2024-01-05"


@pytest.mark.parametrize("kind", list(ValueKind))
def test_null_stays_null(kind):
    assert convert_value(column(kind), None) is None
