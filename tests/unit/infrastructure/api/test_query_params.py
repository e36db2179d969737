"""Unit tests for collecting runtime params from the query string."""

from starlette.requests import Request

from folio.infrastructure.api.routes.composition_execute_router import query_params_to_dict


def make_request(query_string: str) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [],
            "query_string": query_string.encode(),
        }
    )


def test_single_values_stay_scalar():
    assert query_params_to_dict(make_request("category=Food&min=10")) == {
        "category": "Food",
        "min": "10",
    }


def test_repeated_keys_become_lists():
    params = query_params_to_dict(make_request("cat=Food&cat=Rent&cat=Travel&x=1"))
    assert params == {"cat": ["Food", "Rent", "Travel"], "x": "1"}


def test_values_are_url_decoded():
    assert query_params_to_dict(make_request("q=Bus%20pass&t=a%26b")) == {
        "q": "Bus pass",
        "t": "a&b",
    }


def test_empty_query_string():
    assert query_params_to_dict(make_request("")) == {}
