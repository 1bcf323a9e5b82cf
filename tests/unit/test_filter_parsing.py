"""Tests for filter and sort parsing in the SQLite store client."""

import pytest

from neighborly.core import db_client


@pytest.mark.unit
def test_sanitized_double_quotes_round_trip():
    """A value escaped by sanitize_param parses back to the original text."""
    query = f'title = "{db_client.sanitize_param("foo" + chr(34) + "bar")}"'

    _, param = db_client._parse_single_comparison(query)

    assert param == 'foo"bar'


@pytest.mark.unit
def test_injection_attempt_stays_a_single_parameter():
    malicious = '" || status != "'
    query = f'owner_id = "{db_client.sanitize_param(malicious)}"'

    where, params = db_client.parse_filter(query)

    assert where == "owner_id = ?"
    assert params == [malicious]


@pytest.mark.unit
def test_and_of_equal_and_not_equal():
    where, params = db_client.parse_filter('owner_id = "7" && status != "completed"')

    assert where == "owner_id = ? AND status != ?"
    assert params == [7, "completed"]


@pytest.mark.unit
def test_ampersands_inside_a_value_do_not_split():
    where, params = db_client.parse_filter('title = "Salt && pepper" && status = "open"')

    assert where == "title = ? AND status = ?"
    assert params == ["Salt && pepper", "open"]


@pytest.mark.unit
def test_numeric_values_become_integers():
    _, params = db_client.parse_filter('help_request_id = "42"')

    assert params == [42]


@pytest.mark.unit
@pytest.mark.parametrize(
    "query",
    [
        'title ~ "fence"',
        '(status = "open" || status = "in_progress")',
    ],
)
def test_unsupported_operators_are_rejected(query):
    with pytest.raises(ValueError, match="Invalid filter syntax"):
        db_client.parse_filter(query)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("sort", "expected"),
    [
        ("", "id ASC"),
        ("-created_at", "created_at DESC, id ASC"),
        ("+title", "title ASC, id ASC"),
        ("title; DROP TABLE tasks", "id ASC"),
    ],
)
def test_sort_parsing(sort, expected):
    assert db_client._parse_sort(sort) == expected


@pytest.mark.unit
def test_invalid_filter_raises():
    with pytest.raises(ValueError, match="Invalid filter syntax"):
        db_client.parse_filter("status open")
