"""Tests for JSONFormatter."""

import json
from datetime import date
from decimal import Decimal

import pytest

from audited_query.core.models import QueryResult, ResultSet
from audited_query.formatters.json import JSONFormatter

USERS = ResultSet(column_names=["id", "name"], rows=[{"id": 1, "name": "alice"}])
TOTALS = ResultSet(column_names=["total"], rows=[{"total": 1}])


@pytest.mark.unit
def test_single_set_is_list_of_rows():
    output = "".join(JSONFormatter().format(QueryResult(result_sets=[USERS])))
    assert json.loads(output) == [{"id": 1, "name": "alice"}]


@pytest.mark.unit
def test_multiple_sets_are_nested():
    output = "".join(JSONFormatter().format(QueryResult(result_sets=[USERS, TOTALS])))
    assert json.loads(output) == [[{"id": 1, "name": "alice"}], [{"total": 1}]]


@pytest.mark.unit
def test_compact():
    output = "".join(JSONFormatter(compact=True).format(QueryResult(result_sets=[USERS])))
    assert "\n" not in output


@pytest.mark.unit
def test_non_json_values_become_strings():
    rs = ResultSet(
        column_names=["d", "amount"], rows=[{"d": date(2024, 1, 2), "amount": Decimal("1.50")}]
    )
    output = "".join(JSONFormatter().format(QueryResult(result_sets=[rs])))
    assert json.loads(output) == [{"d": "2024-01-02", "amount": "1.50"}]


@pytest.mark.unit
def test_no_sets_is_empty_list():
    assert json.loads("".join(JSONFormatter().format(QueryResult()))) == []
