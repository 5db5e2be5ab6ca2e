"""Tests for TableFormatter."""

import pytest

from audited_query.core.models import QueryResult, ResultSet
from audited_query.formatters.base import Formatter
from audited_query.formatters.table import TableFormatter

USERS = ResultSet(column_names=["id", "name"], rows=[{"id": 1, "name": "alice"}, {"id": 2, "name": "bob"}])
TOTALS = ResultSet(column_names=["total"], rows=[{"total": 2}])


@pytest.mark.unit
def test_implements_protocol():
    assert isinstance(TableFormatter(), Formatter)


@pytest.mark.unit
def test_headers_and_values():
    output = "\n".join(TableFormatter().format(QueryResult(result_sets=[USERS])))
    assert "id" in output
    assert "name" in output
    assert "alice" in output
    assert "bob" in output


@pytest.mark.unit
def test_one_table_per_set():
    lines = list(TableFormatter().format(QueryResult(result_sets=[USERS, TOTALS])))
    assert len(lines) == 3
    assert lines[1] == ""
    assert "total" in lines[2]


@pytest.mark.unit
def test_empty_result_shows_no_results():
    empty = ResultSet(column_names=["id"], rows=[])
    assert list(TableFormatter().format(QueryResult(result_sets=[empty]))) == ["No results"]
    assert list(TableFormatter().format(QueryResult())) == ["No results"]


@pytest.mark.unit
def test_long_values_truncated():
    rs = ResultSet(column_names=["v"], rows=[{"v": "x" * 100}])
    output = "\n".join(TableFormatter(width=10).format(QueryResult(result_sets=[rs])))
    assert "x" * 9 + "…" in output
    assert "x" * 11 not in output
