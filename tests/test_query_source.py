"""Tests for query source resolution."""

import io
from pathlib import Path
from unittest.mock import patch

import pytest

from audited_query.core.exceptions import InputError
from audited_query.core.query_source import resolve_query_source

FIXTURE_SQL = str(Path(__file__).parent / "fixtures" / "select_tables.sql")


@pytest.mark.unit
def test_inline_query():
    assert resolve_query_source(inline="SELECT 1", file_path=None) == "SELECT 1"


@pytest.mark.unit
def test_inline_takes_precedence_over_file():
    assert resolve_query_source(inline="SELECT 1", file_path=FIXTURE_SQL) == "SELECT 1"


@pytest.mark.unit
def test_file_query():
    result = resolve_query_source(inline=None, file_path=FIXTURE_SQL)
    assert result == "SELECT TOP 10 name FROM sys.tables\n"


@pytest.mark.unit
def test_file_not_found_raises_input_error():
    with pytest.raises(InputError, match="Query file not found"):
        resolve_query_source(inline=None, file_path="/nonexistent/file.sql")


@pytest.mark.unit
def test_directory_is_not_a_query_file(temp_dir):
    with pytest.raises(InputError, match="Query file not found"):
        resolve_query_source(inline=None, file_path=str(temp_dir))


@pytest.mark.unit
def test_stdin_query():
    with patch("sys.stdin", new=io.StringIO("SELECT 99")):
        result = resolve_query_source(inline=None, file_path=None)
    assert result == "SELECT 99"


@pytest.mark.unit
def test_no_query_source_raises_input_error():
    with (
        patch("sys.stdin.isatty", return_value=True),
        pytest.raises(InputError, match="No query provided"),
    ):
        resolve_query_source(inline=None, file_path=None)


@pytest.mark.unit
def test_empty_inline_query_is_passed_through():
    """Blank text is left for the validator to reject."""
    assert resolve_query_source(inline="", file_path=None) == ""
