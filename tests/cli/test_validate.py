"""Tests for the validate command."""

import pytest

from audited_query.cli.main import app
from audited_query.core.exit_codes import ExitCode


@pytest.mark.unit
def test_safe_statement(runner):
    result = runner.invoke(app, ["validate", "-e", "SELECT * FROM Logs WHERE Msg = 'DROP TABLE'"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "Risk: Safe"


@pytest.mark.unit
def test_suspicious_statement_passes(runner):
    result = runner.invoke(app, ["validate", "-e", "SELECT 1; SELECT 2"])
    assert result.exit_code == 0
    assert "Risk: Suspicious" in result.stdout
    assert "multi-statement" in result.stdout


@pytest.mark.unit
def test_blocked_statement(runner):
    result = runner.invoke(app, ["validate", "-e", "TRUNCATE TABLE Orders"])
    assert result.exit_code == ExitCode.QUERY_REJECTED
    assert "Risk: Blocked" in result.stdout
    assert "  - Blocked keyword detected: TRUNCATE" in result.stdout


@pytest.mark.unit
def test_from_file(runner, temp_dir):
    sql_file = temp_dir / "q.sql"
    sql_file.write_text("EXEC xp_cmdshell 'dir'")
    result = runner.invoke(app, ["validate", str(sql_file)])
    assert result.exit_code == ExitCode.QUERY_REJECTED
    assert "Stored procedure call detected: xp_*" in result.stdout


@pytest.mark.unit
def test_empty_stdin_is_blocked(runner):
    result = runner.invoke(app, ["validate"], input="   \n")
    assert result.exit_code == ExitCode.QUERY_REJECTED
    assert "Rejected: empty statement." in result.stdout
