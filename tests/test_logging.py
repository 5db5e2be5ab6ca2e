"""Tests for logging setup, SQL redaction and bound audit context."""

import uuid

import pytest
import structlog

from audited_query.core.logging import audit_context, get_logger, redact_sql, setup_logging


@pytest.fixture(autouse=True)
def _reset_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.mark.unit
class TestLogOutput:
    def test_logs_go_to_stderr(self, capsys):
        setup_logging(verbose=True)
        get_logger("audit").info("query audited")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "query audited" in captured.err

    def test_debug_hidden_unless_verbose(self, capsys):
        setup_logging(verbose=False)
        get_logger().debug("hidden detail")
        assert "hidden detail" not in capsys.readouterr().err


@pytest.mark.unit
class TestRedactSql:
    def test_masks_credentials_in_sql_field(self):
        event = redact_sql(None, "debug", {"event": "executing query", "sql": "SELECT 1 -- password=hunter2"})
        assert "hunter2" not in event["sql"]
        assert "***REDACTED***" in event["sql"]

    def test_other_fields_untouched(self):
        event = redact_sql(None, "info", {"event": "x", "error": "token=abc"})
        assert event == {"event": "x", "error": "token=abc"}

    def test_rendered_output_is_redacted(self, capsys):
        setup_logging(verbose=True)
        get_logger("executor").debug("executing query", sql="SELECT secret='s3cr3t'")

        err = capsys.readouterr().err
        assert "s3cr3t" not in err
        assert "***REDACTED***" in err


@pytest.mark.unit
class TestAuditContext:
    def test_fields_bound_inside_block_only(self, capsys):
        setup_logging()
        entry_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        with audit_context(audit_id=entry_id, requested_by="alice"):
            get_logger("audit").info("inside")
        get_logger("audit").info("outside")

        inside, outside = capsys.readouterr().err.strip().splitlines()
        assert "12345678-1234-5678-1234-567812345678" in inside
        assert "alice" in inside
        assert "alice" not in outside

    def test_none_values_skipped(self):
        with audit_context(audit_id=None, requested_by="bob"):
            assert structlog.contextvars.get_contextvars() == {"requested_by": "bob"}
        assert structlog.contextvars.get_contextvars() == {}
