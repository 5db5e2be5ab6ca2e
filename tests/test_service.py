"""Tests for the submit pipeline."""

import json

import pytest

from audited_query.core.audit import AuditLogger
from audited_query.core.dialects import SqlServerDialect
from audited_query.core.executor import QueryExecutor
from audited_query.core.integrity import verify_audit_hash
from audited_query.core.logging import setup_logging
from audited_query.core.models import ExecutionPlanMode, RiskLevel
from audited_query.core.service import AuditedQueryService
from audited_query.core.store import InMemoryAuditStore, JsonlAuditStore
from tests.fake_db import FakeConnection, FakeProvider


def _service(script=None):
    store = InMemoryAuditStore()
    provider = FakeProvider(FakeConnection(script))
    audit_logger = AuditLogger(store)
    service = AuditedQueryService(QueryExecutor(provider, SqlServerDialect()), audit_logger)
    return service, store, provider


@pytest.mark.unit
class TestSubmit:
    def test_success_is_audited(self):
        service, store, _ = _service({"SELECT name FROM sys.tables": [(["name"], [("Users",)])]})
        result, entry = service.submit("SELECT name FROM sys.tables", "alice")

        assert result.succeeded
        assert entry.row_count == 1
        assert entry.column_names == ["name"]
        assert entry.requested_by == "alice"
        assert store.get(entry.id) is entry
        assert verify_audit_hash(entry)

    def test_rejection_is_audited(self):
        service, store, provider = _service()
        result, entry = service.submit("DELETE FROM Users", "mallory")

        assert not result.succeeded
        assert not entry.succeeded
        assert entry.error_message == result.error_message
        assert provider.calls == 0
        assert len(store) == 1

    def test_execution_failure_is_audited(self):
        service, store, _ = _service({"SELECT * FROM Nope": RuntimeError("Invalid object name 'Nope'.")})
        result, entry = service.submit("SELECT * FROM Nope", "alice")

        assert not result.succeeded
        assert entry.error_message == "Invalid object name 'Nope'."
        assert verify_audit_hash(entry)

    def test_plan_mode_is_forwarded(self):
        plan = "<ShowPlanXML/>"
        service, _, provider = _service({"SELECT 1": [(["plan"], [(plan,)])]})
        result, _ = service.submit("SELECT 1", "alice", ExecutionPlanMode.ESTIMATED)

        assert result.execution_plan_xml == plan
        assert provider.connection.executed[0] == "SET SHOWPLAN_XML ON"


@pytest.mark.unit
def test_validate_does_not_execute():
    service, store, provider = _service()
    outcome = service.validate("SELECT 1 UNION SELECT 2")
    assert outcome.risk_level == RiskLevel.SUSPICIOUS
    assert provider.calls == 0
    assert len(store) == 0


@pytest.mark.unit
def test_corrupt_audit_log_does_not_block_submit(temp_dir):
    path = temp_dir / "audit.jsonl"
    path.write_text("not json\n")
    store = JsonlAuditStore(path)
    provider = FakeProvider(FakeConnection({"SELECT 1": [(["n"], [(1,)])]}))
    service = AuditedQueryService(QueryExecutor(provider, SqlServerDialect()), AuditLogger(store))

    result, entry = service.submit("SELECT 1", "alice")

    assert result.succeeded
    assert json.loads(path.read_text().splitlines()[-1])["entry"]["id"] == str(entry.id)


@pytest.mark.unit
def test_executor_events_carry_request_context(capsys):
    setup_logging(verbose=True)
    service, _, _ = _service({"SELECT 1": [(["n"], [(1,)])]})
    service.submit("SELECT 1", "alice", ExecutionPlanMode.NONE)

    executing = [
        line for line in capsys.readouterr().err.splitlines() if "executing query" in line
    ]
    assert len(executing) == 1
    assert "requested_by=alice" in executing[0]
    assert "plan_mode=none" in executing[0]
