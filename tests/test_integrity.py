"""Tests for audit hashing and verification."""

from datetime import UTC, datetime

import pytest

from audited_query.core.integrity import (
    build_canonical_payload,
    compute_sha256,
    format_timestamp,
    generate_audit_hash,
    verify_audit_hash,
)
from audited_query.core.models import AuditEntry, QueryRequest, QueryResult, ResultSet

REQ_TS = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=UTC)
RES_TS = datetime(2024, 5, 1, 12, 0, 1, tzinfo=UTC)


def _request(**overrides) -> QueryRequest:
    fields = {"sql": "SELECT id, name FROM Users", "requested_by": "alice", "timestamp": REQ_TS}
    fields.update(overrides)
    return QueryRequest(**fields)


def _result(**overrides) -> QueryResult:
    fields = {
        "result_sets": [
            ResultSet(column_names=["id", "name"], rows=[{"id": 1, "name": "a"}]),
        ],
        "execution_milliseconds": 15,
        "timestamp": RES_TS,
    }
    fields.update(overrides)
    return QueryResult(**fields)


def _entry() -> AuditEntry:
    request, result = _request(), _result()
    return AuditEntry.from_execution(request, result, generate_audit_hash(request, result))


@pytest.mark.unit
class TestCanonicalPayload:
    def test_exact_layout(self):
        payload = build_canonical_payload(
            "SELECT 1", "bob", REQ_TS, 1, 1, ["x"], 3, True, None, RES_TS
        )
        assert payload == (
            "SQL:SELECT 1\n"
            "BY:bob\n"
            "REQ_TS:2024-05-01T12:00:00.123456+00:00\n"
            "ROWS:1\n"
            "COLS:1\n"
            "COL_NAMES:x\n"
            "EXEC_MS:3\n"
            "OK:True\n"
            "ERR:\n"
            "RES_TS:2024-05-01T12:00:01.000000+00:00\n"
        )

    def test_timestamp_round_trips(self):
        assert datetime.fromisoformat(format_timestamp(REQ_TS)) == REQ_TS

    def test_known_digest(self):
        assert (
            compute_sha256("")
            == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )


@pytest.mark.unit
class TestGenerateAuditHash:
    def test_deterministic_lowercase_hex(self):
        first = generate_audit_hash(_request(), _result())
        second = generate_audit_hash(_request(), _result())
        assert first == second
        assert len(first) == 64
        assert first == first.lower()
        int(first, 16)

    @pytest.mark.parametrize(
        ("request_kwargs", "result_kwargs"),
        [
            ({"sql": "SELECT id FROM Users"}, {}),
            ({"requested_by": "mallory"}, {}),
            ({"timestamp": REQ_TS.replace(microsecond=0)}, {}),
            ({}, {"execution_milliseconds": 16}),
            ({}, {"timestamp": RES_TS.replace(second=2)}),
            ({}, {"result_sets": []}),
            ({}, {"result_sets": [ResultSet(column_names=["id", "nom"], rows=[{"id": 1, "nom": "a"}])]}),
        ],
    )
    def test_any_field_changes_hash(self, request_kwargs, result_kwargs):
        baseline = generate_audit_hash(_request(), _result())
        assert generate_audit_hash(_request(**request_kwargs), _result(**result_kwargs)) != baseline

    def test_failure_fields_change_hash(self):
        one = generate_audit_hash(_request(), QueryResult.failure("a").model_copy(update={"timestamp": RES_TS}))
        two = generate_audit_hash(_request(), QueryResult.failure("b").model_copy(update={"timestamp": RES_TS}))
        assert one != two

    def test_none_arguments_raise(self):
        with pytest.raises(TypeError):
            generate_audit_hash(None, _result())
        with pytest.raises(TypeError):
            generate_audit_hash(_request(), None)


@pytest.mark.unit
class TestVerifyAuditHash:
    def test_fresh_entry_verifies(self):
        assert verify_audit_hash(_entry())

    @pytest.mark.parametrize(
        "update",
        [
            {"sql": "SELECT * FROM Salaries"},
            {"requested_by": "mallory"},
            {"row_count": 0},
            {"column_names": ["id"]},
            {"succeeded": False},
            {"error_message": "oops"},
            {"execution_milliseconds": 1},
            {"result_timestamp": RES_TS.replace(hour=13)},
            {"integrity_hash": "0" * 64},
        ],
    )
    def test_mutation_is_detected(self, update):
        assert not verify_audit_hash(_entry().model_copy(update=update))

    def test_published_reference_is_not_hashed(self):
        entry = _entry()
        entry.published_reference = "https://github.com/o/r/issues/1#issuecomment-1"
        assert verify_audit_hash(entry)

    def test_survives_json_round_trip(self):
        entry = _entry()
        assert verify_audit_hash(AuditEntry.model_validate_json(entry.model_dump_json()))

    def test_none_raises(self):
        with pytest.raises(TypeError):
            verify_audit_hash(None)
