"""Tamper-evident hashing for audit entries.

The canonical payload is a fixed sequence of LABEL:value lines. Field
order and formatting are part of the contract: changing either changes
every future hash and breaks verification of entries already stored.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from audited_query.core.models import AuditEntry, QueryRequest, QueryResult


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with microseconds and UTC offset; round-trips through fromisoformat."""
    return value.isoformat(timespec="microseconds")


def build_canonical_payload(
    sql: str,
    requested_by: str,
    request_timestamp: datetime,
    row_count: int,
    column_count: int,
    column_names: Sequence[str],
    execution_milliseconds: int,
    succeeded: bool,
    error_message: str | None,
    result_timestamp: datetime,
) -> str:
    lines = [
        f"SQL:{sql}",
        f"BY:{requested_by}",
        f"REQ_TS:{format_timestamp(request_timestamp)}",
        f"ROWS:{row_count}",
        f"COLS:{column_count}",
        f"COL_NAMES:{','.join(column_names)}",
        f"EXEC_MS:{execution_milliseconds}",
        f"OK:{succeeded}",
        f"ERR:{error_message or ''}",
        f"RES_TS:{format_timestamp(result_timestamp)}",
    ]
    return "".join(line + "\n" for line in lines)


def compute_sha256(payload: str) -> str:
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def generate_audit_hash(request: QueryRequest, result: QueryResult) -> str:
    """SHA-256 over the canonical payload of a request/result pair."""
    if request is None:
        msg = "request is required"
        raise TypeError(msg)
    if result is None:
        msg = "result is required"
        raise TypeError(msg)

    payload = build_canonical_payload(
        request.sql,
        request.requested_by,
        request.timestamp,
        result.row_count,
        result.column_count,
        result.column_names,
        result.execution_milliseconds,
        result.succeeded,
        result.error_message,
        result.timestamp,
    )
    return compute_sha256(payload)


def verify_audit_hash(entry: AuditEntry) -> bool:
    """Recompute the entry's hash from its own fields and compare exactly."""
    if entry is None:
        msg = "entry is required"
        raise TypeError(msg)

    payload = build_canonical_payload(
        entry.sql,
        entry.requested_by,
        entry.request_timestamp,
        entry.row_count,
        entry.column_count,
        entry.column_names,
        entry.execution_milliseconds,
        entry.succeeded,
        entry.error_message,
        entry.result_timestamp,
    )
    expected = compute_sha256(payload)
    return hmac.compare_digest(
        entry.integrity_hash.encode("utf-8"), expected.encode("utf-8")
    )
