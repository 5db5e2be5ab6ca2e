"""Request, result and audit models for audited-query.

Pydantic models for the query pipeline: what the caller submits
(QueryRequest), what the validator concludes (ValidationOutcome), what
the executor returns (ResultSet, QueryResult) and what the audit trail
records (AuditEntry).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import IntEnum, StrEnum
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class ExecutionPlanMode(StrEnum):
    NONE = "none"
    ESTIMATED = "estimated"
    ACTUAL = "actual"


class RiskLevel(IntEnum):
    """Validation risk, ordered so that max() yields the overall outcome."""

    SAFE = 0
    SUSPICIOUS = 1
    BLOCKED = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


class QueryRequest(BaseModel):
    """A SQL statement submitted for read-only execution."""

    model_config = ConfigDict(frozen=True)

    sql: str
    requested_by: str
    timestamp: datetime = Field(default_factory=utc_now)
    execution_plan_mode: ExecutionPlanMode = ExecutionPlanMode.NONE

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _ensure_aware(v)


class ValidationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    violations: list[str] = []
    risk_level: RiskLevel = RiskLevel.SAFE


class ResultSet(BaseModel):
    """One tabular result returned by the engine."""

    model_config = ConfigDict(frozen=True)

    column_names: list[str] = []
    rows: list[dict[str, Any]] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def row_count(self) -> int:
        return len(self.rows)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def column_count(self) -> int:
        return len(self.column_names)


class QueryResult(BaseModel):
    """Outcome of one execution attempt.

    The legacy single-result views (row_count, column_count, column_names,
    rows) are derived from result_sets and never stored separately.
    """

    model_config = ConfigDict(frozen=True)

    result_sets: list[ResultSet] = []
    execution_milliseconds: int = Field(default=0, ge=0)
    succeeded: bool = True
    error_message: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)
    execution_plan_xml: str | None = None

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _ensure_aware(v)

    @model_validator(mode="after")
    def failed_results_carry_no_rows(self) -> Self:
        if not self.succeeded and self.result_sets:
            msg = "A failed QueryResult cannot carry result sets"
            raise ValueError(msg)
        return self

    @classmethod
    def failure(cls, message: str, execution_milliseconds: int = 0) -> QueryResult:
        return cls(
            result_sets=[],
            execution_milliseconds=execution_milliseconds,
            succeeded=False,
            error_message=message,
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_execution_plan(self) -> bool:
        return self.execution_plan_xml is not None

    @property
    def row_count(self) -> int:
        return sum(rs.row_count for rs in self.result_sets)

    @property
    def column_count(self) -> int:
        return self.result_sets[0].column_count if self.result_sets else 0

    @property
    def column_names(self) -> list[str]:
        return list(self.result_sets[0].column_names) if self.result_sets else []

    @property
    def rows(self) -> list[dict[str, Any]]:
        return list(self.result_sets[0].rows) if self.result_sets else []

    def to_response(self) -> dict[str, Any]:
        """Render the caller-facing execution contract (camelCase keys)."""
        return {
            "resultSets": [
                {
                    "rowCount": rs.row_count,
                    "columnCount": rs.column_count,
                    "columnNames": list(rs.column_names),
                    "rows": list(rs.rows),
                }
                for rs in self.result_sets
            ],
            "executionTimeMs": self.execution_milliseconds,
            "succeeded": self.succeeded,
            "errorMessage": self.error_message,
            "executionPlanXml": self.execution_plan_xml,
            "rowCount": self.row_count,
            "columnCount": self.column_count,
            "columnNames": self.column_names,
            "rows": self.rows,
        }


class AuditEntry(BaseModel):
    """Immutable audit snapshot of one request/result pair.

    Only published_reference may change after creation, and only to
    record where the entry was published.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4, frozen=True)
    sql: str = Field(frozen=True)
    requested_by: str = Field(frozen=True)
    request_timestamp: datetime = Field(frozen=True)
    row_count: int = Field(frozen=True)
    column_count: int = Field(frozen=True)
    column_names: list[str] = Field(frozen=True)
    execution_milliseconds: int = Field(frozen=True)
    succeeded: bool = Field(frozen=True)
    error_message: str | None = Field(default=None, frozen=True)
    result_timestamp: datetime = Field(frozen=True)
    integrity_hash: str = Field(frozen=True)
    published_reference: str | None = None

    @field_validator("request_timestamp", "result_timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _ensure_aware(v)

    @classmethod
    def from_execution(
        cls, request: QueryRequest, result: QueryResult, integrity_hash: str
    ) -> AuditEntry:
        return cls(
            sql=request.sql,
            requested_by=request.requested_by,
            request_timestamp=request.timestamp,
            row_count=result.row_count,
            column_count=result.column_count,
            column_names=result.column_names,
            execution_milliseconds=result.execution_milliseconds,
            succeeded=result.succeeded,
            error_message=result.error_message,
            result_timestamp=result.timestamp,
            integrity_hash=integrity_hash,
        )


class PublicationResult(BaseModel):
    """Outcome of handing an audit entry to an external publisher."""

    model_config = ConfigDict(frozen=True)

    reference: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.reference is not None
