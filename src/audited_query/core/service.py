"""Submission pipeline: validate, execute, audit."""

from __future__ import annotations

from typing import TYPE_CHECKING

from audited_query.core.logging import audit_context, get_logger
from audited_query.core.models import ExecutionPlanMode, QueryRequest
from audited_query.core.validator import validate_read_only

if TYPE_CHECKING:
    from audited_query.core.audit import AuditLogger
    from audited_query.core.executor import QueryExecutor
    from audited_query.core.models import AuditEntry, QueryResult, ValidationOutcome


class AuditedQueryService:
    """Every submitted statement produces exactly one audit entry.

    Rejected and failed executions are audited too, so the trail records
    attempts as well as successes.
    """

    def __init__(self, executor: QueryExecutor, audit_logger: AuditLogger) -> None:
        self.executor = executor
        self.audit_logger = audit_logger

    def validate(self, sql: str) -> ValidationOutcome:
        return validate_read_only(sql)

    def submit(
        self,
        sql: str,
        requested_by: str,
        execution_plan_mode: ExecutionPlanMode = ExecutionPlanMode.NONE,
    ) -> tuple[QueryResult, AuditEntry]:
        log = get_logger("service")
        request = QueryRequest(
            sql=sql,
            requested_by=requested_by,
            execution_plan_mode=execution_plan_mode,
        )
        with audit_context(
            requested_by=requested_by, plan_mode=execution_plan_mode.value
        ):
            log.debug("query submitted")
            result = self.executor.execute_read_only(request)
            entry = self.audit_logger.log_query(request, result)
        return result, entry
