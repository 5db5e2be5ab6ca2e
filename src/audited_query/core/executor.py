"""Read-only query execution with execution-plan capture.

QueryExecutor validates a request, runs it on a fresh read-only
connection and collects every result set the engine returns. Estimated
plans switch the session into plan-only mode, so nothing executes and
the engine answers with the plan document. Actual plans are interleaved
with real output as a trailing result set, which is recognised by shape
(one column, one row) and by the plan document's root marker.

Failures are returned as QueryResult values, never raised, so that the
audit trail always has a well-formed request/result pair to hash.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import sentry_sdk

from audited_query.core.logging import get_logger
from audited_query.core.models import (
    ExecutionPlanMode,
    QueryRequest,
    QueryResult,
    ResultSet,
)
from audited_query.core.validator import validate_read_only

if TYPE_CHECKING:
    from audited_query.core.connection import ConnectionProvider
    from audited_query.core.dialects import Dialect

REJECTION_PREFIX = "Query rejected: "


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _read_result_set(cursor: Any) -> ResultSet:
    column_names = [desc[0] for desc in cursor.description]
    rows = [dict(zip(column_names, row, strict=True)) for row in cursor.fetchall()]
    return ResultSet(column_names=column_names, rows=rows)


def _close_quietly(resource: Any) -> None:
    log = get_logger("executor")
    try:
        resource.close()
    except Exception as e:  # noqa: BLE001
        log.warning("close failed", resource=type(resource).__name__, error=str(e))


class QueryExecutor:
    """Execute validated statements through a read-only connection provider."""

    def __init__(self, provider: ConnectionProvider, dialect: Dialect) -> None:
        self.provider = provider
        self.dialect = dialect

    def execute_read_only(self, request: QueryRequest) -> QueryResult:
        log = get_logger("executor")

        outcome = validate_read_only(request.sql)
        if not outcome.is_valid:
            log.warning(
                "query rejected",
                requested_by=request.requested_by,
                risk=outcome.risk_level.label,
                violations=outcome.violations,
            )
            return QueryResult.failure(REJECTION_PREFIX + "; ".join(outcome.violations))

        sql_normalized = " ".join(request.sql.split())
        mode = request.execution_plan_mode
        log.debug("executing query", sql=sql_normalized, plan_mode=mode.value)

        with sentry_sdk.start_span(
            op="db.query", description=sql_normalized[:100]
        ) as span:
            start = time.monotonic()
            connection = None
            sent_sql = request.sql
            try:
                connection = self.provider.create_connection()
                if mode == ExecutionPlanMode.ESTIMATED:
                    sent_sql = self.dialect.estimated_plan_statement(request.sql)
                    result_sets, plan_xml = self._run_estimated(connection, sent_sql)
                elif mode == ExecutionPlanMode.ACTUAL:
                    sent_sql = self.dialect.actual_plan_batch(request.sql)
                    result_sets, plan_xml = self._run_actual(connection, sent_sql)
                else:
                    result_sets, plan_xml = self._run_batch(connection, sent_sql), None
            except Exception as e:  # noqa: BLE001
                duration_ms = _elapsed_ms(start)
                span.set_status("internal_error")
                message = self.dialect.describe_error(e, sent_sql)
                log.error(
                    "query execution failed",
                    sql=sql_normalized,
                    duration_ms=duration_ms,
                    error=message,
                )
                return QueryResult.failure(message, duration_ms)
            finally:
                if connection is not None:
                    _close_quietly(connection)

            duration_ms = _elapsed_ms(start)
            total_rows = sum(rs.row_count for rs in result_sets)
            span.set_data("row_count", total_rows)
            span.set_data("duration_ms", duration_ms)
            log.info(
                "query complete",
                result_sets=len(result_sets),
                row_count=total_rows,
                duration_ms=duration_ms,
                has_plan=plan_xml is not None,
            )

            return QueryResult(
                result_sets=result_sets,
                execution_milliseconds=duration_ms,
                succeeded=True,
                execution_plan_xml=plan_xml,
            )

    def _run_batch(self, connection: Any, sql: str) -> list[ResultSet]:
        log = get_logger("executor")
        result_sets: list[ResultSet] = []
        cursor = connection.cursor()
        try:
            cursor.execute(sql)
            while True:
                # Statements without row output (SET, row-count messages) have no description
                if cursor.description is not None:
                    result_set = _read_result_set(cursor)
                    result_sets.append(result_set)
                    log.debug(
                        "result set read",
                        index=len(result_sets),
                        row_count=result_set.row_count,
                        column_count=result_set.column_count,
                    )
                if not cursor.nextset():
                    break
        finally:
            _close_quietly(cursor)
        return result_sets

    def _run_directives(self, connection: Any, statements: tuple[str, ...]) -> None:
        if not statements:
            return
        cursor = connection.cursor()
        try:
            for statement in statements:
                cursor.execute(statement)
        finally:
            _close_quietly(cursor)

    def _reset_plan_mode(self, connection: Any, statements: tuple[str, ...]) -> None:
        """Switch plan capture off after a failure without masking the original error."""
        log = get_logger("executor")
        try:
            self._run_directives(connection, statements)
        except Exception as e:  # noqa: BLE001
            log.warning("could not reset plan mode", error=str(e))

    def _run_estimated(
        self, connection: Any, sql: str
    ) -> tuple[list[ResultSet], str | None]:
        log = get_logger("executor")
        self._run_directives(connection, self.dialect.estimated_plan_setup)
        try:
            plan_xml = None
            for result_set in self._run_batch(connection, sql):
                if result_set.rows and result_set.column_count > 0:
                    value = result_set.rows[0][result_set.column_names[0]]
                    if isinstance(value, str):
                        plan_xml = value
                        break
        except Exception:
            self._reset_plan_mode(connection, self.dialect.estimated_plan_teardown)
            raise
        self._run_directives(connection, self.dialect.estimated_plan_teardown)

        if plan_xml is not None:
            log.info("estimated execution plan captured", xml_length=len(plan_xml))
        return [], plan_xml

    def _run_actual(
        self, connection: Any, sql: str
    ) -> tuple[list[ResultSet], str | None]:
        log = get_logger("executor")
        try:
            result_sets = self._run_batch(connection, sql)
        except Exception:
            self._reset_plan_mode(connection, self.dialect.actual_plan_reset)
            raise

        plan_xml = None
        data_sets: list[ResultSet] = []
        for result_set in result_sets:
            if self._is_plan_result(result_set):
                # One plan per statement; the last one describes the batch tail
                plan_xml = result_set.rows[0][result_set.column_names[0]]
                continue
            data_sets.append(result_set)

        if plan_xml is not None:
            log.info("actual execution plan captured", xml_length=len(plan_xml))
        return data_sets, plan_xml

    def _is_plan_result(self, result_set: ResultSet) -> bool:
        if result_set.column_count != 1 or result_set.row_count != 1:
            return False
        value = result_set.rows[0][result_set.column_names[0]]
        return self.dialect.is_plan_document(value)
