"""Engine-specific execution-plan directives and error details.

The executor is engine-agnostic; everything that depends on the wire
dialect (how to ask for a plan, what a plan document looks like, where
the line number and error code live on a driver exception) is here.
"""

from __future__ import annotations

import re
from enum import StrEnum


class Engine(StrEnum):
    MSSQL = "mssql"
    POSTGRESQL = "postgresql"


class Dialect:
    """Plan directives and error parsing for one database engine."""

    engine: Engine
    plan_root_marker: str

    # Statements issued on the connection before/after an estimated-plan run.
    estimated_plan_setup: tuple[str, ...] = ()
    estimated_plan_teardown: tuple[str, ...] = ()
    # Statements that switch actual-plan capture off after a failed batch.
    actual_plan_reset: tuple[str, ...] = ()

    def estimated_plan_statement(self, sql: str) -> str:
        return sql

    def actual_plan_batch(self, sql: str) -> str:
        raise NotImplementedError

    def is_plan_document(self, value: object) -> bool:
        return isinstance(value, str) and value.lstrip().lower().startswith(
            self.plan_root_marker.lower()
        )

    def error_details(
        self, exc: BaseException, sql: str
    ) -> tuple[str, int | None, str | None]:
        """Return (message, line number, engine error code) for a failure."""
        return str(exc), None, None

    def describe_error(self, exc: BaseException, sql: str) -> str:
        message, line, code = self.error_details(exc, sql)
        if line:
            message += f" (Line {line})"
        if code:
            message += f" [Error {code}]"
        return message


# ODBC diagnostics end with "... (<native error>) (SQLExecDirectW)"
_ODBC_NATIVE_ERROR = re.compile(r"\((\d+)\)\s*\(SQL\w+\)")
_ODBC_PREFIX = re.compile(r"^(?:\[[^\]]*\]\s*)+")


class SqlServerDialect(Dialect):
    engine = Engine.MSSQL
    plan_root_marker = "<ShowPlanXML"

    estimated_plan_setup = ("SET SHOWPLAN_XML ON",)
    estimated_plan_teardown = ("SET SHOWPLAN_XML OFF",)
    actual_plan_reset = ("SET STATISTICS XML OFF",)

    def actual_plan_batch(self, sql: str) -> str:
        return f"SET STATISTICS XML ON;\n{sql}\nSET STATISTICS XML OFF;"

    def error_details(
        self, exc: BaseException, sql: str
    ) -> tuple[str, int | None, str | None]:
        # pyodbc errors carry (sqlstate, diagnostic text); line numbers
        # are not surfaced by the ODBC driver.
        args = getattr(exc, "args", ())
        if len(args) >= 2 and isinstance(args[1], str):
            text = args[1]
        else:
            text = str(exc)

        code = None
        match = _ODBC_NATIVE_ERROR.search(text)
        if match and int(match.group(1)) > 0:
            code = match.group(1)
            text = text[: match.start()].rstrip()

        return _ODBC_PREFIX.sub("", text).strip() or str(exc), None, code


class PostgresDialect(Dialect):
    engine = Engine.POSTGRESQL
    plan_root_marker = "<explain"

    def estimated_plan_statement(self, sql: str) -> str:
        return f"EXPLAIN (FORMAT XML) {_strip_terminator(sql)}"

    def actual_plan_batch(self, sql: str) -> str:
        # Runs inside the connection's read-only transaction, so the
        # statement is executed twice without side effects; the plan
        # arrives as the trailing result set. The separator goes on its
        # own line so a trailing line comment cannot swallow it.
        statement = _strip_terminator(sql)
        return f"{statement}\n;\nEXPLAIN (ANALYZE, FORMAT XML) {statement}"

    def error_details(
        self, exc: BaseException, sql: str
    ) -> tuple[str, int | None, str | None]:
        diag = getattr(exc, "diag", None)
        message = getattr(diag, "message_primary", None) or str(exc).strip()
        code = getattr(exc, "sqlstate", None)

        line = None
        position = getattr(diag, "statement_position", None)
        if position and str(position).isdigit():
            line = sql[: int(position) - 1].count("\n") + 1
        return message, line, code


def _strip_terminator(sql: str) -> str:
    return sql.strip().rstrip(";").rstrip()


_DIALECTS: dict[Engine, type[Dialect]] = {
    Engine.MSSQL: SqlServerDialect,
    Engine.POSTGRESQL: PostgresDialect,
}


def get_dialect(engine: Engine | str) -> Dialect:
    return _DIALECTS[Engine(engine)]()
