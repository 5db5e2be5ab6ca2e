"""Read-only connection providers.

Every connection handed out here is pinned to read-only intent and the
dirty-read isolation level before it is returned, so analytic queries
never take or wait on locks held by production writers. A provider that
cannot establish both guarantees raises NetworkError rather than hand
out a stricter or looser session.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import psycopg

from audited_query.core.dialects import Engine
from audited_query.core.exceptions import NetworkError, TimeoutError
from audited_query.core.logging import get_logger

if TYPE_CHECKING:
    import pyodbc

    from audited_query.core.config import ResolvedConfig


@runtime_checkable
class ConnectionProvider(Protocol):
    """Creates a fresh DB-API connection per call; callers own and close it."""

    def create_connection(self) -> Any: ...


def _odbc_escape(value: str) -> str:
    if any(ch in value for ch in ";{}") or value != value.strip():
        return "{" + value.replace("}", "}}") + "}"
    return value


def build_odbc_connection_string(config: ResolvedConfig) -> str:
    """Build an ODBC connection string with ApplicationIntent=ReadOnly."""
    parts: dict[str, str] = {
        "DRIVER": "{" + config.driver + "}",
        "SERVER": f"{config.host},{config.port}",
        "DATABASE": config.dbname,
        "APP": config.application_name,
        "Encrypt": "yes" if config.encrypt else "no",
        "TrustServerCertificate": "yes" if config.trust_server_certificate else "no",
        "ApplicationIntent": "ReadOnly",
    }
    if config.user:
        parts["UID"] = config.user
        parts["PWD"] = config.password or ""
    else:
        parts["Trusted_Connection"] = "yes"

    return ";".join(
        f"{key}={value if key == 'DRIVER' else _odbc_escape(value)}"
        for key, value in parts.items()
    )


def _describe_target(config: ResolvedConfig) -> str:
    return f"{config.host}:{config.port} database '{config.dbname}'"


class SqlServerConnectionFactory:
    """SQL Server connections via pyodbc with ApplicationIntent=ReadOnly."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config
        self._connection_string = build_odbc_connection_string(config)

    def create_connection(self) -> pyodbc.Connection:
        # pyodbc needs the unixODBC runtime at import time
        import pyodbc

        log = get_logger("connection")
        try:
            conn = pyodbc.connect(
                self._connection_string,
                autocommit=True,
                timeout=self.config.connect_timeout,
            )
        except pyodbc.OperationalError as e:
            msg = f"Connection failed to {_describe_target(self.config)}: {e}"
            if "HYT00" in str(e):
                raise TimeoutError(msg) from e
            raise NetworkError(msg) from e
        except pyodbc.Error as e:
            msg = f"Connection failed to {_describe_target(self.config)}: {e}"
            raise NetworkError(msg) from e

        try:
            # Query timeout in seconds; this is the hard ceiling for every statement.
            conn.timeout = max(1, round(self.config.command_timeout))
            cursor = conn.cursor()
            try:
                cursor.execute("SET TRANSACTION ISOLATION LEVEL READ UNCOMMITTED")
            finally:
                cursor.close()
        except pyodbc.Error as e:
            with contextlib.suppress(pyodbc.Error):
                conn.close()
            msg = f"Could not pin read-only session on {_describe_target(self.config)}: {e}"
            raise NetworkError(msg) from e

        log.debug("read-only connection opened", engine="mssql", host=self.config.host)
        return conn


class PostgresConnectionFactory:
    """PostgreSQL connections via psycopg in read-only, read-uncommitted transactions."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config

    def create_connection(self) -> psycopg.Connection[Any]:
        log = get_logger("connection")
        timeout_ms = int(self.config.command_timeout * 1000)
        try:
            conn = psycopg.connect(
                host=self.config.host,
                port=self.config.port,
                dbname=self.config.dbname,
                user=self.config.user,
                password=self.config.password,
                sslmode=self.config.sslmode,
                connect_timeout=self.config.connect_timeout,
                application_name=self.config.application_name,
                options=f"-c statement_timeout={timeout_ms}",
                autocommit=False,
            )
        except psycopg.OperationalError as e:
            msg = f"Connection failed to {_describe_target(self.config)}: {e}"
            raise NetworkError(msg) from e

        try:
            conn.read_only = True
            conn.isolation_level = psycopg.IsolationLevel.READ_UNCOMMITTED
        except psycopg.Error as e:
            with contextlib.suppress(psycopg.Error):
                conn.close()
            msg = f"Could not pin read-only session on {_describe_target(self.config)}: {e}"
            raise NetworkError(msg) from e

        log.debug(
            "read-only connection opened", engine="postgresql", host=self.config.host
        )
        return conn


def build_connection_provider(config: ResolvedConfig) -> ConnectionProvider:
    if config.engine == Engine.POSTGRESQL:
        return PostgresConnectionFactory(config)
    return SqlServerConnectionFactory(config)
