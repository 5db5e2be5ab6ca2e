"""Exception hierarchy for audited-query.

All exceptions carry an exit_code for CLI return value mapping.
Rejected and failed queries are not exceptions: they come back as
QueryResult values so that every attempt can still be audited.
"""

from audited_query.core.exit_codes import ExitCode


class AuditedQueryError(Exception):
    """Base exception for all audited-query errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NetworkError(AuditedQueryError):
    """Connection failures, unreachable host, read-only session not established."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class InputError(AuditedQueryError):
    """File not found, invalid parameters, unknown audit entry."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(AuditedQueryError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR
