"""Standard exit codes for audited-query.

Codes 0-7 follow Unix conventions; 8 and above report query outcomes
that are returned as values rather than raised.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for audited-query commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    OUTPUT_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    QUERY_REJECTED = 8
    QUERY_FAILED = 9
    INTEGRITY_ERROR = 10
