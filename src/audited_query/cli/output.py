"""Output format selection and TTY auto-detection."""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from audited_query.core.models import QueryResult
    from audited_query.formatters.base import Formatter


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None, default_format: str | None = None) -> str:
    """Determine the output format.

    Explicit --format wins, then the configured default_format when stdout
    is a terminal. Pipes get CSV unless a format was requested.
    """
    if format_flag is not None:
        return format_flag
    if not detect_tty():
        return "csv"
    return default_format or "table"


def get_formatter(
    format_flag: str | None = None,
    *,
    default_format: str | None = None,
    compact: bool = False,
    width: int = 40,
    no_header: bool = False,
) -> Formatter:
    # Importing the package populates the registry
    import audited_query.formatters  # noqa: F401
    from audited_query.formatters.base import registry

    return registry.create(
        resolve_format(format_flag, default_format),
        {"width": width, "compact": compact, "no_header": no_header},
    )


def write_output(formatter: Formatter, result: QueryResult) -> None:
    for line in formatter.format(result):
        sys.stdout.write(line + "\n")
