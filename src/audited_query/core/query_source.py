"""Where the CLI reads the SQL statement from.

Inline text (-e) wins over a file argument, which wins over piped stdin.
"""

from __future__ import annotations

import sys
from pathlib import Path

from audited_query.core.exceptions import InputError


def _stdin_is_tty() -> bool:
    try:
        return sys.stdin.isatty()
    except (ValueError, AttributeError):
        return False


def resolve_query_source(inline: str | None, file_path: str | None) -> str:
    """Raises InputError when no source is available.

    Blank text is returned as-is; the validator rejects it.
    """
    if inline is not None:
        sql = inline
    elif file_path is not None:
        p = Path(file_path)
        if not p.is_file():
            msg = (
                f"Query file not found: {file_path}\n"
                "Use -e for inline queries or pipe the statement via stdin."
            )
            raise InputError(msg)
        sql = p.read_text(encoding="utf-8")
    elif not _stdin_is_tty():
        sql = sys.stdin.read()
    else:
        msg = "No query provided. Use -e, a file path, or pipe to stdin."
        raise InputError(msg)

    return sql
