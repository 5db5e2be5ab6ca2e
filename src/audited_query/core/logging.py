"""structlog setup for audited-query.

Logs go to stderr so stdout carries only query output. Statement text
logged under the ``sql`` key is redacted the same way as in published
audit entries, and events emitted while a query is being processed
carry that query's context (``requested_by``, ``plan_mode`` and, once
sealed, ``audit_id``).
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

from audited_query.core.validator import sanitize_for_audit

if TYPE_CHECKING:
    from collections.abc import Iterator, MutableMapping


class _LazyStderrFactory:
    """Look up sys.stderr per logger; publication logs from worker threads."""

    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def redact_sql(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor: mask credentials in any ``sql`` field before rendering."""
    sql = event_dict.get("sql")
    if isinstance(sql, str):
        event_dict["sql"] = sanitize_for_audit(sql)
    return event_dict


def setup_logging(verbose: bool = False) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_sql,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        context_class=dict,
        logger_factory=_LazyStderrFactory(),
        cache_logger_on_first_use=False,
    )


@contextmanager
def audit_context(**fields: Any) -> Iterator[None]:
    """Bind query fields to every event logged on this thread inside the block.

    None values are skipped and UUIDs are logged in their string form.
    Worker threads do not inherit the caller's context, so the audit
    publisher binds its own.
    """
    bound = {
        key: str(value) if isinstance(value, uuid.UUID) else value
        for key, value in fields.items()
        if value is not None
    }
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_logger(name: str | None = None) -> Any:
    """Call inside functions, after setup_logging(), never at module level."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger
