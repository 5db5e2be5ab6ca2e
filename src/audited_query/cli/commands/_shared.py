"""Shared CLI plumbing for command modules.

Config resolution, pipeline wiring, format-option handling and output
helpers.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from audited_query.cli.output import get_formatter, write_output
from audited_query.core.audit import AuditLogger
from audited_query.core.config import load_config, resolve_config
from audited_query.core.connection import build_connection_provider
from audited_query.core.dialects import get_dialect
from audited_query.core.executor import QueryExecutor
from audited_query.core.publisher import build_publisher
from audited_query.core.service import AuditedQueryService
from audited_query.core.store import JsonlAuditStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    import typer

    from audited_query.core.config import ResolvedConfig
    from audited_query.core.models import QueryResult

_CONNECTION_OPTIONS = ("engine", "host", "port", "database", "user", "password")


def get_resolved_config(
    ctx: typer.Context, timeout: float | None = None
) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in _CONNECTION_OPTIONS:
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    if timeout is not None:
        cli_overrides["timeout"] = timeout

    return resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )


def get_audit_store(ctx: typer.Context) -> JsonlAuditStore:
    return JsonlAuditStore(get_resolved_config(ctx).audit_log_path)


@contextmanager
def audited_service(
    ctx: typer.Context, timeout: float | None = None
) -> Iterator[AuditedQueryService]:
    """Wire executor, audit store and publisher; waits for publication on exit."""
    resolved = get_resolved_config(ctx, timeout=timeout)
    ctx.ensure_object(dict).setdefault("default_format", resolved.default_format)
    executor = QueryExecutor(
        build_connection_provider(resolved), get_dialect(resolved.engine)
    )
    store = JsonlAuditStore(resolved.audit_log_path)
    with AuditLogger(store, build_publisher(resolved.audit)) as audit_logger:
        yield AuditedQueryService(executor, audit_logger)


def format_options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    return {
        "format_flag": obj.get("format"),
        "default_format": obj.get("default_format"),
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
    }


def output_result(ctx: typer.Context, result: QueryResult) -> None:
    formatter = get_formatter(**format_options(ctx))
    write_output(formatter, result)
