"""Audit trail inspection commands over the local JSON-lines log."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Annotated

import typer

from audited_query.cli.commands._shared import get_audit_store, output_result
from audited_query.core.audit import format_markdown
from audited_query.core.exceptions import InputError
from audited_query.core.exit_codes import ExitCode
from audited_query.core.integrity import format_timestamp, verify_audit_hash
from audited_query.core.models import QueryResult, ResultSet

if TYPE_CHECKING:
    from audited_query.core.models import AuditEntry
    from audited_query.core.store import JsonlAuditStore

audit_app = typer.Typer(help="Inspect and verify the audit trail")

_LIST_COLUMNS = [
    "id",
    "requested_by",
    "request_timestamp",
    "succeeded",
    "rows",
    "execution_ms",
    "published",
]


@audit_app.callback(invoke_without_command=True)
def audit_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _parse_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        msg = f"Invalid audit entry id: '{value}'"
        raise InputError(msg) from None


def _get_entry(store: JsonlAuditStore, value: str) -> AuditEntry:
    entry = store.get(_parse_id(value))
    if entry is None:
        msg = f"Audit entry not found: {value}"
        raise InputError(msg)
    return entry


@audit_app.command("list")
def audit_list(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, help="Number of most recent entries"),
    ] = 20,
) -> None:
    """List the most recent audit entries, newest first."""
    entries = get_audit_store(ctx).list_recent(limit)
    rows = [
        {
            "id": str(e.id),
            "requested_by": e.requested_by,
            "request_timestamp": format_timestamp(e.request_timestamp),
            "succeeded": e.succeeded,
            "rows": e.row_count,
            "execution_ms": e.execution_milliseconds,
            "published": e.published_reference or "",
        }
        for e in entries
    ]
    result = QueryResult(result_sets=[ResultSet(column_names=_LIST_COLUMNS, rows=rows)])
    output_result(ctx, result)


@audit_app.command("show")
def audit_show(
    ctx: typer.Context,
    entry_id: Annotated[str, typer.Argument(help="Audit entry id")],
) -> None:
    """Print one audit entry as markdown."""
    entry = _get_entry(get_audit_store(ctx), entry_id)
    typer.echo(format_markdown(entry), nl=False)
    if entry.published_reference:
        typer.echo(f"\nPublished: {entry.published_reference}")


@audit_app.command("verify")
def audit_verify(
    ctx: typer.Context,
    entry_id: Annotated[
        str | None,
        typer.Argument(help="Audit entry id (default: every entry)"),
    ] = None,
) -> None:
    """Recompute integrity hashes; exits 10 if any entry was altered."""
    store = get_audit_store(ctx)
    if entry_id is not None:
        entries = [_get_entry(store, entry_id)]
    else:
        entries = store.list_recent(limit=None)

    mismatches = 0
    for entry in entries:
        if verify_audit_hash(entry):
            typer.echo(f"OK        {entry.id}")
        else:
            mismatches += 1
            typer.echo(f"MISMATCH  {entry.id}")

    typer.echo(f"{len(entries)} checked, {mismatches} mismatched", err=True)
    if mismatches:
        raise typer.Exit(ExitCode.INTEGRITY_ERROR)
