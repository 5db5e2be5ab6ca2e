from __future__ import annotations

import getpass
from pathlib import Path  # noqa: TC003
from typing import Annotated

import typer

from audited_query.cli.commands._shared import audited_service, output_result
from audited_query.core.exceptions import InputError
from audited_query.core.executor import REJECTION_PREFIX
from audited_query.core.exit_codes import ExitCode
from audited_query.core.models import ExecutionPlanMode
from audited_query.core.query_source import resolve_query_source


def _default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    plan: Annotated[
        ExecutionPlanMode,
        typer.Option("--plan", help="Capture execution plan: none|estimated|actual"),
    ] = ExecutionPlanMode.NONE,
    plan_file: Annotated[
        Path | None,
        typer.Option("--plan-file", help="Write the plan XML to this file"),
    ] = None,
    requested_by: Annotated[
        str | None,
        typer.Option("--requested-by", help="Identity recorded in the audit trail"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Command timeout in seconds"),
    ] = None,
) -> None:
    """Validate, execute and audit a read-only SQL query from file, -e, or stdin."""
    try:
        sql = resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    with audited_service(ctx, timeout=timeout) as service:
        result, entry = service.submit(
            sql, requested_by or _default_user(), execution_plan_mode=plan
        )

    typer.echo(f"Audit entry {entry.id} (sha256 {entry.integrity_hash})", err=True)
    if entry.published_reference:
        typer.echo(f"Published: {entry.published_reference}", err=True)

    if not result.succeeded:
        message = result.error_message or "Query failed"
        typer.echo(f"Error: {message}", err=True)
        if message.startswith(REJECTION_PREFIX):
            raise typer.Exit(ExitCode.QUERY_REJECTED)
        raise typer.Exit(ExitCode.QUERY_FAILED)

    if result.execution_plan_xml is not None:
        if plan_file is not None:
            plan_file.write_text(result.execution_plan_xml, encoding="utf-8")
            typer.echo(f"Execution plan written to {plan_file}", err=True)
        elif not result.result_sets:
            typer.echo(result.execution_plan_xml)
            return
        else:
            typer.echo(result.execution_plan_xml, err=True)

    if plan == ExecutionPlanMode.ESTIMATED and not result.result_sets:
        return
    output_result(ctx, result)
