from __future__ import annotations

from typing import Annotated

import typer

from audited_query.core.exceptions import InputError
from audited_query.core.exit_codes import ExitCode
from audited_query.core.query_source import resolve_query_source
from audited_query.core.validator import validate_read_only


def validate_command(
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to check"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Check inline SQL"),
    ] = None,
) -> None:
    """Check a statement against the read-only rules without running it."""
    try:
        sql = resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    outcome = validate_read_only(sql)
    typer.echo(f"Risk: {outcome.risk_level.label}")
    for violation in outcome.violations:
        typer.echo(f"  - {violation}")

    if not outcome.is_valid:
        raise typer.Exit(ExitCode.QUERY_REJECTED)
