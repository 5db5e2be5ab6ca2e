"""audited-query main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from audited_query.__about__ import __version__
from audited_query.cli.commands.audit import audit_app
from audited_query.cli.commands.config import config_app
from audited_query.cli.commands.query import query_command
from audited_query.cli.commands.validate import validate_command
from audited_query.cli.output import OutputFormat  # noqa: TC001
from audited_query.core.dialects import Engine  # noqa: TC001
from audited_query.core.exceptions import AuditedQueryError
from audited_query.core.logging import setup_logging
from audited_query.core.monitoring import setup_sentry

app = typer.Typer(
    help="audited-query - read-only SQL execution with a tamper-evident audit trail",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.add_typer(audit_app, name="audit")
app.command("query")(query_command)
app.command("validate")(validate_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"audited-query {__version__}")
        raise typer.Exit()


def _start_cli_transaction(name: str) -> None:
    transaction = sentry_sdk.start_transaction(op="cli", name=name)
    transaction.__enter__()

    def cleanup() -> None:
        transaction.__exit__(None, None, None)
        sentry_sdk.flush(timeout=2)

    atexit.register(cleanup)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    engine: Annotated[
        Engine | None,
        typer.Option("--engine", help="Database engine: mssql|postgresql"),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", help="Database host"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Database port"),
    ] = None,
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Database name"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password"),
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="Connection DSN (mssql:// or postgresql://)"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: table|json|csv"),
    ] = None,
    table: Annotated[
        bool,
        typer.Option("--table", help="Shorthand for --format table"),
    ] = False,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
    width: Annotated[
        int,
        typer.Option("--width", help="Column width for table format"),
    ] = 40,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Suppress header row in CSV output"),
    ] = False,
) -> None:
    """audited-query - read-only SQL execution with a tamper-evident audit trail."""
    setup_logging(verbose)
    if setup_sentry():
        _start_cli_transaction(ctx.invoked_subcommand or "audited-query")

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["engine"] = engine
    ctx.obj["host"] = host
    ctx.obj["port"] = port
    ctx.obj["database"] = database
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["dsn"] = dsn
    ctx.obj["config_file"] = config_file

    fmt = "table" if table else (format.value if format else None)
    ctx.obj["format"] = fmt
    ctx.obj["compact"] = compact
    ctx.obj["width"] = width
    ctx.obj["no_header"] = no_header


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except AuditedQueryError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
