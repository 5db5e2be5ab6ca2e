"""Configuration management CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from audited_query.cli.commands._shared import get_resolved_config
from audited_query.core.config import DEFAULT_CONFIG_PATH, load_config
from audited_query.core.dialects import Engine

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_secret(value: str | None) -> str:
    if value is None:
        return "not set"
    return "***"


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = get_resolved_config(ctx)
    config_path: Path | None = ctx.obj.get("config_file")
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("engine", resolved.engine.value),
        ("host", resolved.host),
        ("port", str(resolved.port)),
        ("database", resolved.dbname),
        ("user", resolved.user or "not set"),
        ("password", _mask_secret(resolved.password)),
    ]
    if resolved.engine == Engine.MSSQL:
        connection_fields += [
            ("driver", resolved.driver),
            ("encrypt", str(resolved.encrypt).lower()),
        ]
    else:
        connection_fields.append(("sslmode", resolved.sslmode))
    for field_name, value in connection_fields:
        source_key = "dbname" if field_name == "database" else field_name
        source = sources.get(source_key, "default")
        typer.echo(f"  {field_name}: {value} ({source})")

    typer.echo("")
    typer.echo("General:")
    timeout_source = sources.get("command_timeout", "default")
    typer.echo(f"  timeout: {resolved.command_timeout}s ({timeout_source})")
    format_source = sources.get("default_format", "default")
    typer.echo(f"  format: {resolved.default_format} ({format_source})")

    typer.echo("")
    typer.echo("Audit:")
    typer.echo(f"  log: {resolved.audit_log_path}")
    audit = resolved.audit
    if audit.github_configured:
        repo_source = sources.get("github_repo", "config")
        typer.echo(
            f"  github: {audit.github_repo_owner}/{audit.github_repo_name}"
            f"#{audit.github_issue_number} ({repo_source})"
        )
        typer.echo(f"  token: {_mask_secret(audit.github_token)}")
    else:
        typer.echo("  github: not configured")

    typer.echo("")
    typer.echo(f"Active Profile: {resolved.active_profile or 'none'}")
    typer.echo(f"Config File: {config_path or DEFAULT_CONFIG_PATH}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available connection profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        typer.echo(f"Add profiles to: {config_path or DEFAULT_CONFIG_PATH}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        display_fields = [
            ("engine", profile.engine.value),
            ("host", profile.host),
            ("port", str(profile.port) if profile.port else "default"),
            ("database", profile.dbname),
        ]
        if profile.user:
            display_fields.append(("user", profile.user))

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
