"""Configuration management for audited-query.

Handles TOML config files, environment variables, named profiles,
and configuration precedence resolution.

Precedence order (highest to lowest):
1. CLI flags (--host, --port, etc.)
2. --dsn flag (parsed into components)
3. Environment variables (SQL_ENGINE, SQL_HOST, SQL_PORT, SQL_DATABASE,
   SQL_USER, SQL_PASSWORD)
4. Named profile (--profile or SQL_PROFILE env var)
5. Config file defaults
6. Built-in defaults
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlparse

from pydantic import BaseModel, field_validator, model_validator

from audited_query.core.dialects import Engine
from audited_query.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "audited-query" / "config.toml"
DEFAULT_AUDIT_LOG_PATH = (
    Path.home() / ".local" / "share" / "audited-query" / "audit.jsonl"
)
DEFAULT_COMMAND_TIMEOUT = 30.0

_DEFAULT_PORTS: dict[Engine, int] = {
    Engine.MSSQL: 1433,
    Engine.POSTGRESQL: 5432,
}

_DSN_SCHEMES: dict[str, Engine] = {
    "mssql": Engine.MSSQL,
    "sqlserver": Engine.MSSQL,
    "postgresql": Engine.POSTGRESQL,
    "postgres": Engine.POSTGRESQL,
}

_SQL_ENV_VARS: dict[str, str] = {
    "SQL_ENGINE": "engine",
    "SQL_HOST": "host",
    "SQL_PORT": "port",
    "SQL_DATABASE": "dbname",
    "SQL_USER": "user",
    "SQL_PASSWORD": "password",  # pragma: allowlist secret
}

_PROFILE_DEFAULTS: dict[str, Any] = {
    "engine": Engine.MSSQL,
    "host": "localhost",
    "port": None,
    "dbname": "master",
    "user": None,
    "password": None,
    "driver": "ODBC Driver 18 for SQL Server",
    "encrypt": True,
    "trust_server_certificate": False,
    "sslmode": "prefer",
    "connect_timeout": 10,
    "application_name": "audited-query",
}

_VALID_SSLMODES = {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Supports mssql://, sqlserver://, postgresql:// and postgres:// schemes."""
    parsed = urlparse(dsn)
    if parsed.scheme not in _DSN_SCHEMES:
        expected = ", ".join(f"'{s}'" for s in _DSN_SCHEMES)
        msg = f"Invalid DSN scheme: '{parsed.scheme}'. Expected one of {expected}"
        raise ConfigError(msg)

    result: dict[str, Any] = {"engine": _DSN_SCHEMES[parsed.scheme]}
    if parsed.hostname:
        result["host"] = parsed.hostname
    try:
        port = parsed.port
    except ValueError as e:
        msg = f"Invalid port in DSN: {e}"
        raise ConfigError(msg) from e
    if port:
        result["port"] = port
    if parsed.path and parsed.path.strip("/"):
        result["dbname"] = parsed.path.strip("/")
    if parsed.username:
        result["user"] = unquote(parsed.username)
    if parsed.password:
        result["password"] = unquote(parsed.password)

    query_params = parse_qs(parsed.query)
    if "sslmode" in query_params:
        result["sslmode"] = query_params["sslmode"][0]
    if "connect_timeout" in query_params:
        result["connect_timeout"] = int(query_params["connect_timeout"][0])
    if "application_name" in query_params:
        result["application_name"] = query_params["application_name"][0]
    if "driver" in query_params:
        result["driver"] = query_params["driver"][0]
    if "encrypt" in query_params:
        result["encrypt"] = _parse_bool(query_params["encrypt"][0])
    if "trust_server_certificate" in query_params:
        result["trust_server_certificate"] = _parse_bool(
            query_params["trust_server_certificate"][0]
        )
    return result


def _check_port(v: int | None) -> int | None:
    if v is not None and not (1 <= v <= 65535):
        msg = f"Invalid port: {v}. Must be 1-65535"
        raise ValueError(msg)
    return v


class ConnectionProfile(BaseModel):
    dsn: str | None = None
    engine: Engine = Engine.MSSQL
    host: str = "localhost"
    port: int | None = None
    dbname: str = "master"
    user: str | None = None
    password: str | None = None
    driver: str = "ODBC Driver 18 for SQL Server"
    encrypt: bool = True
    trust_server_certificate: bool = False
    sslmode: str = "prefer"
    connect_timeout: int = 10
    application_name: str = "audited-query"

    @model_validator(mode="before")
    @classmethod
    def parse_dsn_into_components(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            dsn_fields = parse_dsn(data["dsn"])
            for key, value in dsn_fields.items():
                if key not in data:
                    data[key] = value
        return data

    @field_validator("sslmode")
    @classmethod
    def validate_sslmode(cls, v: str) -> str:
        if v not in _VALID_SSLMODES:
            msg = f"Invalid sslmode: '{v}'. Must be one of: {', '.join(sorted(_VALID_SSLMODES))}"
            raise ValueError(msg)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int | None) -> int | None:
        return _check_port(v)


class AuditSettings(BaseModel):
    log_path: Path | None = None
    github_repo_owner: str | None = None
    github_repo_name: str | None = None
    github_issue_number: int | None = None
    github_token: str | None = None
    publish_timeout: float = 10.0

    @property
    def github_configured(self) -> bool:
        return bool(
            self.github_repo_owner
            and self.github_repo_name
            and self.github_issue_number
            and self.github_token
        )


class AppConfig(BaseModel):
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    default_format: str = "table"
    default_profile: str | None = None
    profiles: dict[str, ConnectionProfile] = {}
    audit: AuditSettings = AuditSettings()


class ResolvedConfig(BaseModel):
    engine: Engine = Engine.MSSQL
    host: str = "localhost"
    port: int = 1433
    dbname: str = "master"
    user: str | None = None
    password: str | None = None
    driver: str = "ODBC Driver 18 for SQL Server"
    encrypt: bool = True
    trust_server_certificate: bool = False
    sslmode: str = "prefer"
    connect_timeout: int = 10
    application_name: str = "audited-query"
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    default_format: str = "table"
    active_profile: str | None = None
    audit: AuditSettings = AuditSettings()
    sources: dict[str, str] = {}

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        _check_port(v)
        return v

    @property
    def audit_log_path(self) -> Path:
        return self.audit.log_path or DEFAULT_AUDIT_LOG_PATH


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from TOML file.

    Returns default AppConfig if file doesn't exist.
    Raises ConfigError on malformed TOML or invalid config.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return AppConfig.model_validate(data)
    except ConfigError:
        raise
    except Exception as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise ConfigError(msg) from e


def _resolve_audit(settings: AuditSettings) -> tuple[AuditSettings, dict[str, str]]:
    overrides: dict[str, Any] = {}
    sources: dict[str, str] = {}

    token = os.environ.get("GITHUB_AUDIT_TOKEN")
    if token:
        overrides["github_token"] = token
        sources["github_token"] = "env: GITHUB_AUDIT_TOKEN"

    repo = os.environ.get("GITHUB_AUDIT_REPO")
    if repo:
        owner, sep, name = repo.partition("/")
        if not sep or not owner or not name:
            msg = f"Invalid GITHUB_AUDIT_REPO value: '{repo}'. Expected 'owner/name'"
            raise ConfigError(msg)
        overrides["github_repo_owner"] = owner
        overrides["github_repo_name"] = name
        sources["github_repo"] = "env: GITHUB_AUDIT_REPO"

    issue = os.environ.get("GITHUB_AUDIT_ISSUE")
    if issue:
        try:
            overrides["github_issue_number"] = int(issue)
        except ValueError:
            msg = f"Invalid GITHUB_AUDIT_ISSUE value: '{issue}'. Must be an integer"
            raise ConfigError(msg) from None
        sources["github_issue_number"] = "env: GITHUB_AUDIT_ISSUE"

    return settings.model_copy(update=overrides), sources


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Resolve configuration using precedence chain.

    CLI > DSN > env > profile > config defaults > built-in defaults.
    """
    sources: dict[str, str] = {}
    resolved: dict[str, Any] = {}

    # Layer 1: Built-in defaults
    resolved.update(_PROFILE_DEFAULTS)
    resolved["command_timeout"] = DEFAULT_COMMAND_TIMEOUT
    resolved["default_format"] = "table"
    for key in resolved:
        sources[key] = "default"

    # Layer 2: Config file global defaults
    if config.command_timeout != DEFAULT_COMMAND_TIMEOUT:
        resolved["command_timeout"] = config.command_timeout
        sources["command_timeout"] = "config"
    if config.default_format != "table":
        resolved["default_format"] = config.default_format
        sources["default_format"] = "config"

    # Layer 3: Named profile
    effective_profile = profile_name
    if not effective_profile:
        effective_profile = os.environ.get("SQL_PROFILE")
    if not effective_profile:
        effective_profile = config.default_profile

    if effective_profile:
        if effective_profile not in config.profiles:
            available = (
                ", ".join(sorted(config.profiles.keys())) if config.profiles else "none"
            )
            msg = f"Unknown profile: '{effective_profile}'. Available profiles: {available}"
            raise ConfigError(msg)
        profile = config.profiles[effective_profile]
        for key in profile.model_fields_set:
            if key == "dsn":
                continue
            if key in resolved:
                resolved[key] = getattr(profile, key)
                sources[key] = f"profile: {effective_profile}"

    # Layer 4: Environment variables
    for env_var, field_name in _SQL_ENV_VARS.items():
        value = os.environ.get(env_var)
        if value is None:
            continue
        if field_name == "port":
            try:
                resolved[field_name] = int(value)
            except ValueError:
                msg = f"Invalid {env_var} value: '{value}'. Must be an integer"
                raise ConfigError(msg) from None
        elif field_name == "engine":
            try:
                resolved[field_name] = Engine(value.lower())
            except ValueError:
                valid = ", ".join(e.value for e in Engine)
                msg = f"Invalid {env_var} value: '{value}'. Must be one of: {valid}"
                raise ConfigError(msg) from None
        else:
            resolved[field_name] = value
        sources[field_name] = f"env: {env_var}"

    # Layer 5: DSN flag
    if dsn:
        for key, value in parse_dsn(dsn).items():
            if key in resolved:
                resolved[key] = value
                sources[key] = "dsn"

    # Layer 6: CLI flags (highest priority)
    cli_to_field = {
        "engine": "engine",
        "host": "host",
        "port": "port",
        "database": "dbname",
        "user": "user",
        "password": "password",  # pragma: allowlist secret
        "timeout": "command_timeout",
    }
    for cli_name, field_name in cli_to_field.items():
        value = cli_overrides.get(cli_name)
        if value is not None:
            resolved[field_name] = value
            sources[field_name] = f"cli: --{cli_name}"

    # Port follows the engine unless something set it explicitly
    if resolved["port"] is None:
        resolved["port"] = _DEFAULT_PORTS[Engine(resolved["engine"])]

    audit, audit_sources = _resolve_audit(config.audit)
    sources.update(audit_sources)

    resolved["active_profile"] = effective_profile
    resolved["audit"] = audit
    resolved["sources"] = sources
    try:
        return ResolvedConfig(**resolved)
    except ValueError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigError(msg) from e
