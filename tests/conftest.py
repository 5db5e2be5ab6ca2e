"""Shared test fixtures for audited-query."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from audited_query.cli.main import app

_ENV_VARS = (
    "SQL_PROFILE",
    "SQL_ENGINE",
    "SQL_HOST",
    "SQL_PORT",
    "SQL_DATABASE",
    "SQL_USER",
    "SQL_PASSWORD",
    "GITHUB_AUDIT_TOKEN",
    "GITHUB_AUDIT_REPO",
    "GITHUB_AUDIT_ISSUE",
    "SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's connection and audit settings out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_file(temp_dir):
    """Config file whose audit log lives in the temp directory."""
    path = temp_dir / "config.toml"
    path.write_text(f'[audit]\nlog_path = "{(temp_dir / "audit.jsonl").as_posix()}"\n')
    return path
