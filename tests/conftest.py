"""Shared test fixtures for tdingest."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from tdingest.cli.main import app
from tdingest.core.models import Table
from tests.fakes import FakeDriver, ScriptedTransport

_ENV_VARS = (
    "TDINGEST_URL",
    "TDINGEST_USER",
    "TDINGEST_PASSWORD",
    "TDINGEST_DATABASE",
    "TDINGEST_TIMEOUT",
    "TDINGEST_PROFILE",
    "TDINGEST_STRICT_TYPE",
    "TDINGEST_BINARY_AS_STRING",
    "TDINGEST_DEBUG",
    "TDINGEST_SENTRY_DSN",
    "TDINGEST_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's TDINGEST_* settings out of unit tests."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


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
def transport():
    """Opened transport where every statement succeeds."""
    return ScriptedTransport()


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def meters():
    """A typical sensor record."""
    return (
        Table(name="meters", database="power")
        .add_field("ts", "t", 1700000000000)
        .add_field("current", "f", 10.3)
        .add_field("location", "s", "Beijing")
    )
