"""tdingest main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from tdingest.__about__ import __version__
from tdingest.cli.commands.insert import insert_command
from tdingest.cli.commands.load import load_command
from tdingest.cli.commands.query import query_command
from tdingest.cli.output import OutputFormat  # noqa: TC001
from tdingest.core.exceptions import TdIngestError
from tdingest.core.logging import setup_logging
from tdingest.core.monitoring import setup_sentry

app = typer.Typer(
    help="tdingest - schema-healing ingestion into TDengine",
    no_args_is_help=True,
)

app.command("query")(query_command)
app.command("insert")(insert_command)
app.command("load")(load_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tdingest {__version__}")
        raise typer.Exit()


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
    url: Annotated[
        str | None,
        typer.Option("--url", "-u", help="Connection URL (rest://, http://, taos://)"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password"),
    ] = None,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail on values the server would coerce"),
    ] = False,
    binary_as_string: Annotated[
        bool,
        typer.Option(
            "--binary-as-string", help="Decode binary columns as UTF-8 text"
        ),
    ] = False,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: table|json|csv"),
    ] = None,
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
    """tdingest - schema-healing ingestion into TDengine."""
    setup_logging(verbose)
    setup_sentry()

    transaction = sentry_sdk.start_transaction(
        op="cli", name=ctx.invoked_subcommand or "tdingest"
    )
    transaction.__enter__()

    def cleanup() -> None:
        transaction.__exit__(None, None, None)
        sentry_sdk.flush(timeout=2)

    atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["url"] = url
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["profile"] = profile
    ctx.obj["config_file"] = config_file
    ctx.obj["strict"] = strict
    ctx.obj["binary_as_string"] = binary_as_string

    ctx.obj["format"] = format.value if format else None
    ctx.obj["compact"] = compact
    ctx.obj["width"] = width
    ctx.obj["no_header"] = no_header


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except TdIngestError as e:
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
