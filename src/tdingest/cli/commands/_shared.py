"""Shared CLI plumbing for command modules.

Client creation and output helpers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tdingest.cli.output import get_formatter, write_output
from tdingest.core.client import TdClient
from tdingest.core.config import load_config, resolve_config

if TYPE_CHECKING:
    import typer

    from tdingest.core.models import QueryResult


def get_client(ctx: typer.Context, timeout: float | None = None) -> TdClient:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in ("user", "password"):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    # Flags only override when given.
    if obj.get("strict"):
        cli_overrides["strict_type_check"] = True
    if obj.get("binary_as_string"):
        cli_overrides["binary_as_string"] = True
    if timeout is not None:
        cli_overrides["timeout"] = timeout

    resolved = resolve_config(
        config,
        profile_name=obj.get("profile"),
        url=obj.get("url"),
        **cli_overrides,
    )

    return TdClient.from_config(resolved)


def format_options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    return {
        "format_flag": obj.get("format"),
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
    }


def output_result(ctx: typer.Context, result: QueryResult) -> None:
    opts = format_options(ctx)
    formatter = get_formatter(**opts)
    write_output(formatter, result)
