"""Single-record insert from the command line."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

import structlog
import typer

from tdingest.cli.commands._shared import get_client
from tdingest.core.exceptions import InputError
from tdingest.core.models import Table
from tdingest.core.types import base_type, is_float_type, is_integer_type, normalize_type

log = structlog.get_logger()


def convert_value(declared: str, raw: str | None) -> Any:
    """Turn command-line text into a value of the declared column type.

    Integers that do not parse as int are kept as Decimal so the coercion
    detector can flag the fraction.
    """
    if raw is None:
        return None
    text = raw.strip()
    if is_integer_type(declared):
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return Decimal(text)
        except InvalidOperation:
            raise InputError(f"Not a number for {declared}: {raw!r}") from None
    if is_float_type(declared):
        try:
            return float(text)
        except ValueError:
            raise InputError(f"Not a number for {declared}: {raw!r}") from None
    if base_type(declared) == "TIMESTAMP" and text.lstrip("-").isdigit():
        return int(text)
    return raw


def parse_field_spec(spec: str) -> tuple[str, str, Any]:
    """Parse ``name:type[:value]``; a missing value means NULL."""
    parts = spec.split(":", 2)
    if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
        msg = f"Invalid field '{spec}'. Expected name:type[:value]"
        raise InputError(msg)
    name, type_token = parts[0].strip(), parts[1]
    declared = normalize_type(type_token)
    raw = parts[2] if len(parts) == 3 else None
    return name, declared, convert_value(declared, raw)


def insert_command(
    ctx: typer.Context,
    table: Annotated[
        str,
        typer.Option("--table", "-T", help="Target table name"),
    ],
    field: Annotated[
        list[str],
        typer.Option(
            "--field",
            "-F",
            help="Field as name:type:value (repeatable), e.g. ts:t:1700000000000",
        ),
    ],
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Database of the table"),
    ] = None,
) -> None:
    """Insert one record, creating the table or columns when missing."""
    record = Table(name=table, database=database)
    for spec in field:
        record.add_field(*parse_field_spec(spec))

    with get_client(ctx) as client:
        attempts = client.insert(record)

    log.debug("insert command complete", table=record.full_name, attempts=attempts)
    typer.echo(f"Inserted 1 record into {record.full_name} (attempts: {attempts})")
