"""Batch insert of records read from a JSON file."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from tdingest.cli.commands._shared import get_client
from tdingest.core.exceptions import InputError
from tdingest.core.models import Table


def _read_source(file_path: str | None) -> str:
    if file_path is None or file_path == "-":
        if sys.stdin.isatty():
            raise InputError("No records provided. Pass a JSON file or pipe to stdin.")
        return sys.stdin.read()
    p = Path(file_path)
    if not p.exists():
        raise InputError(f"Records file not found: {file_path}")
    return p.read_text()


def _build_table(index: int, record: Any) -> Table:
    if not isinstance(record, dict):
        raise InputError(f"Record {index} must be an object, got {type(record).__name__}")
    name = record.get("table") or record.get("name")
    fields = record.get("fields")
    if not isinstance(fields, list):
        raise InputError(f"Record {index} must have a 'fields' list")
    try:
        table = Table(name=name or "", database=record.get("database"))
        for f in fields:
            if not isinstance(f, dict):
                raise InputError(f"Record {index}: each field must be an object")
            table.add_field(f.get("name") or "", f.get("type"), f.get("value"))
    except ValidationError as e:
        raise InputError(f"Invalid record {index}: {e}") from e
    return table


def parse_records(text: str) -> list[Table]:
    """Parse a JSON array of records into Tables.

    Each record is ``{"table": ..., "database": ..., "fields": [{"name",
    "type", "value"}, ...]}``. A single object is accepted as a one-record
    batch.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InputError(f"Malformed JSON records: {e}") from e
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InputError("Records must be a JSON array of objects")
    return [_build_table(i, record) for i, record in enumerate(data)]


def load_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="JSON file of records ('-' or omitted reads stdin)"),
    ] = None,
) -> None:
    """Batch insert records from a JSON file, healing the schema as needed."""
    records = parse_records(_read_source(file))

    with get_client(ctx) as client:
        inserted = client.insert_many(records)

    typer.echo(f"Inserted {inserted} of {len(records)} record(s)")
