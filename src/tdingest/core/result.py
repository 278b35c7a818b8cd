"""Conversion of transport responses into QueryResult.

Column order is preserved, missing or partial metadata is tolerated, and a
malformed cell never aborts the whole result: values that cannot be typed
degrade to their string form.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from tdingest.core.models import ColumnMeta, QueryResult
from tdingest.core.types import (
    BOOL_TYPES,
    STRING_TYPES,
    base_type,
    is_binary_type,
    is_float_type,
    is_integer_type,
)

# Mapping from TDengine type codes to type names.
# Used for numeric column_meta entries and DB-API type_code values;
# unknown codes fall back to "UNKNOWN".
_TYPE_NAMES: dict[int, str] = {
    0: "NULL",
    1: "BOOL",
    2: "TINYINT",
    3: "SMALLINT",
    4: "INT",
    5: "BIGINT",
    6: "FLOAT",
    7: "DOUBLE",
    8: "VARCHAR",
    9: "TIMESTAMP",
    10: "NCHAR",
    11: "TINYINT UNSIGNED",
    12: "SMALLINT UNSIGNED",
    13: "INT UNSIGNED",
    14: "BIGINT UNSIGNED",
    15: "JSON",
    16: "VARBINARY",
    20: "GEOMETRY",
}

_CELL_ERRORS = (ValueError, TypeError, ArithmeticError)


def type_name(code: Any) -> str | None:
    """Resolve a type code or name to an upper-case type name."""
    if isinstance(code, bool) or code is None:
        return None
    if isinstance(code, int):
        return _TYPE_NAMES.get(code, "UNKNOWN")
    if isinstance(code, str) and code.strip():
        return code.strip().upper()
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


# ---------------------------------------------------------------------------
# REST payloads
# ---------------------------------------------------------------------------


def _rest_column(index: int, entry: Any) -> ColumnMeta:
    name: Any = None
    col_type: Any = None
    length: Any = None
    if isinstance(entry, (list, tuple)):
        if len(entry) > 0:
            name = entry[0]
        if len(entry) > 1:
            col_type = entry[1]
        if len(entry) > 2:
            length = entry[2]
    elif isinstance(entry, dict):
        name = entry.get("name")
        col_type = entry.get("type")
        length = entry.get("length", entry.get("bytes"))
    elif entry is not None:
        name = entry

    return ColumnMeta(
        name=str(name) if name is not None else f"col{index}",
        type=type_name(col_type),
        length=_as_int(length),
    )


def _rest_cell(value: Any, col_type: str | None) -> Any:
    if value is None:
        return None
    base = base_type(col_type)
    try:
        if base in BOOL_TYPES:
            if isinstance(value, bool):
                return value
            if isinstance(value, (int, float)):
                return value == 1
            return str(value).strip().lower() in ("true", "1")
        if is_integer_type(base):
            if isinstance(value, float) and not value.is_integer():
                return value
            return int(value)
        if is_float_type(base):
            return float(value)
        return value
    except _CELL_ERRORS:
        return str(value)


def _as_row(row: Any) -> list[Any]:
    if isinstance(row, (list, tuple)):
        return list(row)
    return [row]


def from_rest_payload(body: Any) -> QueryResult:
    """Normalize a REST response body.

    ``column_meta`` holds ``[name, type, length?]`` triples where type is a
    name or a numeric type code; ``data`` holds row arrays. Without
    ``column_meta`` the result has no columns and numbers keep their JSON
    type (integers stay int, the rest float).
    """
    if not isinstance(body, dict):
        return QueryResult()

    meta = body.get("column_meta")
    columns: list[ColumnMeta] = []
    if isinstance(meta, list):
        columns = [_rest_column(i, entry) for i, entry in enumerate(meta)]

    data = body.get("data")
    rows: list[list[Any]] = []
    if isinstance(data, list):
        width = len(columns)
        for raw in data:
            row = _as_row(raw)
            if width:
                row = row[:width]
            rows.append(
                [
                    _rest_cell(v, columns[i].type if i < width else None)
                    for i, v in enumerate(row)
                ]
            )

    rows_affected = None
    if (
        len(columns) == 1
        and columns[0].name == "affected_rows"
        and len(rows) == 1
        and rows[0]
    ):
        rows_affected = _as_int(rows[0][0])
    if rows_affected is None:
        rows_affected = _as_int(body.get("rows"))

    return QueryResult(columns=columns, rows=rows, rows_affected=rows_affected)


# ---------------------------------------------------------------------------
# DB-API cursors
# ---------------------------------------------------------------------------


def _cursor_column(index: int, desc: Any) -> ColumnMeta:
    if not isinstance(desc, Sequence) or isinstance(desc, str) or not desc:
        return ColumnMeta(name=f"col{index}")
    name = desc[0]
    col_type = desc[1] if len(desc) > 1 else None
    length = None
    for pos in (3, 2):
        if len(desc) > pos and _as_int(desc[pos]) is not None:
            length = desc[pos]
            break
    return ColumnMeta(
        name=str(name) if name is not None else f"col{index}",
        type=type_name(col_type),
        length=length,
    )


def _decode_binary(value: Any, binary_as_string: bool) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if binary_as_string:
            return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")
        return raw
    text = str(value)
    if binary_as_string:
        return text.split("\x00", 1)[0]
    return text.encode("utf-8")


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _cursor_cell(value: Any, col_type: str | None, binary_as_string: bool) -> Any:
    if value is None:
        return None
    base = base_type(col_type)
    try:
        if base in BOOL_TYPES:
            if isinstance(value, (str, bytes)):
                return _text(value).strip().lower() in ("true", "1")
            return bool(value)
        if is_integer_type(base):
            if isinstance(value, (bytes, bytearray)):
                value = _text(value)
            return int(value)
        if is_float_type(base):
            if isinstance(value, (bytes, bytearray)):
                value = _text(value)
            return float(value)
        if base == "TIMESTAMP":
            return value
        if base in STRING_TYPES:
            return _text(value)
        if is_binary_type(base):
            return _decode_binary(value, binary_as_string)
        return value
    except _CELL_ERRORS:
        return _text(value)


def from_cursor(
    description: Sequence[Any] | None,
    rows: Sequence[Any] | None,
    *,
    binary_as_string: bool = False,
    rows_affected: int | None = None,
) -> QueryResult:
    """Normalize a DB-API cursor description and fetched rows.

    Cells are read by declared column type. Binary columns decode as UTF-8
    text truncated at the first zero byte when ``binary_as_string`` is set,
    else they are returned as raw bytes.
    """
    columns = [_cursor_column(i, d) for i, d in enumerate(description or [])]
    width = len(columns)
    result_rows: list[list[Any]] = []
    for raw in rows or []:
        row = _as_row(raw)
        if width:
            row = row[:width]
        result_rows.append(
            [
                _cursor_cell(v, columns[i].type if i < width else None, binary_as_string)
                for i, v in enumerate(row)
            ]
        )
    if rows_affected is not None and rows_affected < 0:
        rows_affected = None
    return QueryResult(columns=columns, rows=result_rows, rows_affected=rows_affected)
