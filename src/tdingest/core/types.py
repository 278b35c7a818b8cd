"""Column type tokens and SQL literal rendering.

normalize_type() turns shorthand or verbose type tokens into the canonical
declared type used for DDL and coercion checks: upper-case base keyword with
an optional parenthesized length, e.g. ``VARCHAR(255)``.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from tdingest.core.exceptions import InvalidTypeError

DEFAULT_STRING_LENGTH = 255

# Shorthand and verbose tokens with a fixed canonical form.
_TYPE_ALIASES: dict[str, str] = {
    "d": "DOUBLE",
    "double": "DOUBLE",
    "f": "FLOAT",
    "float": "FLOAT",
    "i": "INT",
    "int": "INT",
    "l": "BIGINT",
    "long": "BIGINT",
    "t": "TIMESTAMP",
    "timestamp": "TIMESTAMP",
    "s": f"VARCHAR({DEFAULT_STRING_LENGTH})",
    "varchar": f"VARCHAR({DEFAULT_STRING_LENGTH})",
    "nchar": f"NCHAR({DEFAULT_STRING_LENGTH})",
    "b": "BOOL",
    "bool": "BOOL",
    "boolean": "BOOL",
}

INTEGER_TYPES = frozenset({"TINYINT", "SMALLINT", "INT", "BIGINT"})
UNSIGNED_TYPES = frozenset(
    {"TINYINT UNSIGNED", "SMALLINT UNSIGNED", "INT UNSIGNED", "BIGINT UNSIGNED"}
)
FLOAT_TYPES = frozenset({"FLOAT", "DOUBLE"})
BOOL_TYPES = frozenset({"BOOL", "BOOLEAN"})
STRING_TYPES = frozenset({"VARCHAR", "NCHAR", "JSON"})
BINARY_TYPES = frozenset({"BINARY", "VARBINARY", "GEOMETRY"})
NUMERIC_TYPES = INTEGER_TYPES | UNSIGNED_TYPES | FLOAT_TYPES

# Inclusive value ranges of the integer column types.
INTEGER_RANGES: dict[str, tuple[int, int]] = {
    "TINYINT": (-(2**7), 2**7 - 1),
    "SMALLINT": (-(2**15), 2**15 - 1),
    "INT": (-(2**31), 2**31 - 1),
    "BIGINT": (-(2**63), 2**63 - 1),
    "TINYINT UNSIGNED": (0, 2**8 - 1),
    "SMALLINT UNSIGNED": (0, 2**16 - 1),
    "INT UNSIGNED": (0, 2**32 - 1),
    "BIGINT UNSIGNED": (0, 2**64 - 1),
}


def normalize_type(token: str | None) -> str:
    """Canonicalize a column type token.

    Unknown tokens are upper-cased and passed through so native types such
    as ``BINARY(64)`` keep working. Idempotent.
    """
    if token is None or (isinstance(token, str) and not token.strip()):
        raise InvalidTypeError("Field type must not be empty")
    if not isinstance(token, str):
        raise InvalidTypeError(f"Field type must be a string, got {token!r}")

    raw = token.strip()
    lower = raw.lower()
    alias = _TYPE_ALIASES.get(lower)
    if alias is not None:
        return alias
    return raw.upper()


def base_type(declared: str | None) -> str:
    """Strip the length suffix: ``VARCHAR(64)`` -> ``VARCHAR``."""
    if not declared:
        return ""
    text = declared.strip().upper()
    idx = text.find("(")
    if idx > 0:
        text = text[:idx].strip()
    return text


def is_integer_type(declared: str | None) -> bool:
    base = base_type(declared)
    return base in INTEGER_TYPES or base in UNSIGNED_TYPES


def is_float_type(declared: str | None) -> bool:
    return base_type(declared) in FLOAT_TYPES


def is_bool_type(declared: str | None) -> bool:
    return base_type(declared) in BOOL_TYPES


def is_binary_type(declared: str | None) -> bool:
    return base_type(declared) in BINARY_TYPES


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _format_timestamp(value: Any) -> str:
    if isinstance(value, bool):
        return _quote(str(value))
    if isinstance(value, int):
        # Epoch value in the database precision, sent unquoted.
        return str(value)
    if isinstance(value, datetime):
        return _quote(value.isoformat(sep=" ", timespec="milliseconds"))
    if isinstance(value, date):
        return _quote(value.isoformat() + " 00:00:00.000")
    return _quote(str(value))


def _format_bool(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return "1" if str(value).lower() in ("true", "1") else "0"


def _format_number(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def format_value(declared: str, value: Any) -> str:
    """Render a value as a SQL literal for the declared column type."""
    if value is None:
        return "NULL"

    base = base_type(declared)
    if base == "TIMESTAMP":
        return _format_timestamp(value)
    if base in STRING_TYPES or base in BINARY_TYPES:
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return _quote(str(value))
    if base in BOOL_TYPES:
        return _format_bool(value)
    if base in NUMERIC_TYPES:
        return _format_number(value)
    return str(value)


def _in_range(value: int | float | Decimal, bounds: tuple[int, int]) -> bool:
    if isinstance(value, Decimal):
        if not value.is_finite():
            return False
    elif isinstance(value, float) and not math.isfinite(value):
        return False
    low, high = bounds
    return low <= int(value) <= high


def is_renderable(declared: str, value: Any) -> bool:
    """Whether a value can be rendered for the declared type at all.

    BOOL accepts anything; lossy values are left to the coercion detector.
    Integer columns also need a finite value whose integral part fits the
    column range; fractions are left to the detector too.
    """
    if value is None:
        return True
    base = base_type(declared)
    if base in NUMERIC_TYPES:
        if not isinstance(value, (int, float, Decimal)):
            return False
        bounds = INTEGER_RANGES.get(base)
        return bounds is None or _in_range(value, bounds)
    if base == "TIMESTAMP":
        return not isinstance(value, bool) and isinstance(
            value, (int, str, datetime, date)
        )
    return True
