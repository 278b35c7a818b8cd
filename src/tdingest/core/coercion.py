"""Detection of values the server would silently coerce.

A float bound for an integer column loses its fraction; an arbitrary
string bound for a BOOL column becomes 0. By default such values are
logged; in strict mode they fail the insert before anything is sent.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from tdingest.core.exceptions import CoercionError
from tdingest.core.logging import get_logger
from tdingest.core.types import INTEGER_TYPES, base_type, is_bool_type

if TYPE_CHECKING:
    from tdingest.core.models import Field, Table

_BOOL_LITERALS = frozenset({"true", "false", "1", "0"})


def _has_fraction(value: Any) -> bool:
    """NaN counts as fractional, infinity does not."""
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        if math.isinf(value):
            return False
        return not value.is_integer()
    if isinstance(value, Decimal):
        if value.is_infinite():
            return False
        if value.is_nan():
            return True
        return value.normalize().as_tuple().exponent < 0
    return False


class CoercionDetector:
    """Flags field values whose runtime type disagrees with the column type.

    ``strict`` may be flipped at any time; it is read once per inspect().
    """

    def __init__(self, strict: bool = False, logger: Any | None = None) -> None:
        self.strict = strict
        self._log = logger or get_logger("tdingest.coercion")

    def check(self, field: Field) -> str | None:
        """Return a warning message for a lossy value, else None."""
        value = field.value
        if value is None:
            return None

        base = base_type(field.type)
        if base in INTEGER_TYPES and _has_fraction(value):
            return (
                f"Field '{field.name}' is declared {base} but the value "
                f"{value!r} ({type(value).__name__}) has a fractional part: "
                "possible truncation"
            )

        if is_bool_type(base) and not isinstance(value, bool):
            if str(value).lower() not in _BOOL_LITERALS:
                return (
                    f"Field '{field.name}' is declared BOOL but the value "
                    f"{value!r} is not true/false/1/0: possible coercion to 0"
                )
        return None

    def inspect(self, table: Table) -> list[str]:
        """Check every field of a table.

        Raises CoercionError on the first warning in strict mode; otherwise
        logs and returns all warnings.
        """
        strict = self.strict
        warnings: list[str] = []
        for field in table.fields:
            msg = self.check(field)
            if msg is None:
                continue
            if strict:
                raise CoercionError(msg, table=table.full_name, column=field.name)
            self._log.warning(msg, table=table.full_name, column=field.name)
            warnings.append(msg)
        return warnings
