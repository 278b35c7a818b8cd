"""JSON formatter for QueryResult output."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from tdingest.formatters.base import registry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from tdingest.core.models import QueryResult


def _serialize_value(val: Any) -> Any:
    if isinstance(val, (int, float, str, bool, type(None))):
        return val
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if isinstance(val, bytes):
        return val.decode("utf-8", errors="replace")
    return str(val)


class JSONFormatter:
    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, result: QueryResult) -> Iterator[str]:
        rows_as_dicts = [
            {name: _serialize_value(val) for name, val in row.items()}
            for row in result.to_dicts()
        ]

        if self.compact:
            yield json.dumps(rows_as_dicts, default=str)
        else:
            yield json.dumps(rows_as_dicts, indent=2, default=str)


registry.register("json", JSONFormatter)
