"""RFC 4180 CSV output, one line per result row."""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING

from tdingest.formatters.base import cell_text, header_names, registry

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from tdingest.core.models import QueryResult


class CSVFormatter:
    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header
        self._buf = StringIO()
        self._writer = csv.writer(self._buf, lineterminator="")

    def _line(self, cells: Iterable[str]) -> str:
        self._buf.seek(0)
        self._buf.truncate()
        self._writer.writerow(cells)
        return self._buf.getvalue()

    def format(self, result: QueryResult) -> Iterator[str]:
        if not self.no_header:
            yield self._line(header_names(result))
        for row in result.rows:
            yield self._line(cell_text(value) for value in row)


registry.register("csv", CSVFormatter)
