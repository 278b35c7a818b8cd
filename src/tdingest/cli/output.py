"""Output format selection for CLI results.

Without --format, a terminal gets the rich table and a pipe gets CSV.
"""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from tdingest.core.models import QueryResult
    from tdingest.formatters.base import Formatter


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    CSV = "csv"


# The one option each formatter accepts.
_FORMAT_OPTION: dict[str, str] = {
    OutputFormat.TABLE: "width",
    OutputFormat.JSON: "compact",
    OutputFormat.CSV: "no_header",
}


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None) -> str:
    if format_flag is not None:
        return format_flag
    return OutputFormat.TABLE if detect_tty() else OutputFormat.CSV


def get_formatter(
    format_flag: str | None = None,
    *,
    compact: bool = False,
    width: int = 40,
    no_header: bool = False,
) -> Formatter:
    """Instantiate the formatter for ``format_flag`` with its own option only.

    Raises KeyError for an unregistered format name.
    """
    from tdingest.formatters import registry

    name = str(resolve_format(format_flag))
    options: dict[str, Any] = {"width": width, "compact": compact, "no_header": no_header}
    kwargs: dict[str, Any] = {}
    if name in _FORMAT_OPTION:
        option = _FORMAT_OPTION[name]
        kwargs[option] = options[option]
    return registry.get(name, **kwargs)


def write_output(
    formatter: Formatter, result: QueryResult, stream: TextIO | None = None
) -> None:
    out = stream or sys.stdout
    for line in formatter.format(result):
        out.write(line + "\n")
