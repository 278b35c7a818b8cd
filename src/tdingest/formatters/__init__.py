"""Output formatters for tdingest query results."""

from tdingest.formatters.base import Formatter, FormatterRegistry, registry
from tdingest.formatters.csv import CSVFormatter
from tdingest.formatters.json import JSONFormatter
from tdingest.formatters.table import TableFormatter

__all__ = [
    "CSVFormatter",
    "Formatter",
    "FormatterRegistry",
    "JSONFormatter",
    "TableFormatter",
    "registry",
]
