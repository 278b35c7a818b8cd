"""tdingest - adaptive ingestion into TDengine-style time-series tables."""

from tdingest.__about__ import __version__
from tdingest.core.client import TdClient
from tdingest.core.exceptions import (
    BatchInsertError,
    ClassifiedError,
    CoercionError,
    ErrorKind,
    InsertFailedError,
    TdIngestError,
)
from tdingest.core.models import ColumnMeta, Field, QueryResult, Table

__all__ = [
    "BatchInsertError",
    "ClassifiedError",
    "CoercionError",
    "ColumnMeta",
    "ErrorKind",
    "Field",
    "InsertFailedError",
    "QueryResult",
    "Table",
    "TdClient",
    "TdIngestError",
    "__version__",
]
