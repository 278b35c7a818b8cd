"""Exception hierarchy for tdingest.

All exceptions carry an ErrorKind for programmatic handling and an
exit_code for CLI return value mapping. Transports raise ClassifiedError
(or a subclass) only; the schema-related kinds are recovered by the
SchemaHealer, everything else propagates to the caller unchanged.
"""

from __future__ import annotations

import re
from enum import StrEnum

from tdingest.core.exit_codes import ExitCode


class ErrorKind(StrEnum):
    INVALID_INPUT = "InvalidInput"
    CONNECTION_INIT_FAILED = "ConnectionInitFailed"
    NOT_INITIALIZED = "NotInitialized"
    CLIENT_CLOSED = "ClientClosed"
    TABLE_NOT_EXIST = "TableNotExist"
    COLUMN_NOT_EXIST = "ColumnNotExist"
    COLUMN_TYPE_MISMATCH = "ColumnTypeMismatch"
    DB_NOT_SPECIFIED = "DbNotSpecified"
    CONNECTION_ERROR = "ConnectionError"
    GENERIC_SQL_ERROR = "GenericSqlError"
    VALUE_TYPE_COERCION = "ValueTypeCoercion"
    INSERT_FAILED_AFTER_RETRY = "InsertFailedAfterRetry"
    BATCH_INSERT_FAILED = "BatchInsertFailed"


SCHEMA_KINDS = frozenset(
    {
        ErrorKind.TABLE_NOT_EXIST,
        ErrorKind.COLUMN_NOT_EXIST,
        ErrorKind.COLUMN_TYPE_MISMATCH,
    }
)

_MISSING_COLUMN_PATTERNS = (
    re.compile(r"invalid\s+column\s+name:?\s*([A-Za-z0-9_]+)", re.IGNORECASE),
    re.compile(r"unknown\s+column\s+'([^']+)'", re.IGNORECASE),
    re.compile(r"column\s+does\s+not\s+exist:?\s*([A-Za-z0-9_]+)", re.IGNORECASE),
)


def extract_missing_column(message: str | None) -> str | None:
    """Best-effort extraction of a missing column name from a server message.

    Recognizes "Invalid column name: X", "Unknown column 'X'" and
    "Column does not exist: X".
    """
    if not message:
        return None
    text = message.strip()
    for pattern in _MISSING_COLUMN_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


class TdIngestError(Exception):
    """Base exception for all tdingest errors."""

    kind: ErrorKind = ErrorKind.GENERIC_SQL_ERROR
    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        column: str | None = None,
    ) -> None:
        self.message = message
        self.table = table
        self.column = column
        super().__init__(message)


class InputError(TdIngestError):
    """Null or blank URL, table, SQL or field definition."""

    kind = ErrorKind.INVALID_INPUT
    exit_code: int = ExitCode.INPUT_ERROR


class InvalidTypeError(InputError):
    """Empty or blank column type token."""


class ConfigError(TdIngestError):
    """Malformed config, missing profile, unparsable URL."""

    kind = ErrorKind.INVALID_INPUT
    exit_code: int = ExitCode.CONFIG_ERROR


class ClientStateError(TdIngestError):
    """Operation attempted on a client or transport that cannot serve it."""


class NotInitializedError(ClientStateError):
    kind = ErrorKind.NOT_INITIALIZED


class ClientClosedError(ClientStateError):
    kind = ErrorKind.CLIENT_CLOSED


class ClassifiedError(TdIngestError):
    """Transport failure tagged with the kind that drives schema healing."""

    exit_code: int = ExitCode.SQL_ERROR

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        *,
        cause: BaseException | None = None,
        table: str | None = None,
        column: str | None = None,
    ) -> None:
        super().__init__(
            message,
            table=table,
            column=column or extract_missing_column(message),
        )
        if kind is not None:
            self.kind = kind
        self.cause = cause

    @property
    def missing_column(self) -> str | None:
        return extract_missing_column(self.message)

    @property
    def is_schema_error(self) -> bool:
        return self.kind in SCHEMA_KINDS


class NetworkError(ClassifiedError):
    """Connection failures, unreachable host."""

    kind = ErrorKind.CONNECTION_ERROR
    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(NetworkError):
    """Request or connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class ConnectionInitError(NetworkError):
    """Transport could not be brought up."""

    kind = ErrorKind.CONNECTION_INIT_FAILED


class CoercionError(TdIngestError):
    """Value would be implicitly converted by the server (strict mode only)."""

    kind = ErrorKind.VALUE_TYPE_COERCION
    exit_code: int = ExitCode.INPUT_ERROR


class InsertFailedError(TdIngestError):
    """Insert still failing after the schema healer exhausted its attempts."""

    kind = ErrorKind.INSERT_FAILED_AFTER_RETRY
    exit_code: int = ExitCode.INSERT_ERROR

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        last_error: ClassifiedError,
        table: str | None = None,
    ) -> None:
        super().__init__(message, table=table, column=last_error.column)
        self.attempts = attempts
        self.last_error = last_error
        self.cause = last_error


class BatchInsertError(TdIngestError):
    """A record of a batch failed after degrading to single-record inserts."""

    kind = ErrorKind.BATCH_INSERT_FAILED
    exit_code: int = ExitCode.INSERT_ERROR

    def __init__(
        self,
        message: str,
        *,
        inserted: int,
        index: int,
        cause: TdIngestError,
    ) -> None:
        super().__init__(message, table=cause.table, column=cause.column)
        self.inserted = inserted
        self.index = index
        self.cause = cause
