"""Tests for the exception hierarchy and error kinds."""

import pytest

from tdingest.core.exceptions import (
    SCHEMA_KINDS,
    BatchInsertError,
    ClassifiedError,
    ClientClosedError,
    CoercionError,
    ConfigError,
    ConnectionInitError,
    ErrorKind,
    InputError,
    InsertFailedError,
    InvalidTypeError,
    NetworkError,
    NotInitializedError,
    TdIngestError,
    TimeoutError,
    extract_missing_column,
)
from tdingest.core.exit_codes import ExitCode


@pytest.mark.unit
class TestExitCodes:
    def test_exit_code_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.GENERAL_ERROR == 1
        assert ExitCode.USAGE_ERROR == 2
        assert ExitCode.INPUT_ERROR == 3
        assert ExitCode.OUTPUT_ERROR == 4
        assert ExitCode.NETWORK_ERROR == 5
        assert ExitCode.TIMEOUT == 6
        assert ExitCode.CONFIG_ERROR == 7
        assert ExitCode.SQL_ERROR == 8
        assert ExitCode.INSERT_ERROR == 9

    def test_exit_code_is_int(self):
        for code in ExitCode:
            assert isinstance(code, int)


@pytest.mark.unit
class TestErrorKind:
    def test_values(self):
        assert ErrorKind.TABLE_NOT_EXIST == "TableNotExist"
        assert ErrorKind.GENERIC_SQL_ERROR == "GenericSqlError"
        assert ErrorKind.BATCH_INSERT_FAILED == "BatchInsertFailed"

    def test_schema_kinds(self):
        assert SCHEMA_KINDS == {
            ErrorKind.TABLE_NOT_EXIST,
            ErrorKind.COLUMN_NOT_EXIST,
            ErrorKind.COLUMN_TYPE_MISMATCH,
        }


@pytest.mark.unit
class TestExtractMissingColumn:
    @pytest.mark.parametrize(
        "message",
        [
            "Invalid column name: weather",
            "Unknown column 'weather'",
            "Column does not exist: weather",
            "REST SQL failed (code 9730): invalid column name:weather",
        ],
    )
    def test_known_phrasings(self, message):
        assert extract_missing_column(message) == "weather"

    def test_no_match(self):
        assert extract_missing_column("Table does not exist") is None
        assert extract_missing_column("") is None
        assert extract_missing_column(None) is None


@pytest.mark.unit
class TestTdIngestError:
    def test_base_exception(self):
        err = TdIngestError("test error", table="t", column="c")
        assert str(err) == "test error"
        assert err.message == "test error"
        assert err.table == "t"
        assert err.column == "c"
        assert err.exit_code == ExitCode.GENERAL_ERROR

    @pytest.mark.parametrize(
        ("cls", "kind", "exit_code"),
        [
            (InputError, ErrorKind.INVALID_INPUT, ExitCode.INPUT_ERROR),
            (InvalidTypeError, ErrorKind.INVALID_INPUT, ExitCode.INPUT_ERROR),
            (ConfigError, ErrorKind.INVALID_INPUT, ExitCode.CONFIG_ERROR),
            (NotInitializedError, ErrorKind.NOT_INITIALIZED, ExitCode.GENERAL_ERROR),
            (ClientClosedError, ErrorKind.CLIENT_CLOSED, ExitCode.GENERAL_ERROR),
            (NetworkError, ErrorKind.CONNECTION_ERROR, ExitCode.NETWORK_ERROR),
            (TimeoutError, ErrorKind.CONNECTION_ERROR, ExitCode.TIMEOUT),
            (ConnectionInitError, ErrorKind.CONNECTION_INIT_FAILED, ExitCode.NETWORK_ERROR),
            (CoercionError, ErrorKind.VALUE_TYPE_COERCION, ExitCode.INPUT_ERROR),
        ],
    )
    def test_kind_and_exit_code(self, cls, kind, exit_code):
        err = cls("boom")
        assert isinstance(err, TdIngestError)
        assert err.kind == kind
        assert err.exit_code == exit_code


@pytest.mark.unit
class TestClassifiedError:
    def test_default_kind(self):
        err = ClassifiedError("syntax error")
        assert err.kind == ErrorKind.GENERIC_SQL_ERROR
        assert err.exit_code == ExitCode.SQL_ERROR
        assert not err.is_schema_error

    def test_kind_per_instance(self):
        err = ClassifiedError("Table does not exist", ErrorKind.TABLE_NOT_EXIST)
        assert err.kind == ErrorKind.TABLE_NOT_EXIST
        assert err.is_schema_error
        assert ClassifiedError("x").kind == ErrorKind.GENERIC_SQL_ERROR

    def test_missing_column_from_message(self):
        err = ClassifiedError("Unknown column 'humidity'", ErrorKind.COLUMN_NOT_EXIST)
        assert err.missing_column == "humidity"
        assert err.column == "humidity"

    def test_cause_kept(self):
        cause = RuntimeError("driver")
        err = ClassifiedError("failed", cause=cause)
        assert err.cause is cause

    def test_network_errors_are_classified(self):
        assert issubclass(NetworkError, ClassifiedError)
        assert issubclass(TimeoutError, NetworkError)


@pytest.mark.unit
class TestInsertErrors:
    def test_insert_failed_wraps_last_error(self):
        last = ClassifiedError("Invalid column name: v", ErrorKind.COLUMN_NOT_EXIST)
        err = InsertFailedError("gave up", attempts=3, last_error=last, table="db.t")
        assert err.kind == ErrorKind.INSERT_FAILED_AFTER_RETRY
        assert err.exit_code == ExitCode.INSERT_ERROR
        assert err.attempts == 3
        assert err.cause is last
        assert err.table == "db.t"
        assert err.column == "v"

    def test_batch_insert_error(self):
        cause = InputError("bad", table="t", column="c")
        err = BatchInsertError("batch", inserted=4, index=5, cause=cause)
        assert err.kind == ErrorKind.BATCH_INSERT_FAILED
        assert err.inserted == 4
        assert err.index == 5
        assert err.cause is cause
        assert err.table == "t"
        assert err.column == "c"
