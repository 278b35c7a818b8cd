"""Tests for SchemaHealer's bounded retry and repair loop."""

from unittest.mock import MagicMock

import pytest

from tdingest.core.exceptions import (
    ClassifiedError,
    ErrorKind,
    InsertFailedError,
    NetworkError,
)
from tdingest.core.healer import SchemaHealer
from tdingest.core.models import Table
from tests.fakes import ScriptedTransport


def _table_missing():
    return ClassifiedError("REST SQL failed (code 9731): Table does not exist", ErrorKind.TABLE_NOT_EXIST)


def _column_missing(name="location"):
    return ClassifiedError(f"Invalid column name: {name}", ErrorKind.COLUMN_NOT_EXIST)


def _type_mismatch():
    return ClassifiedError("Data type mismatch", ErrorKind.COLUMN_TYPE_MISMATCH)


def _healer(transport, **kwargs):
    return SchemaHealer(transport, logger=MagicMock(), **kwargs)


@pytest.mark.unit
class TestSuccess:
    def test_first_attempt(self, meters):
        transport = ScriptedTransport()
        assert _healer(transport).insert(meters) == 1
        assert transport.statements == [meters.insert_sql()]

    def test_explicit_sql(self, meters):
        transport = ScriptedTransport()
        _healer(transport).insert(meters, sql="INSERT INTO x VALUES (1)")
        assert transport.statements == ["INSERT INTO x VALUES (1)"]

    def test_bare_table_qualified_with_transport_database(self):
        table = Table(name="m").add_field("v", "i", 1)
        transport = ScriptedTransport(database="db")
        _healer(transport).insert(table)
        assert transport.statements == ["INSERT INTO db.m (v) VALUES (1)"]


@pytest.mark.unit
class TestHealTable:
    def test_missing_table_created_then_retried(self, meters):
        transport = ScriptedTransport([_table_missing()])
        attempts = _healer(transport).insert(meters)
        assert attempts == 2
        assert transport.statements == [
            meters.insert_sql(),
            meters.create_sql(),
            meters.insert_sql(),
        ]

    def test_create_failure_aborts(self, meters):
        create_error = ClassifiedError("permission denied")
        transport = ScriptedTransport([_table_missing(), create_error])
        with pytest.raises(ClassifiedError) as exc_info:
            _healer(transport).insert(meters)
        assert exc_info.value is create_error
        assert len(transport.statements) == 2


@pytest.mark.unit
class TestHealColumn:
    def test_named_column_added(self, meters):
        transport = ScriptedTransport([_column_missing("location")])
        assert _healer(transport).insert(meters) == 2
        assert transport.statements == [
            meters.insert_sql(),
            "ALTER TABLE power.meters ADD COLUMN location VARCHAR(255)",
            meters.insert_sql(),
        ]

    def test_column_name_matched_case_insensitively(self, meters):
        transport = ScriptedTransport([_column_missing("LOCATION")])
        _healer(transport).insert(meters)
        assert transport.statements[1] == "ALTER TABLE power.meters ADD COLUMN location VARCHAR(255)"

    def test_unknown_column_adds_every_field(self, meters):
        transport = ScriptedTransport([_column_missing("other")])
        _healer(transport).insert(meters)
        assert transport.statements[1:4] == [meters.add_column_sql(f) for f in meters.fields]
        assert transport.statements[-1] == meters.insert_sql()

    def test_unnamed_column_adds_every_field_tolerating_errors(self, meters):
        exists = ClassifiedError("Duplicated column names")
        transport = ScriptedTransport(
            [
                ClassifiedError("column does not exist", ErrorKind.COLUMN_NOT_EXIST),
                exists,
                exists,
                None,
            ]
        )
        assert _healer(transport).insert(meters) == 2
        assert len(transport.statements) == 5

    def test_failed_precise_add_falls_back_to_all(self, meters):
        transport = ScriptedTransport([_column_missing("location"), ClassifiedError("nope")])
        _healer(transport).insert(meters)
        # insert, precise add (fails), add x3, insert
        assert len(transport.statements) == 6
        assert transport.statements[-1] == meters.insert_sql()


@pytest.mark.unit
class TestHealType:
    def test_drop_and_add_each_field(self, meters):
        transport = ScriptedTransport([_type_mismatch()])
        assert _healer(transport).insert(meters) == 2
        expected = [meters.insert_sql()]
        for f in meters.fields:
            expected += [meters.drop_column_sql(f), meters.add_column_sql(f)]
        expected.append(meters.insert_sql())
        assert transport.statements == expected

    def test_replace_failures_skipped(self, meters):
        transport = ScriptedTransport([_type_mismatch(), ClassifiedError("cannot drop ts")])
        assert _healer(transport).insert(meters) == 2


@pytest.mark.unit
class TestFailure:
    def test_non_schema_error_propagates_immediately(self, meters):
        error = ClassifiedError("syntax error")
        transport = ScriptedTransport([error])
        with pytest.raises(ClassifiedError) as exc_info:
            _healer(transport).insert(meters)
        assert exc_info.value is error
        assert len(transport.statements) == 1

    def test_network_error_propagates(self, meters):
        transport = ScriptedTransport([NetworkError("refused")])
        with pytest.raises(NetworkError):
            _healer(transport).insert(meters)

    def test_gives_up_after_three_attempts(self, meters):
        def always_missing(sql):
            return _table_missing() if sql.startswith("INSERT") else None

        transport = ScriptedTransport(always_missing)
        with pytest.raises(InsertFailedError) as exc_info:
            _healer(transport).insert(meters)
        err = exc_info.value
        assert err.kind == ErrorKind.INSERT_FAILED_AFTER_RETRY
        assert err.attempts == 3
        assert err.last_error.kind == ErrorKind.TABLE_NOT_EXIST
        assert err.__cause__ is err.last_error
        assert err.table == "power.meters"
        inserts = [s for s in transport.statements if s.startswith("INSERT")]
        creates = [s for s in transport.statements if s.startswith("CREATE")]
        assert len(inserts) == 3
        # No repair after the final attempt.
        assert len(creates) == 2

    def test_custom_max_attempts(self, meters):
        transport = ScriptedTransport(lambda sql: _table_missing() if sql.startswith("INSERT") else None)
        with pytest.raises(InsertFailedError) as exc_info:
            _healer(transport, max_attempts=1).insert(meters)
        assert exc_info.value.attempts == 1
        assert len(transport.statements) == 1

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            SchemaHealer(ScriptedTransport(), max_attempts=0)
