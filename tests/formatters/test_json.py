"""Tests for JSONFormatter."""

import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from tdingest.core.models import ColumnMeta, QueryResult
from tdingest.formatters.base import Formatter
from tdingest.formatters.json import JSONFormatter


def _make_result(rows=None, columns=None):
    if columns is None:
        columns = [
            ColumnMeta(name="id", type="INT"),
            ColumnMeta(name="location", type="VARCHAR"),
        ]
    if rows is None:
        rows = [(1, "Beijing"), (2, "Shanghai")]
    return QueryResult(columns=columns, rows=rows)


@pytest.mark.unit
def test_json_formatter_implements_protocol():
    assert isinstance(JSONFormatter(), Formatter)


@pytest.mark.unit
def test_json_formatter_outputs_valid_json():
    result = _make_result()
    output = "\n".join(JSONFormatter().format(result))
    parsed = json.loads(output)
    assert isinstance(parsed, list)
    assert len(parsed) == 2


@pytest.mark.unit
def test_json_formatter_rows_as_dicts():
    result = _make_result()
    output = "\n".join(JSONFormatter().format(result))
    parsed = json.loads(output)
    assert parsed[0] == {"id": 1, "location": "Beijing"}
    assert parsed[1] == {"id": 2, "location": "Shanghai"}


@pytest.mark.unit
def test_json_formatter_pretty_print_default():
    result = _make_result(rows=[(1, "Beijing")])
    output = "\n".join(JSONFormatter().format(result))
    # Pretty-print has indentation
    assert "\n" in output
    assert "  " in output


@pytest.mark.unit
def test_json_formatter_compact_mode():
    result = _make_result(rows=[(1, "Beijing")])
    output = "\n".join(JSONFormatter(compact=True).format(result))
    # Compact has no newlines within the JSON
    parsed = json.loads(output)
    assert parsed == [{"id": 1, "location": "Beijing"}]
    assert "\n" not in output


@pytest.mark.unit
def test_json_formatter_empty_result():
    result = _make_result(rows=[])
    output = "\n".join(JSONFormatter().format(result))
    parsed = json.loads(output)
    assert parsed == []


@pytest.mark.unit
def test_json_formatter_handles_none_values():
    result = _make_result(rows=[(1, None)])
    output = "\n".join(JSONFormatter().format(result))
    parsed = json.loads(output)
    assert parsed[0]["location"] is None


@pytest.mark.unit
def test_json_formatter_handles_special_types():
    dt = datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)
    result = _make_result(
        rows=[(dt, Decimal("123.45"))],
        columns=[
            ColumnMeta(name="ts", type="TIMESTAMP"),
            ColumnMeta(name="amount", type="DOUBLE"),
        ],
    )
    output = "\n".join(JSONFormatter().format(result))
    parsed = json.loads(output)
    # datetime and Decimal serialized as strings
    assert isinstance(parsed[0]["ts"], str)
    assert isinstance(parsed[0]["amount"], str)


@pytest.mark.unit
def test_json_formatter_handles_special_characters():
    result = _make_result(rows=[(1, 'he said "hello" & <bye>')])
    output = "\n".join(JSONFormatter().format(result))
    parsed = json.loads(output)
    assert parsed[0]["location"] == 'he said "hello" & <bye>'


@pytest.mark.unit
def test_json_formatter_timestamps_as_iso():
    dt = datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    result = _make_result(
        rows=[(dt, 10.3)],
        columns=[
            ColumnMeta(name="ts", type="TIMESTAMP"),
            ColumnMeta(name="current", type="FLOAT"),
        ],
    )
    parsed = json.loads("\n".join(JSONFormatter().format(result)))
    assert parsed == [{"ts": "2023-11-14T22:13:20+00:00", "current": 10.3}]


@pytest.mark.unit
def test_json_formatter_decodes_binary_values():
    result = _make_result(rows=[(1, b"d1001")])
    parsed = json.loads("\n".join(JSONFormatter().format(result)))
    assert parsed[0]["location"] == "d1001"


@pytest.mark.unit
def test_json_formatter_duplicate_column_names():
    result = QueryResult(
        columns=[ColumnMeta(name="v"), ColumnMeta(name="v")],
        rows=[[1, 2]],
    )
    parsed = json.loads("\n".join(JSONFormatter(compact=True).format(result)))
    assert parsed == [{"v": 1, "col1": 2}]
