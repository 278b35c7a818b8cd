"""Tests for CoercionDetector."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from tdingest.core.coercion import CoercionDetector
from tdingest.core.exceptions import CoercionError, ErrorKind
from tdingest.core.models import Field, Table


@pytest.fixture
def detector():
    return CoercionDetector(logger=MagicMock())


# -- check --


@pytest.mark.unit
class TestCheckInteger:
    def test_fractional_float_warns(self, detector):
        msg = detector.check(Field(name="x", type="INT", value=10.5))
        assert msg is not None
        assert "possible truncation" in msg

    def test_whole_float_does_not_warn(self, detector):
        assert detector.check(Field(name="x", type="INT", value=10.0)) is None

    def test_int_does_not_warn(self, detector):
        assert detector.check(Field(name="x", type="BIGINT", value=10)) is None

    @pytest.mark.parametrize("declared", ["TINYINT", "SMALLINT", "INT", "BIGINT"])
    def test_all_integer_types(self, detector, declared):
        assert detector.check(Field(name="x", type=declared, value=1.25)) is not None

    def test_decimal_with_scale_warns(self, detector):
        assert detector.check(Field(name="x", type="INT", value=Decimal("3.14"))) is not None

    def test_decimal_trailing_zeros_stripped(self, detector):
        assert detector.check(Field(name="x", type="INT", value=Decimal("3.000"))) is None

    @pytest.mark.parametrize("value", [float("nan"), Decimal("NaN")])
    def test_nan_warns(self, detector, value):
        assert detector.check(Field(name="x", type="BIGINT", value=value)) is not None

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), Decimal("Infinity")])
    def test_infinity_does_not_warn(self, detector, value):
        assert detector.check(Field(name="x", type="BIGINT", value=value)) is None

    def test_float_column_never_truncates(self, detector):
        assert detector.check(Field(name="x", type="DOUBLE", value=10.5)) is None


@pytest.mark.unit
class TestCheckBool:
    @pytest.mark.parametrize("value", ["yes", "on", 2, "maybe"])
    def test_unknown_literal_warns(self, detector, value):
        msg = detector.check(Field(name="b", type="BOOL", value=value))
        assert msg is not None
        assert "possible coercion to 0" in msg

    @pytest.mark.parametrize("value", ["1", "0", "true", "FALSE", 1, 0, True, False])
    def test_known_literal_does_not_warn(self, detector, value):
        assert detector.check(Field(name="b", type="BOOL", value=value)) is None

    def test_boolean_alias(self, detector):
        assert detector.check(Field(name="b", type="boolean", value="yes")) is not None


@pytest.mark.unit
def test_null_never_warns(detector):
    assert detector.check(Field(name="x", type="INT", value=None)) is None
    assert detector.check(Field(name="b", type="BOOL", value=None)) is None


# -- inspect --


@pytest.mark.unit
class TestInspect:
    def _table(self):
        return (
            Table(name="t")
            .add_field("a", "i", 1.5)
            .add_field("b", "b", "yes")
            .add_field("c", "d", 2.0)
        )

    def test_lenient_logs_each_warning(self):
        log = MagicMock()
        detector = CoercionDetector(logger=log)
        warnings = detector.inspect(self._table())
        assert len(warnings) == 2
        assert log.warning.call_count == 2
        assert log.warning.call_args_list[0].kwargs["column"] == "a"

    def test_strict_raises_first_warning(self):
        detector = CoercionDetector(strict=True, logger=MagicMock())
        with pytest.raises(CoercionError) as exc_info:
            detector.inspect(self._table())
        assert exc_info.value.kind == ErrorKind.VALUE_TYPE_COERCION
        assert exc_info.value.column == "a"
        assert exc_info.value.table == "t"

    def test_strict_toggle_applies_to_next_call(self):
        log = MagicMock()
        detector = CoercionDetector(logger=log)
        detector.inspect(self._table())
        detector.strict = True
        with pytest.raises(CoercionError):
            detector.inspect(self._table())

    def test_clean_table_returns_no_warnings(self, meters):
        detector = CoercionDetector(strict=True, logger=MagicMock())
        assert detector.inspect(meters) == []
