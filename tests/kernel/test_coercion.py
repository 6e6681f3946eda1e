"""
Tests for etl_kernel.domain.coercion -- raw values to declared field types.

Empty-is-null for every type, integer range checks, strict booleans,
ISO dates, passthrough for object/unknown, and CoercionError on failure.
"""

import math
from datetime import date

import pytest

from etl_kernel.domain.coercion import coerce, is_empty
from etl_kernel.domain.schema import FieldType
from etl_kernel.exceptions import CoercionError


class TestEmptyIsNull:
    @pytest.mark.parametrize("field_type", list(FieldType))
    @pytest.mark.parametrize("raw", [None, "", "   ", "\t\n"])
    def test_empty_input_is_none_for_every_type(self, raw, field_type):
        assert coerce(raw, field_type) is None

    def test_is_empty(self):
        assert is_empty(None)
        assert is_empty("  ")
        assert not is_empty("0")
        assert not is_empty(0)
        assert not is_empty(False)


class TestIntegers:
    @pytest.mark.parametrize(
        "raw, expected",
        [("42", 42), ("-7", -7), ("+3", 3), (" 12 ", 12), ("007", 7)],
    )
    def test_parse_integer(self, raw, expected):
        assert coerce(raw, FieldType.INTEGER) == expected

    def test_integer_bounds(self):
        assert coerce("2147483647", FieldType.INTEGER) == 2**31 - 1
        assert coerce("-2147483648", FieldType.INTEGER) == -(2**31)
        with pytest.raises(CoercionError):
            coerce("2147483648", FieldType.INTEGER)

    def test_long_accepts_64_bit_values(self):
        assert coerce("2147483648", FieldType.LONG) == 2**31
        with pytest.raises(CoercionError):
            coerce(str(2**63), FieldType.LONG)

    def test_int_value_out_of_range_rejected(self):
        with pytest.raises(CoercionError):
            coerce(2**40, FieldType.INTEGER)

    @pytest.mark.parametrize("raw", ["abc", "1.5", "1e3", "12abc", "0x1F"])
    def test_non_integer_text_fails(self, raw):
        with pytest.raises(CoercionError) as exc_info:
            coerce(raw, FieldType.INTEGER)
        assert exc_info.value.raw_value == raw
        assert exc_info.value.target_type == "integer"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_bool_is_not_an_integer(self):
        with pytest.raises(CoercionError):
            coerce(True, FieldType.INTEGER)


class TestFloats:
    @pytest.mark.parametrize(
        "raw, expected",
        [("1.5", 1.5), ("-0.25", -0.25), ("3", 3.0), ("1e3", 1000.0), (".5", 0.5)],
    )
    def test_parse_float(self, raw, expected):
        assert coerce(raw, FieldType.DOUBLE) == expected
        assert coerce(raw, FieldType.FLOAT) == expected

    def test_special_values(self):
        assert math.isnan(coerce("NaN", FieldType.DOUBLE))
        assert coerce("-inf", FieldType.DOUBLE) == float("-inf")

    def test_int_value_becomes_float(self):
        result = coerce(7, FieldType.DOUBLE)
        assert result == 7.0
        assert isinstance(result, float)

    def test_garbage_fails(self):
        with pytest.raises(CoercionError):
            coerce("1,5", FieldType.DOUBLE)


class TestBooleans:
    @pytest.mark.parametrize("raw", ["true", "TRUE", " True "])
    def test_true(self, raw):
        assert coerce(raw, FieldType.BOOLEAN) is True

    @pytest.mark.parametrize("raw", ["false", "False"])
    def test_false(self, raw):
        assert coerce(raw, FieldType.BOOLEAN) is False

    @pytest.mark.parametrize("raw", ["yes", "1", "0", "t"])
    def test_other_text_fails(self, raw):
        with pytest.raises(CoercionError):
            coerce(raw, FieldType.BOOLEAN)

    def test_bool_value_passes(self):
        assert coerce(False, FieldType.BOOLEAN) is False


class TestDatesAndStrings:
    def test_iso_date(self):
        assert coerce("2024-02-29", FieldType.DATE) == date(2024, 2, 29)

    @pytest.mark.parametrize("raw", ["2023-02-29", "29/02/2024", "2024-2-1", "20240201"])
    def test_invalid_date_fails(self, raw):
        with pytest.raises(CoercionError):
            coerce(raw, FieldType.DATE)

    def test_date_value_passes(self):
        d = date(2020, 1, 1)
        assert coerce(d, FieldType.DATE) is d

    def test_string_unchanged(self):
        assert coerce("  padded  ", FieldType.STRING) == "  padded  "

    def test_non_string_becomes_text(self):
        assert coerce(42, FieldType.STRING) == "42"
        assert coerce(1.5, "string") == "1.5"


class TestPassthrough:
    def test_object_and_unknown_return_raw(self):
        nested = {"city": "Paris"}
        assert coerce(nested, FieldType.OBJECT) is nested
        assert coerce("x", FieldType.UNKNOWN) == "x"

    def test_unrecognised_tag_passes_through(self):
        assert coerce("anything", "decimal128") == "anything"

    def test_tag_aliases(self):
        assert coerce("5", "int") == 5
        assert coerce("true", "bool") is True
