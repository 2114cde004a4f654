"""Tests for number and boolean decoding."""

import pytest

from ofx2json.decoding.primitives import (
    accumulate_digit,
    parse_bool,
    parse_digits,
    parse_number,
    skip_whitespace,
)
from ofx2json.shared.errors import LeafDecodeError


class TestHelpers:
    """Test scanning helpers shared by the decoders."""

    def test_skip_whitespace(self):
        """Test whitespace skipping stops at content or end."""
        assert skip_whitespace("  \t\nX", 0) == 4
        assert skip_whitespace("X", 0) == 0
        assert skip_whitespace("   ", 1) == 3

    def test_accumulate_digit(self):
        """Test multiply-add and the overflow signal."""
        assert accumulate_digit(12, 3) == 123
        assert accumulate_digit(0, 0) == 0
        assert accumulate_digit(1 << 63, 0) is None
        assert accumulate_digit((1 << 64) // 10, 6) is None
        assert accumulate_digit(((1 << 64) - 1) // 10, 5) == (1 << 64) - 1

    def test_parse_digits_fixed_width(self):
        """Test fixed-width digit parsing."""
        assert parse_digits("20210115", 0, 4) == (2021, 4)
        assert parse_digits("20210115", 4, 2) == (1, 2)
        assert parse_digits("20X1", 0, 4) == (0, 0)
        assert parse_digits("20", 0, 4) == (0, 0)

    def test_parse_digits_open_width(self):
        """Test digit runs ending at the first non-digit."""
        assert parse_digits("12:EST", 0) == (12, 2)
        assert parse_digits(":EST", 0) == (0, 0)


class TestParseNumber:
    """Test decimal decoding."""

    def test_signed_decimal_with_whitespace(self):
        """Test surrounding whitespace and a negative sign."""
        assert parse_number("  -12.50 ") == -12.5

    @pytest.mark.parametrize("text,expected", [
        ("0", 0.0),
        ("42", 42.0),
        ("+7.25", 7.25),
        ("1000.00", 1000.0),
        (".5", 0.5),
        ("12.", 12.0),
        ("\t3\n", 3.0),
        ("-0.001", -0.001),
    ])
    def test_valid_numbers(self, text, expected):
        """Test a range of accepted spellings."""
        assert parse_number(text) == pytest.approx(expected)

    def test_second_decimal_point_fails(self):
        """Test that two decimal points are rejected."""
        with pytest.raises(LeafDecodeError, match="as a number"):
            parse_number("12.5.3")

    def test_overflow_fails(self):
        """Test the 64-bit accumulator overflow guard."""
        with pytest.raises(LeafDecodeError):
            parse_number("99999999999999999999")

    @pytest.mark.parametrize("text", [
        "27670116110564327420",
        "18446744073709551616",
        "-27670116110564327420",
        "2767011611056432742.0",
    ])
    def test_overflow_without_wrapping_below(self, text):
        """Test overflow is caught even when the wrapped value would grow."""
        with pytest.raises(LeafDecodeError, match="as a number"):
            parse_number(text)

    def test_largest_unsigned_value_accepted(self):
        """Test the top of the 64-bit range still decodes."""
        assert parse_number("18446744073709551615") == pytest.approx(1.8446744073709552e19)

    def test_largest_accumulator_value_accepted(self):
        """Test nineteen nines still fit."""
        assert parse_number("9999999999999999999") == pytest.approx(1e19)

    @pytest.mark.parametrize("text", ["", "   ", "-", "+", "1e5", "12 3", "abc", "$5", "--1"])
    def test_invalid_numbers(self, text):
        """Test rejected inputs."""
        with pytest.raises(LeafDecodeError):
            parse_number(text)

    def test_error_is_value_error(self):
        """Test that decode failures are also ValueErrors."""
        with pytest.raises(ValueError):
            parse_number("x")

    def test_error_carries_text(self):
        """Test the error records the offending text and kind."""
        with pytest.raises(LeafDecodeError) as exc_info:
            parse_number("12.5.3")
        assert exc_info.value.text == "12.5.3"
        assert exc_info.value.kind == "number"
        assert exc_info.value.tag is None


class TestParseBool:
    """Test Y/N flag decoding."""

    @pytest.mark.parametrize("text,expected", [
        ("y", True),
        ("Y", True),
        ("N  ", False),
        ("n", False),
        ("  Y\n", True),
    ])
    def test_valid_flags(self, text, expected):
        """Test accepted flags are case-insensitive and whitespace tolerant."""
        assert parse_bool(text) is expected

    @pytest.mark.parametrize("text", ["yes", "", "  ", "T", "1", "N o"])
    def test_invalid_flags(self, text):
        """Test rejected flags."""
        with pytest.raises(LeafDecodeError, match="as a boolean"):
            parse_bool(text)
