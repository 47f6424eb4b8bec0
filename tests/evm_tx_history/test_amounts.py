"""
Amount Conversion Tests.

Exact integer-to-decimal rendering for wei and token amounts, plus the
float-approximation fallback.
"""

import pytest

from evm_tx_history.amounts import (
    approximate_to_decimal_string,
    hex_to_decimal_string,
    parse_decimals,
    parse_hex_int,
    strip_trailing_zeros,
    to_decimal_string,
)


class TestToDecimalString:
    """Tests for to_decimal_string / hex_to_decimal_string."""

    def test_one_ether(self):
        assert hex_to_decimal_string("0xde0b6b3a7640000", 18) == "1"

    def test_zero(self):
        assert hex_to_decimal_string("0x0", 18) == "0"
        assert to_decimal_string(0, 6) == "0"
        assert to_decimal_string(0, 0) == "0"

    def test_six_decimals(self):
        assert to_decimal_string(1500000, 6) == "1.5"

    def test_single_wei(self):
        assert to_decimal_string(1, 18) == "0.000000000000000001"

    def test_whole_number_keeps_integer_zeros(self):
        """100 ETH must not lose the zeros of its integer part."""
        assert to_decimal_string(100 * 10**18, 18) == "100"

    def test_zero_decimals(self):
        assert to_decimal_string(123, 0) == "123"

    def test_beyond_uint64_is_exact(self):
        raw = 2**256 - 1
        result = to_decimal_string(raw, 18)

        assert "e" not in result.lower()
        assert result.replace(".", "") == str(raw)
        assert result.index(".") == len(str(raw)) - 18

    def test_absent_hex_is_zero(self):
        assert hex_to_decimal_string(None, 18) == "0"
        assert hex_to_decimal_string("", 6) == "0"

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValueError):
            to_decimal_string(1, -1)


class TestHexParsing:
    """Tests for hex field decoding."""

    def test_parse_hex_int(self):
        assert parse_hex_int("0xff") == 255
        assert parse_hex_int("0XFF") == 255
        assert parse_hex_int("0x") == 0

    def test_parse_hex_int_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_hex_int("0xzz")
        with pytest.raises(ValueError):
            parse_hex_int(12)

    def test_parse_decimals_default(self):
        assert parse_decimals(None) == 18
        assert parse_decimals("") == 18

    def test_parse_decimals_hex(self):
        assert parse_decimals("0x6") == 6
        assert parse_decimals("0x12") == 18

    def test_parse_decimals_out_of_range(self):
        with pytest.raises(ValueError):
            parse_decimals("0x1000")


class TestApproximation:
    """Tests for the float fallback path."""

    def test_strip_trailing_zeros(self):
        assert strip_trailing_zeros("1.500") == "1.5"
        assert strip_trailing_zeros("2.0") == "2"
        assert strip_trailing_zeros("100") == "100"
        assert strip_trailing_zeros("0.000") == "0"

    def test_simple_float(self):
        assert approximate_to_decimal_string(0.25) == "0.25"

    def test_whole_float(self):
        assert approximate_to_decimal_string(2.0) == "2"
        assert approximate_to_decimal_string(100) == "100"

    def test_small_float_has_no_exponent(self):
        assert approximate_to_decimal_string(1e-05) == "0.00001"

    def test_large_float_has_no_exponent(self):
        assert approximate_to_decimal_string(1e20) == "100000000000000000000"

    def test_absent_or_zero(self):
        assert approximate_to_decimal_string(None) == "0"
        assert approximate_to_decimal_string(0.0) == "0"

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError):
            approximate_to_decimal_string(float("nan"))
