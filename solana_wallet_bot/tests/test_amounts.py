"""
Unit tests for amount conversion

Tests core functionality:
1. UI <-> native round trip
2. Percentage of a balance
3. Parsing typed amounts
"""

from decimal import Decimal

import pytest

from solana_wallet_bot.exceptions import InvalidAmount
from solana_wallet_bot.utils.amounts import (
    format_ui_amount,
    parse_ui_amount,
    percentage_of_native,
    to_native,
    to_ui,
)


class TestConversion:
    """Test to_native / to_ui"""

    @pytest.mark.parametrize("native,decimals", [
        (0, 0),
        (1, 9),
        (123456789, 6),
        (18_446_744_073_709_551_615, 9),  # u64 max
        (42, 0),
    ])
    def test_round_trip_is_exact(self, native, decimals):
        """Native -> UI -> native must give back the same integer"""
        assert to_native(to_ui(native, decimals), decimals) == native

    def test_to_native_truncates(self):
        """Digits beyond the token's decimals are dropped, never rounded up"""
        assert to_native(Decimal("1.9999999"), 6) == 1_999_999
        assert to_native("0.0000009", 6) == 0

    def test_float_input_uses_its_repr(self):
        """0.1 as float converts like the string 0.1"""
        assert to_native(0.1, 9) == 100_000_000

    def test_negative_decimals_rejected(self):
        with pytest.raises(InvalidAmount):
            to_ui(1, -1)

    @pytest.mark.parametrize("amount", ["1e999999", Decimal("9e999999"), "NaN", "Infinity"])
    def test_out_of_range_amount_rejected(self, amount):
        """Amounts that cannot be scaled are an InvalidAmount, not a decimal signal"""
        with pytest.raises(InvalidAmount):
            to_native(amount, 9)

    def test_to_ui_value(self):
        assert to_ui(1_500_000, 6) == Decimal("1.5")


class TestPercentage:
    """Test percentage_of_native"""

    def test_hundred_percent_is_exact_total(self):
        assert percentage_of_native(999_999_999_999, 100) == 999_999_999_999

    @pytest.mark.parametrize("total,pct,expected", [
        (1000, 10, 100),
        (1000, 25, 250),
        (1001, 50, 500),
        (7, 10, 0),
        (3, 25, 0),
    ])
    def test_floors(self, total, pct, expected):
        assert percentage_of_native(total, pct) == expected

    def test_never_exceeds_total(self):
        for total in (0, 1, 3, 99, 10**18 + 7):
            for pct in (10, 25, 50, 100):
                assert percentage_of_native(total, pct) <= total

    @pytest.mark.parametrize("pct", [0, -10, 101])
    def test_out_of_range_percentage(self, pct):
        with pytest.raises(InvalidAmount):
            percentage_of_native(100, pct)


class TestParse:
    """Test parse_ui_amount"""

    @pytest.mark.parametrize("text,expected", [
        ("100", Decimal("100")),
        (" 0.5 ", Decimal("0.5")),
        ("1e3", Decimal("1000")),
    ])
    def test_valid(self, text, expected):
        assert parse_ui_amount(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "0", "-1", "NaN", "Infinity", "1,5"])
    def test_invalid(self, text):
        with pytest.raises(InvalidAmount):
            parse_ui_amount(text)

    def test_format_truncates(self):
        assert format_ui_amount(Decimal("1.99999")) == "1.9999"
        assert format_ui_amount(Decimal("1234.5"), 2) == "1234.50"


# Run tests
if __name__ == "__main__":
    pytest.main([__file__, "-v"])
