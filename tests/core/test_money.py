"""Tests for Decimal money helpers."""

import pytest
from decimal import Decimal


class TestToDecimal:
    """Tests for to_decimal coercion."""

    def test_numeric_strings(self):
        from core.money import to_decimal

        assert to_decimal("100") == Decimal("100")
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_float_goes_through_str(self):
        """0.1 stays 0.1, not its binary expansion."""
        from core.money import to_decimal

        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_decimal_pass_through(self):
        from core.money import to_decimal

        assert to_decimal(5) == Decimal("5")
        assert to_decimal(Decimal("7.25")) == Decimal("7.25")

    @pytest.mark.parametrize("value", [None, True, False, "", "   ", "abc", "1,000", [], {}])
    def test_rejects_non_numbers(self, value):
        from core.money import to_decimal

        with pytest.raises(ValueError):
            to_decimal(value)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity", float("inf")])
    def test_rejects_non_finite(self, value):
        from core.money import to_decimal

        with pytest.raises(ValueError):
            to_decimal(value)


class TestRounding:
    """Tests for round_paise and ceil_rupee."""

    def test_round_paise_half_up(self):
        from core.money import round_paise

        assert round_paise(Decimal("0.125")) == Decimal("0.13")
        assert round_paise(Decimal("0.124")) == Decimal("0.12")
        assert round_paise(Decimal("10")) == Decimal("10.00")

    def test_ceil_rupee_rounds_fractions_up(self):
        from core.money import ceil_rupee

        assert ceil_rupee(Decimal("236.37")) == Decimal("237.00")
        assert ceil_rupee(Decimal("236.01")) == Decimal("237.00")

    def test_ceil_rupee_keeps_whole_amounts(self):
        from core.money import ceil_rupee

        assert ceil_rupee(Decimal("236.00")) == Decimal("236.00")
        assert ceil_rupee(Decimal("0.00")) == Decimal("0.00")
