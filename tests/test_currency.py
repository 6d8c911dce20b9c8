"""
Test suite for currency module

Tests Decimal money arithmetic, rounding and user input coercion.
"""

import pytest
from decimal import Decimal

from secure_bank.currency import Money, Currency, decimal_from_string, parse_amount, to_money


class TestMoney:
    """Test Money value object"""

    def test_rounds_half_up_to_minor_unit(self):
        assert Money(Decimal('10.005'), Currency.INR).amount == Decimal('10.01')
        assert Money(Decimal('10.004'), Currency.INR).amount == Decimal('10.00')
        assert Money(Decimal('99.5'), Currency.JPY).amount == Decimal('100')

    def test_non_decimal_amount_is_converted(self):
        money = Money(100, Currency.INR)
        assert isinstance(money.amount, Decimal)
        assert money.amount == Decimal('100.00')

    def test_addition_and_subtraction(self):
        a = Money(Decimal('500.00'), Currency.INR)
        b = Money(Decimal('200.00'), Currency.INR)

        assert a + b == Money(Decimal('700.00'), Currency.INR)
        assert a - b == Money(Decimal('300.00'), Currency.INR)

    def test_repeated_fractional_operations_stay_exact(self):
        total = Money.zero(Currency.INR)
        for _ in range(10):
            total = total + Money(Decimal('0.10'), Currency.INR)
        assert total == Money(Decimal('1.00'), Currency.INR)

    def test_currency_mismatch_raises(self):
        inr = Money(Decimal('1'), Currency.INR)
        usd = Money(Decimal('1'), Currency.USD)

        with pytest.raises(ValueError, match="Cannot add"):
            inr + usd
        with pytest.raises(ValueError, match="Cannot compare"):
            inr < usd

    def test_comparisons(self):
        small = Money(Decimal('99.99'), Currency.INR)
        large = Money(Decimal('100.00'), Currency.INR)

        assert small < large
        assert large >= small
        assert not small > large

    def test_sign_helpers(self):
        assert Money.zero(Currency.INR).is_zero()
        assert Money(Decimal('1'), Currency.INR).is_positive()
        assert (-Money(Decimal('1'), Currency.INR)).is_negative()

    def test_formatting(self):
        money = Money(Decimal('1250.5'), Currency.INR)
        assert money.to_string() == "INR 1,250.50"
        assert money.to_plain() == "1250.50"


class TestInputCoercion:
    """Test conversion of user input to Money"""

    def test_decimal_from_string_formats(self):
        assert decimal_from_string("100") == Decimal('100')
        assert decimal_from_string("₹1,250.50") == Decimal('1250.50')
        assert decimal_from_string("12,5") == Decimal('12.5')

    def test_decimal_from_string_rejects_garbage(self):
        with pytest.raises(ValueError):
            decimal_from_string("abc")
        with pytest.raises(ValueError):
            decimal_from_string("")

    @pytest.mark.parametrize("value", ["abc100", "12abc", "100 200", "1,2,3", "10.5.1", "1_000", "--5", "Infinity"])
    def test_decimal_from_string_rejects_leftover_characters(self, value):
        with pytest.raises(ValueError):
            decimal_from_string(value)

    def test_decimal_from_string_reads_exponents_and_signs(self):
        assert decimal_from_string("1e3") == Decimal('1000')
        assert decimal_from_string("-10") == Decimal('-10')
        assert decimal_from_string("  $1,000  ") == Decimal('1000')

    def test_parse_amount_keeps_unrounded_value(self):
        assert parse_amount("99.995") == Decimal('99.995')
        assert to_money("99.995", Currency.INR).amount == Decimal('100.00')

    def test_to_money_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            to_money("1e999999", Currency.INR)

    def test_to_money_accepts_numbers(self):
        assert to_money(100, Currency.INR).amount == Decimal('100.00')
        assert to_money(0.1, Currency.INR).amount == Decimal('0.10')
        assert to_money("250.75", Currency.INR).amount == Decimal('250.75')
        assert to_money(Decimal('5'), Currency.INR).amount == Decimal('5.00')

    def test_to_money_rejects_bool_and_non_finite(self):
        with pytest.raises(ValueError):
            to_money(True, Currency.INR)
        with pytest.raises(ValueError):
            to_money(float('nan'), Currency.INR)
        with pytest.raises(ValueError):
            to_money(float('inf'), Currency.INR)
        with pytest.raises(ValueError):
            to_money(None, Currency.INR)

    def test_to_money_checks_currency(self):
        usd = Money(Decimal('10'), Currency.USD)
        with pytest.raises(ValueError, match="Expected INR"):
            to_money(usd, Currency.INR)
        assert to_money(usd, Currency.USD) is usd
