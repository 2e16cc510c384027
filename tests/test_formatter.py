"""
Tests for rupee display formatting.
"""

from decimal import Decimal

import pytest

from finplan.formatter import format_amounts, format_currency, group_indian_digits


@pytest.mark.parametrize(
    "digits,expected",
    [
        ("7", "7"),
        ("123", "123"),
        ("1234", "1,234"),
        ("99999", "99,999"),
        ("1234567", "12,34,567"),
        ("12345678", "1,23,45,678"),
    ],
)
def test_group_indian_digits(digits, expected):
    assert group_indian_digits(digits) == expected


@pytest.mark.parametrize(
    "amount,expected",
    [
        (Decimal("12500000"), "₹1.25Cr"),
        (Decimal("10000000"), "₹1.00Cr"),
        (Decimal("250000"), "₹2.50L"),
        (Decimal("100000"), "₹1.00L"),
        (Decimal("99999"), "₹99,999"),
        (Decimal("1234.5"), "₹1,235"),
        (Decimal("0"), "₹0"),
        (Decimal("-250000"), "-₹2.50L"),
        (Decimal("-0.4"), "₹0"),
        (8678.23, "₹8,678"),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_format_amounts_skips_missing_values():
    values = {"installment": Decimal("8678.23"), "total_interest": None, "months": 240}
    assert format_amounts(values, ("installment", "total_interest")) == {"installment": "₹8,678"}
