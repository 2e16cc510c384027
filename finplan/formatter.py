"""Display helpers for rupee amounts.

Amounts of a crore or more are shown as ``₹1.25Cr``, amounts of a lakh or more
as ``₹12.50L`` and smaller amounts in full with Indian digit grouping
(``₹99,999``). Formatting only ever happens on the way out; engine values are
never rounded for display.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable

from .utils import Number, to_decimal

RUPEE = "₹"
CRORE = Decimal("10000000")
LAKH = Decimal("100000")
TWO_PLACES = Decimal("0.01")


def group_indian_digits(digits: str) -> str:
    """Insert separators the Indian way: ``1234567`` becomes ``12,34,567``.

    The last three digits form one group and every two digits before that
    form another.
    """
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_currency(amount: Number) -> str:
    """Format ``amount`` in rupees using lakh/crore shorthand for large values."""
    value = to_decimal(amount)
    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= CRORE:
        crores = (magnitude / CRORE).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        return f"{sign}{RUPEE}{crores}Cr"
    if magnitude >= LAKH:
        lakhs = (magnitude / LAKH).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        return f"{sign}{RUPEE}{lakhs}L"
    rupees = magnitude.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if rupees == 0:
        sign = ""
    return f"{sign}{RUPEE}{group_indian_digits(str(int(rupees)))}"


def format_amounts(values: Dict[str, object], keys: Iterable[str]) -> Dict[str, str]:
    """Formatted copies of the monetary entries ``keys`` of ``values``."""
    return {key: format_currency(values[key]) for key in keys if values.get(key) is not None}
