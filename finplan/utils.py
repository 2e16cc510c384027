"""Utility functions for the planning engine.

This module provides helpers for turning user input into ``Decimal`` values
(including the lakh/crore shorthand common in rupee amounts), dividing safely
when a denominator may be zero, and deciding on which months a recurring
payment falls.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, getcontext
from typing import Union

from .errors import InvalidParameters

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

logger = logging.getLogger(__name__)

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWELVE = Decimal("12")

AMOUNT_SUFFIXES = (
    ("crore", Decimal("10000000")),
    ("lakh", Decimal("100000")),
    ("cr", Decimal("10000000")),
    ("k", Decimal("1000")),
    ("l", Decimal("100000")),
    ("m", Decimal("1000000")),
)


def to_decimal(value: Number) -> Decimal:
    """Convert ``value`` into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary approximation. NaN and infinities are rejected
    with ``InvalidParameters`` whatever the input type.
    """
    if isinstance(value, bool):
        raise InvalidParameters(f"Invalid numeric value: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        return decimal_from_str(str(value))
    if not result.is_finite():
        raise InvalidParameters(f"Invalid numeric value: {value}")
    return result


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``InvalidParameters`` if conversion fails or the value is not finite.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise InvalidParameters(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise InvalidParameters(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: Number) -> Decimal:
    """Parse a rupee amount with optional shorthand suffixes.

    Accepts plain numbers ("500000"), Indian digit grouping ("5,00,000") and
    suffixes: ``k`` (thousand), ``L``/``lakh`` (1,00,000), ``Cr``/``crore``
    (1,00,00,000) and ``m`` (million). A leading rupee sign is ignored.
    """
    if not isinstance(value, str):
        return to_decimal(value)
    text = value.strip().lower().replace("₹", "").replace(",", "").strip()
    factor = Decimal("1")
    for suffix, multiplier in AMOUNT_SUFFIXES:
        if text.endswith(suffix):
            factor = multiplier
            text = text[: -len(suffix)].strip()
            break
    if not text:
        raise InvalidParameters(f"Invalid amount: {value}")
    return decimal_from_str(text) * factor


def parse_percent(value: Number) -> Decimal:
    """Parse a percentage such as "8.5" or "8.5%" into ``Decimal("8.5")``.

    Unlike fractional shares, rates in this tool are always expressed in
    percent, so "0.5" means half a percent.
    """
    if not isinstance(value, str):
        return to_decimal(value)
    text = value.strip()
    if text.endswith("%"):
        text = text[:-1]
    if not text.strip():
        raise InvalidParameters(f"Invalid percentage: {value}")
    return decimal_from_str(text)


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Nominal monthly rate: ``annual / 12 / 100``."""
    return annual_rate_percent / TWELVE / HUNDRED


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Return ``numerator / denominator`` or zero when the denominator is zero."""
    if denominator == 0:
        return ZERO
    return numerator / denominator


def finite_or_zero(value: Decimal, label: str) -> Decimal:
    """Normalize NaN/Infinity to zero, logging the degenerate computation."""
    if value.is_finite():
        return value
    logger.warning("Non-finite %s normalized to 0", label)
    return ZERO


def is_payment_month(month: int, start_month: int, interval: int) -> bool:
    """Return True when a recurring payment falls on ``month``.

    Payments recur every ``interval`` months counted from ``start_month``
    (inclusive). Months before ``start_month`` never carry a payment.
    """
    if month < start_month:
        return False
    return (month - start_month) % interval == 0
