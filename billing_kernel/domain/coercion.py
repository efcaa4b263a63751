"""
Coercion of form-entered amounts and quantities.

Line items arrive from admin forms as strings or numbers. These helpers
apply the same lenient parsing the forms apply while the user types, so the
engine computes exactly what the screen showed:

    parse_amount("$1,250.50")  -> Decimal("1250.50")
    parse_amount("1.2.3")      -> Decimal("1.23")
    parse_amount("")           -> Decimal("0")
    parse_quantity("3 units")  -> 3
    parse_quantity("")         -> 1

Numbers passed directly (not strings) are held to the stricter Money rules:
a non-finite number is an error, not a silent zero.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from billing_kernel.domain.values import to_decimal

_NON_AMOUNT_CHARS = re.compile(r"[^0-9.]")
_NON_DIGIT_CHARS = re.compile(r"[^0-9]")

DEFAULT_QUANTITY = 1


def normalize_amount_text(text: str) -> str:
    """Keep digits and the first decimal point; later points are dropped."""
    cleaned = _NON_AMOUNT_CHARS.sub("", text)
    head, sep, tail = cleaned.partition(".")
    return head + sep + tail.replace(".", "")


def parse_amount(value: Any) -> Decimal:
    """
    Coerce a form value into a Decimal amount.

    Strings are cleaned with normalize_amount_text; anything left that does
    not parse (empty string, a lone ".") is zero. None is zero.

    Raises:
        InvalidAmountError: For non-finite numbers or unsupported types.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, str):
        text = normalize_amount_text(value)
        try:
            return Decimal(text)
        except InvalidOperation:
            return Decimal("0")
    return to_decimal(value)


def parse_quantity(value: Any) -> int:
    """
    Coerce a form value into a non-negative integer quantity.

    Strings keep only their digits. Missing, empty, negative, fractional or
    otherwise unusable values become DEFAULT_QUANTITY.
    """
    if value is None or isinstance(value, bool):
        return DEFAULT_QUANTITY
    if isinstance(value, str):
        digits = _NON_DIGIT_CHARS.sub("", value)
        return int(digits) if digits else DEFAULT_QUANTITY
    if isinstance(value, int):
        return value if value >= 0 else DEFAULT_QUANTITY
    if isinstance(value, (float, Decimal)):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return DEFAULT_QUANTITY
        if number.is_finite() and number >= 0 and number == number.to_integral_value():
            return int(number)
    return DEFAULT_QUANTITY
