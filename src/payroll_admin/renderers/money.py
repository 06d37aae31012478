"""Currency formatting for payslip amounts."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

DEFAULT_CURRENCY = "AED"

# Currencies rendered with a symbol instead of the ISO code (en-US conventions).
CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")
_CENTS = Decimal("0.01")
_NBSP = "\u00a0"


def is_number(value: Any) -> bool:
    """True for finite-or-infinite numeric values that are not NaN."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return not value.is_nan()
    if isinstance(value, (int, float)):
        return not math.isnan(value)
    return False


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a numeric value to Decimal, or None when it is not a number."""
    if not is_number(value):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def normalize_currency(currency: str | None) -> str:
    """Uppercase an ISO 4217 code, defaulting to AED.

    Raises:
        ValueError: If the code is not three letters.
    """
    code = (currency or DEFAULT_CURRENCY).strip().upper()
    if not _CURRENCY_CODE.match(code):
        raise ValueError(f"Invalid currency code: {currency!r}")
    return code


def format_money(value: Any, currency: str | None = DEFAULT_CURRENCY) -> str:
    """Format an amount with two fixed decimals and its currency.

    Returns an empty string for null or NaN values. A malformed currency code
    raises ValueError.
    """
    amount = to_decimal(value)
    if amount is None:
        return ""
    code = normalize_currency(currency)

    if amount.is_infinite():
        raise ValueError(f"Cannot format non-finite amount: {value!r}")

    rounded = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    body = f"{abs(rounded):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{code}{_NBSP}{body}"


def is_nonzero(value: Any) -> bool:
    """True when value is a number other than zero."""
    return is_number(value) and value != 0
