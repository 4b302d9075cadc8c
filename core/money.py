"""Decimal helpers for rupee amounts.

Amounts are Decimal end to end. Floats are only accepted at the input
boundary and converted through str() so 0.1 stays 0.1.
"""

from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_HALF_UP

PAISE = Decimal("0.01")
RUPEE = Decimal("1")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    """
    Coerce a request value to Decimal.

    Raises ValueError for anything that is not a finite number: None,
    booleans, blank strings, non-numeric strings, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("must be a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("must be a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"'{value}' is not a number")
    else:
        raise ValueError("must be a number")

    if not result.is_finite():
        raise ValueError("must be a finite number")
    return result


def round_paise(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return amount.quantize(PAISE, rounding=ROUND_HALF_UP)


def ceil_rupee(amount: Decimal) -> Decimal:
    """Smallest whole rupee >= amount, kept at paise precision."""
    return amount.quantize(RUPEE, rounding=ROUND_CEILING).quantize(PAISE)
