"""Rupee amounts in words, Indian numbering system (lakh, crore)."""

from decimal import Decimal, ROUND_DOWN

from core.money import to_decimal

_ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
_TEENS = [
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen",
    "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# Largest group first
_GROUPS = [
    (10_000_000, "Crore"),
    (100_000, "Lakh"),
    (1_000, "Thousand"),
]

_SUFFIX = "Rupees Only"


def _below_thousand(n: int) -> list[str]:
    """Words for 0..999. Zero yields no words."""
    words = []
    if n >= 100:
        words += [_ONES[n // 100], "Hundred"]
        n %= 100
    if n >= 20:
        words.append(_TENS[n // 10])
        n %= 10
    elif n >= 10:
        words.append(_TEENS[n - 10])
        return words
    if n > 0:
        words.append(_ONES[n])
    return words


def _integer_words(n: int) -> list[str]:
    words = []
    for size, name in _GROUPS:
        if n >= size:
            count = n // size
            # Above 99 crore the crore count itself is spelled recursively
            words += _integer_words(count) if count >= 1000 else _below_thousand(count)
            words.append(name)
            n %= size
    words += _below_thousand(n)
    return words


def to_words(amount) -> str:
    """
    Spell a rupee amount, e.g. 144507 -> "One Lakh Forty Four Thousand Five
    Hundred Seven Rupees Only".

    Only whole rupees are spoken; paise are truncated.

    Raises:
        ValueError: If amount is negative or not a number
    """
    value = to_decimal(amount)
    if value < 0:
        raise ValueError("Amount must not be negative")

    rupees = int(value.quantize(Decimal("1"), rounding=ROUND_DOWN))
    if rupees == 0:
        return f"Zero {_SUFFIX}"

    return " ".join(_integer_words(rupees) + [_SUFFIX])
