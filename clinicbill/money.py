"""Decimal money helpers.

Amounts are ``Decimal`` with two decimal places in memory and integer cents
in the database.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(amount: Decimal | int | str) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def has_valid_precision(amount: Decimal) -> bool:
    """True when ``amount`` is finite and has at most two decimal places."""
    if not amount.is_finite():
        return False
    try:
        return amount == amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits to carry cents in the decimal context.
        return False


def to_cents(amount: Decimal) -> int:
    return int((quantize(amount) * 100).to_integral_value())


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_money(amount: Decimal, currency: str = "") -> str:
    """Format as ``1,234.50 RON``."""
    text = f"{quantize(amount):,.2f}"
    return f"{text} {currency}".strip()


def parse_money(value: str) -> Decimal | None:
    """Parse user input such as ``1234.50`` or ``1,234.50``. Returns None if invalid."""
    value = value.strip().replace(",", "")
    if not value:
        return None
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    if not has_valid_precision(amount):
        return None
    return quantize(amount)
