"""Input checks shared by the billing services. Each raises ValidationError."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TypeVar

from clinicbill.errors import ValidationError
from clinicbill.money import has_valid_precision, quantize

T = TypeVar("T")


def require(value: T | None, message: str) -> T:
    if value is None:
        raise ValidationError(message)
    return value


def require_text(value: str | None, message: str) -> str:
    """Return ``value`` stripped, rejecting None and blank strings."""
    if value is None or not value.strip():
        raise ValidationError(message)
    return value.strip()


def require_amount(value: Decimal | int | str | None, label: str) -> Decimal:
    """Return a positive amount quantized to cents.

    ``label`` names the amount in error messages, e.g. "Payment amount".
    """
    if value is None:
        raise ValidationError(f"{label} is required")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError(f"{label} is not a valid number") from exc
    if not has_valid_precision(amount):
        raise ValidationError(f"{label} must have at most two decimal places")
    if amount <= 0:
        raise ValidationError(f"{label} must be positive")
    return quantize(amount)
