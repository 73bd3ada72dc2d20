"""Payment status derivation shared by invoices and session billings.

Refund payments are left out of the paid total entirely: they neither add to
nor subtract from what has been paid.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from clinicbill.models.invoice import PaymentStatus
from clinicbill.models.payment import Payment
from clinicbill.money import ZERO, quantize


def total_paid(payments: Iterable[Payment]) -> Decimal:
    return quantize(sum((p.amount for p in payments if not p.is_refund), ZERO))


def status(total_owed: Decimal, paid_so_far: Decimal, is_proforma: bool = False) -> PaymentStatus:
    if is_proforma:
        return PaymentStatus.PENDING
    if paid_so_far <= 0:
        return PaymentStatus.PENDING
    if paid_so_far >= total_owed:
        return PaymentStatus.FULLY_PAID
    return PaymentStatus.PARTIALLY_PAID
