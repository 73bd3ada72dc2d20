"""Session charge calculation."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from clinicbill.models.billing import Discount
from clinicbill.models.session import ConsultationCharge
from clinicbill.money import ZERO, quantize


def subtotal(consultations: Iterable[ConsultationCharge]) -> Decimal:
    """Sum consultation prices. A consultation without a price counts as zero."""
    return quantize(sum((c.price for c in consultations if c.price is not None), ZERO))


def total_discount(discounts: Iterable[Discount]) -> Decimal:
    return quantize(sum((d.amount for d in discounts), ZERO))
