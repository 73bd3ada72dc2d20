from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from clinicbill.settings import settings


class PaymentType(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    INSURANCE = "INSURANCE"
    REFUND = "REFUND"


class Payment(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    invoice_ids: list[UUID] = []
    generated_by: UUID
    amount: Decimal
    currency: str = Field(default_factory=lambda: settings.currency)
    payment_date: datetime
    payment_type: PaymentType
    notes: str | None = None
    created_at: datetime | None = None

    @property
    def is_refund(self) -> bool:
        return self.payment_type == PaymentType.REFUND
