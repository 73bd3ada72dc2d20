from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    FULLY_PAID = "FULLY_PAID"


class Invoice(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    invoice_number: str
    invoice_date: date
    generated_by: UUID
    is_proforma: bool = False
    session_billing_ids: list[UUID] = []
    payment_ids: list[UUID] = []
    version: int = 0
    created_at: datetime | None = None

    @property
    def can_convert_to_final(self) -> bool:
        return self.is_proforma and not self.payment_ids
