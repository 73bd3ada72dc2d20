from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class Discount(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal
    reason: str
    applied_by: UUID
    created_at: datetime | None = None


class SessionBilling(BaseModel):
    """One billing record per completed session.

    Amounts are not stored: the subtotal comes from the session's consultations
    at read time, see ``SessionBillingDetails``.
    """

    id: UUID = Field(default_factory=uuid4)
    session_id: UUID
    discounts: list[Discount] = []
    version: int = 0
    created_at: datetime | None = None
