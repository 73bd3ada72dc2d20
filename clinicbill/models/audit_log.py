from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AuditEventType:
    """String constants for all audit event types."""

    BILLING_CREATE = "billing.create"
    BILLING_DISCOUNT = "billing.discount"

    INVOICE_CREATE = "invoice.create"
    INVOICE_CONVERT = "invoice.convert_to_final"

    PAYMENT_PROCESS = "payment.process"


class AuditLog(BaseModel):
    id: int | None = None
    uuid: str = ""
    event_type: str
    actor_id: str | None = None
    source: str = ""  # 'cli' or the calling application
    entity_type: str = ""
    entity_id: str = ""
    new_state: dict | None = None
    metadata: dict = {}
    created_at: datetime | None = None
