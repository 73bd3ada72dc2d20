"""
Billing domain events.

Immutable records of what a billing operation changed. Services append them
to an ``EventOutbox`` once their unit of work has committed; an
``EventDispatcher`` delivers them to subscribers later.

Events carry ids and amounts as they were at commit time, so handlers do not
need to re-read the aggregates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from clinicbill.models.payment import PaymentType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class BillingEvent:
    """Base class for all billing events."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=_utcnow)

    @property
    def event_type(self) -> str:
        return self.__class__.__name__


# =============================================================================
# INBOUND
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class SessionCompleted(BillingEvent):
    """Published by the scheduling side when a session is closed."""

    session_id: UUID


# =============================================================================
# SESSION BILLING
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class SessionBillingCalculated(BillingEvent):
    billing_id: UUID
    session_id: UUID
    patient_id: UUID
    subtotal: Decimal
    final: Decimal
    consultation_names: tuple[str, ...] = ()


@dataclass(frozen=True, kw_only=True)
class ManualDiscountApplied(BillingEvent):
    billing_id: UUID
    session_id: UUID
    amount: Decimal
    reason: str
    applied_by_user_id: UUID


# =============================================================================
# INVOICE
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class InvoiceCreated(BillingEvent):
    invoice_id: UUID
    invoice_number: str
    invoice_date: date
    generated_by_user_id: UUID
    is_proforma: bool
    session_billing_ids: tuple[UUID, ...]
    total_amount: Decimal


@dataclass(frozen=True, kw_only=True)
class InvoiceConvertedToFinal(BillingEvent):
    invoice_id: UUID
    old_number: str
    new_number: str


# =============================================================================
# PAYMENT
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class PaymentProcessed(BillingEvent):
    payment_id: UUID
    invoice_ids: tuple[UUID, ...]
    amount: Decimal
    payment_type: PaymentType
    patient_ids: tuple[UUID, ...] = ()
