"""Read-side aggregates.

Each details model bundles an aggregate with the relationships it needs,
fetched explicitly by a service, and derives amounts from them on every access.
Nothing here loads data on its own.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from clinicbill import calculator, payment_status
from clinicbill.models.billing import SessionBilling
from clinicbill.models.invoice import Invoice, PaymentStatus
from clinicbill.models.payment import Payment
from clinicbill.models.session import ClinicalSession
from clinicbill.money import ZERO, quantize


class SessionBillingDetails(BaseModel):
    billing: SessionBilling
    session: ClinicalSession

    @property
    def id(self) -> UUID:
        return self.billing.id

    @property
    def session_id(self) -> UUID:
        return self.billing.session_id

    @property
    def patient_id(self) -> UUID:
        return self.session.patient_id

    @property
    def subtotal_amount(self) -> Decimal:
        return calculator.subtotal(self.session.consultations)

    @property
    def total_discount_amount(self) -> Decimal:
        return calculator.total_discount(self.billing.discounts)

    @property
    def final_amount(self) -> Decimal:
        return self.subtotal_amount - self.total_discount_amount


class InvoiceDetails(BaseModel):
    invoice: Invoice
    billings: list[SessionBillingDetails] = []
    payments: list[Payment] = []

    @property
    def id(self) -> UUID:
        return self.invoice.id

    @property
    def invoice_number(self) -> str:
        return self.invoice.invoice_number

    @property
    def is_proforma(self) -> bool:
        return self.invoice.is_proforma

    @property
    def total_amount(self) -> Decimal:
        return quantize(sum((b.final_amount for b in self.billings), ZERO))

    @property
    def total_paid(self) -> Decimal:
        return payment_status.total_paid(self.payments)

    @property
    def outstanding_amount(self) -> Decimal:
        return self.total_amount - self.total_paid

    @property
    def payment_status(self) -> PaymentStatus:
        return payment_status.status(self.total_amount, self.total_paid, self.invoice.is_proforma)


class PaymentDetails(BaseModel):
    payment: Payment
    invoices: list[InvoiceDetails] = []

    @property
    def id(self) -> UUID:
        return self.payment.id

    @property
    def session_ids(self) -> list[UUID]:
        seen: dict[UUID, None] = {}
        for invoice in self.invoices:
            for billing in invoice.billings:
                seen.setdefault(billing.session_id, None)
        return list(seen)

    @property
    def patient_ids(self) -> list[UUID]:
        seen: dict[UUID, None] = {}
        for invoice in self.invoices:
            for billing in invoice.billings:
                seen.setdefault(billing.patient_id, None)
        return list(seen)
