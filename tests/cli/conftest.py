"""Model builders for CLI tests. Services are always MagicMocks here."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from clinicbill.models.billing import Discount, SessionBilling
from clinicbill.models.details import InvoiceDetails, PaymentDetails, SessionBillingDetails
from clinicbill.models.invoice import Invoice
from clinicbill.models.payment import Payment, PaymentType
from clinicbill.models.session import ClinicalSession, ConsultationCharge, SessionStatus
from clinicbill.models.user import UserRef, UserRole


@pytest.fixture()
def billing_details():
    def _make(price=Decimal("150.00"), discount=None) -> SessionBillingDetails:
        session = ClinicalSession(
            id=uuid4(),
            patient_id=uuid4(),
            status=SessionStatus.COMPLETED,
            consultations=[
                ConsultationCharge(consultation_id=uuid4(), name="Cardiology", price=price),
                ConsultationCharge(consultation_id=uuid4(), name="Follow-up", price=None),
            ],
        )
        discounts = [Discount(amount=discount, reason="courtesy", applied_by=uuid4())] if discount else []
        return SessionBillingDetails(billing=SessionBilling(session_id=session.id, discounts=discounts), session=session)

    return _make


@pytest.fixture()
def invoice_details(billing_details):
    def _make(number="INV-0001", is_proforma=False, payments=()) -> InvoiceDetails:
        billing = billing_details()
        invoice = Invoice(
            invoice_number=number,
            invoice_date=date(2026, 10, 19),
            generated_by=uuid4(),
            is_proforma=is_proforma,
            session_billing_ids=[billing.id],
        )
        return InvoiceDetails(invoice=invoice, billings=[billing], payments=list(payments))

    return _make


@pytest.fixture()
def payment_details(invoice_details):
    def _make(amount=Decimal("50.00"), notes=None) -> PaymentDetails:
        invoice = invoice_details()
        payment = Payment(
            invoice_ids=[invoice.id],
            generated_by=uuid4(),
            amount=amount,
            payment_date=datetime(2026, 10, 19, 11, 30),
            payment_type=PaymentType.CARD,
            notes=notes,
        )
        return PaymentDetails(payment=payment, invoices=[invoice])

    return _make


@pytest.fixture()
def clerk() -> UserRef:
    return UserRef(id=uuid4(), username="reception", full_name="Front Desk", role=UserRole.RECEPTIONIST)


@pytest.fixture(autouse=True)
def _wide_console(monkeypatch):
    # Rich wraps table cells at 80 columns when output is captured.
    from rich.console import Console

    console = Console(width=200)
    for module in ("prompts", "billing_menu", "invoice_menu", "payment_menu", "audit_menu", "app"):
        monkeypatch.setattr(f"clinicbill.cli.{module}.console", console)
