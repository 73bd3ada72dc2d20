from datetime import date

import pytest

from clinicbill.services.billing_service import BillingService
from clinicbill.services.invoice_service import InvoiceService
from clinicbill.services.payment_service import PaymentService


@pytest.fixture()
def billing_service(billing_repo, invoice_repo, payment_repo, session_provider, user_directory, outbox):
    return BillingService(billing_repo, invoice_repo, payment_repo, session_provider, user_directory, outbox)


@pytest.fixture()
def invoice_service(billing_repo, invoice_repo, payment_repo, session_provider, user_directory, outbox):
    return InvoiceService(invoice_repo, billing_repo, payment_repo, session_provider, user_directory, outbox)


@pytest.fixture()
def payment_service(billing_repo, invoice_repo, payment_repo, session_provider, user_directory, outbox):
    return PaymentService(
        payment_repo,
        invoice_repo,
        billing_repo,
        session_provider,
        user_directory,
        outbox,
        strict_outstanding_check=False,
        currency="RON",
    )


@pytest.fixture()
def billed_session(billing_service, make_session):
    """Create a completed session with the given prices and bill it. Returns the billing details."""

    def _make(**kwargs):
        session_id = make_session(**kwargs)
        return billing_service.create_session_billing(session_id).unwrap()

    return _make


@pytest.fixture()
def issued_invoice(invoice_service, billed_session, staff_user):
    """Create an invoice over freshly billed sessions. Returns the invoice details."""

    def _make(invoice_number="INV-0001", is_proforma=False, billings=None, invoice_date=date(2026, 10, 19)):
        billings = billings or [billed_session()]
        return invoice_service.create_invoice(
            invoice_number,
            invoice_date,
            staff_user,
            is_proforma,
            [b.id for b in billings],
        ).unwrap()

    return _make
