from decimal import Decimal

import pytest

from clinicbill.models.billing import SessionBilling
from clinicbill.models.invoice import Invoice


@pytest.fixture()
def stored_billing(billing_repo, make_session):
    """Create a billing for a fresh completed session (100.00 + 50.00)."""

    def _make(prices=(Decimal("100.00"), Decimal("50.00"))) -> SessionBilling:
        return billing_repo.create(SessionBilling(session_id=make_session(prices=prices)))

    return _make


@pytest.fixture()
def stored_invoice(invoice_repo, stored_billing, staff_user):
    def _make(invoice_number: str = "INV-0001", is_proforma: bool = False, billings=None) -> Invoice:
        billings = billings or [stored_billing()]
        return invoice_repo.create(
            Invoice(
                invoice_number=invoice_number,
                invoice_date="2026-10-19",
                generated_by=staff_user,
                is_proforma=is_proforma,
                session_billing_ids=[b.id for b in billings],
            )
        )

    return _make
