from __future__ import annotations

import logging

from clinicbill.errors import NotFoundError
from clinicbill.models.billing import SessionBilling
from clinicbill.models.details import InvoiceDetails, PaymentDetails, SessionBillingDetails
from clinicbill.models.invoice import Invoice
from clinicbill.models.payment import Payment
from clinicbill.repositories.base import (
    InvoiceRepository,
    PaymentRepository,
    SessionBillingRepository,
    SessionProvider,
)

logger = logging.getLogger(__name__)


class DetailsLoader:
    """Fetches the relationships each read-side details model needs.

    Every edge is loaded explicitly through the repositories, one aggregate
    at a time. A dangling reference raises NotFoundError.
    """

    def __init__(
        self,
        billing_repo: SessionBillingRepository,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        sessions: SessionProvider,
    ) -> None:
        self.billing_repo = billing_repo
        self.invoice_repo = invoice_repo
        self.payment_repo = payment_repo
        self.sessions = sessions

    def billing_details(self, billing: SessionBilling) -> SessionBillingDetails:
        session = self.sessions.get_session(billing.session_id)
        if session is None:
            logger.warning("Session %s missing for billing %s", billing.session_id, billing.id)
            raise NotFoundError("Session not found")
        return SessionBillingDetails(billing=billing, session=session)

    def invoice_details(self, invoice: Invoice) -> InvoiceDetails:
        billings = self.billing_repo.list_by_ids(invoice.session_billing_ids)
        if len(billings) != len(invoice.session_billing_ids):
            logger.warning("Invoice %s references missing session billings", invoice.id)
            raise NotFoundError("Some session billings not found")
        payments = self.payment_repo.list_by_ids(invoice.payment_ids)
        return InvoiceDetails(
            invoice=invoice,
            billings=[self.billing_details(b) for b in billings],
            payments=payments,
        )

    def payment_details(self, payment: Payment) -> PaymentDetails:
        invoices = self.invoice_repo.list_by_ids(payment.invoice_ids)
        return PaymentDetails(payment=payment, invoices=[self.invoice_details(i) for i in invoices])
