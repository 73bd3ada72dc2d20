from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import TypeVar
from uuid import UUID

from clinicbill.errors import ConflictError, NotFoundError, StateError, ValidationError
from clinicbill.events import InvoiceConvertedToFinal, InvoiceCreated
from clinicbill.models.details import InvoiceDetails
from clinicbill.models.invoice import Invoice
from clinicbill.outbox import EventOutbox
from clinicbill.repositories.base import (
    InvoiceRepository,
    PaymentRepository,
    SessionBillingRepository,
    SessionProvider,
    UserDirectory,
)
from clinicbill.result import Result, run_operation
from clinicbill.services.details_loader import DetailsLoader
from clinicbill.validation import require, require_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InvoiceService:
    def __init__(
        self,
        invoice_repo: InvoiceRepository,
        billing_repo: SessionBillingRepository,
        payment_repo: PaymentRepository,
        sessions: SessionProvider,
        users: UserDirectory,
        outbox: EventOutbox,
    ) -> None:
        self.invoice_repo = invoice_repo
        self.billing_repo = billing_repo
        self.payment_repo = payment_repo
        self.users = users
        self.outbox = outbox
        self.details = DetailsLoader(billing_repo, invoice_repo, payment_repo, sessions)

    def _run(self, description: str, operation: Callable[[], T]) -> Result[T]:
        return run_operation(description, operation, self.invoice_repo.rollback)

    def create_invoice(
        self,
        invoice_number: str | None,
        invoice_date: date | None,
        generated_by: UUID | None,
        is_proforma: bool,
        session_billing_ids: list[UUID] | None,
    ) -> Result[InvoiceDetails]:
        return self._run(
            "create invoice",
            lambda: self._create_invoice(invoice_number, invoice_date, generated_by, is_proforma, session_billing_ids),
        )

    def _create_invoice(
        self,
        invoice_number: str | None,
        invoice_date: date | None,
        generated_by: UUID | None,
        is_proforma: bool,
        session_billing_ids: list[UUID] | None,
    ) -> InvoiceDetails:
        number = require_text(invoice_number, "Invoice number is required")
        invoice_date = require(invoice_date, "Invoice date is required")
        generated_by = require(generated_by, "User ID is required")
        if not session_billing_ids:
            raise ValidationError("At least one session billing is required")
        billing_ids = list(dict.fromkeys(session_billing_ids))

        if self.invoice_repo.exists_invoice_number(number):
            raise ConflictError("Invoice number already exists")
        if self.users.get_user(generated_by) is None:
            raise NotFoundError("User not found")
        billings = self.billing_repo.list_by_ids(billing_ids)
        if len(billings) != len(billing_ids):
            raise NotFoundError("Some session billings not found")

        invoice = self.invoice_repo.create(
            Invoice(
                invoice_number=number,
                invoice_date=invoice_date,
                generated_by=generated_by,
                is_proforma=bool(is_proforma),
                session_billing_ids=billing_ids,
            )
        )
        details = self.details.invoice_details(invoice)
        logger.info(
            "Invoice created: id=%s, number=%s, proforma=%s, billings=%d, total=%s",
            invoice.id,
            invoice.invoice_number,
            invoice.is_proforma,
            len(billing_ids),
            details.total_amount,
        )
        self.outbox.append(
            InvoiceCreated(
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                invoice_date=invoice.invoice_date,
                generated_by_user_id=generated_by,
                is_proforma=invoice.is_proforma,
                session_billing_ids=tuple(invoice.session_billing_ids),
                total_amount=details.total_amount,
            )
        )
        return details

    def convert_to_final(self, invoice_id: UUID | None, new_invoice_number: str | None) -> Result[InvoiceDetails]:
        return self._run(
            "convert proforma to final invoice",
            lambda: self._convert_to_final(invoice_id, new_invoice_number),
        )

    def _convert_to_final(self, invoice_id: UUID | None, new_invoice_number: str | None) -> InvoiceDetails:
        invoice_id = require(invoice_id, "Invoice ID is required")
        new_number = require_text(new_invoice_number, "New invoice number is required")

        invoice = self.invoice_repo.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        if not invoice.is_proforma:
            raise StateError("Cannot convert proforma to final invoice: invoice is not proforma")
        if invoice.payment_ids:
            raise StateError("Cannot convert proforma to final invoice: invoice has existing payments")
        if self.invoice_repo.exists_invoice_number(new_number):
            raise ConflictError("Invoice number already exists")

        updated = self.invoice_repo.convert_to_final(invoice.id, new_number, invoice.version)
        logger.info("Invoice %s converted to final: %s -> %s", invoice.id, invoice.invoice_number, new_number)
        self.outbox.append(
            InvoiceConvertedToFinal(
                invoice_id=invoice.id,
                old_number=invoice.invoice_number,
                new_number=new_number,
            )
        )
        return self.details.invoice_details(updated)

    def get_invoice(self, invoice_id: UUID) -> Result[InvoiceDetails]:
        def load() -> InvoiceDetails:
            invoice = self.invoice_repo.get_by_id(require(invoice_id, "Invoice ID is required"))
            logger.debug("get_invoice id=%s found=%s", invoice_id, invoice is not None)
            if invoice is None:
                raise NotFoundError("Invoice not found")
            return self.details.invoice_details(invoice)

        return self._run("get invoice", load)

    def get_invoice_by_number(self, invoice_number: str) -> Result[InvoiceDetails]:
        def load() -> InvoiceDetails:
            number = require_text(invoice_number, "Invoice number is required")
            invoice = self.invoice_repo.get_by_number(number)
            logger.debug("get_invoice_by_number number=%s found=%s", number, invoice is not None)
            if invoice is None:
                raise NotFoundError("Invoice not found")
            return self.details.invoice_details(invoice)

        return self._run("find invoice by number", load)

    def list_invoices(self) -> Result[list[InvoiceDetails]]:
        def load() -> list[InvoiceDetails]:
            invoices = self.invoice_repo.list_all()
            logger.debug("Listed %d invoices", len(invoices))
            return [self.details.invoice_details(i) for i in invoices]

        return self._run("list invoices", load)
