from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from clinicbill.constants import CLINIC_TZ
from clinicbill.errors import ConflictError, NotFoundError, ValidationError
from clinicbill.events import PaymentProcessed
from clinicbill.models.details import InvoiceDetails, PaymentDetails
from clinicbill.models.payment import Payment, PaymentType
from clinicbill.money import ZERO, quantize
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
from clinicbill.settings import settings
from clinicbill.validation import require, require_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaymentService:
    """Records payments against one or more invoices.

    A payment carries a single amount for all of its invoices. It is checked
    against the invoices' combined total (or combined outstanding amount when
    ``strict_outstanding_check`` is on) and, once stored, counts in full
    towards the paid total of every invoice it references.
    """

    def __init__(
        self,
        payment_repo: PaymentRepository,
        invoice_repo: InvoiceRepository,
        billing_repo: SessionBillingRepository,
        sessions: SessionProvider,
        users: UserDirectory,
        outbox: EventOutbox,
        strict_outstanding_check: bool | None = None,
        currency: str | None = None,
    ) -> None:
        self.payment_repo = payment_repo
        self.invoice_repo = invoice_repo
        self.users = users
        self.outbox = outbox
        self.details = DetailsLoader(billing_repo, invoice_repo, payment_repo, sessions)
        if strict_outstanding_check is None:
            strict_outstanding_check = settings.strict_outstanding_check
        self.strict_outstanding_check = strict_outstanding_check
        self.currency = currency or settings.currency

    def _run(self, description: str, operation: Callable[[], T]) -> Result[T]:
        return run_operation(description, operation, self.payment_repo.rollback)

    def process_payment(
        self,
        invoice_ids: list[UUID] | None,
        amount: Decimal | None,
        payment_type: PaymentType | None,
        processed_by: UUID | None,
        notes: str | None = None,
        currency: str | None = None,
    ) -> Result[PaymentDetails]:
        return self._run(
            "process payment",
            lambda: self._process_payment(invoice_ids, amount, payment_type, processed_by, notes, currency),
        )

    def _payment_cap(self, invoices: list[InvoiceDetails]) -> Decimal:
        if self.strict_outstanding_check:
            return quantize(sum((max(i.outstanding_amount, ZERO) for i in invoices), ZERO))
        return quantize(sum((i.total_amount for i in invoices), ZERO))

    def _process_payment(
        self,
        invoice_ids: list[UUID] | None,
        amount: Decimal | None,
        payment_type: PaymentType | None,
        processed_by: UUID | None,
        notes: str | None,
        currency: str | None,
    ) -> PaymentDetails:
        if not invoice_ids:
            raise ValidationError("At least one invoice is required")
        amount = require_amount(amount, "Payment amount")
        payment_type = require(payment_type, "Payment type is required")
        processed_by = require(processed_by, "User ID is required")
        invoice_ids = list(dict.fromkeys(invoice_ids))

        invoices = self.invoice_repo.list_by_ids(invoice_ids)
        if len(invoices) != len(invoice_ids):
            raise NotFoundError("Some invoices not found")
        if self.users.get_user(processed_by) is None:
            raise NotFoundError("User not found")

        invoice_details = [self.details.invoice_details(i) for i in invoices]
        cap = self._payment_cap(invoice_details)
        if amount > cap:
            logger.warning("Payment of %s rejected: cap=%s over %d invoice(s)", amount, cap, len(invoices))
            if self.strict_outstanding_check:
                raise ConflictError("Payment amount exceeds outstanding invoice amount")
            raise ConflictError("Payment amount exceeds total invoice amount")

        payment = Payment(
            invoice_ids=invoice_ids,
            generated_by=processed_by,
            amount=amount,
            currency=currency or self.currency,
            payment_date=datetime.now(CLINIC_TZ),
            payment_type=payment_type,
            notes=(notes.strip() or None) if notes else None,
        )
        created = self.payment_repo.create(payment, {i.id: i.version for i in invoices})
        details = self.details.payment_details(created)
        logger.info(
            "Payment processed: id=%s, amount=%s %s, type=%s, invoices=%d",
            created.id,
            created.amount,
            created.currency,
            created.payment_type.value,
            len(invoice_ids),
        )
        self.outbox.append(
            PaymentProcessed(
                payment_id=created.id,
                invoice_ids=tuple(created.invoice_ids),
                amount=created.amount,
                payment_type=created.payment_type,
                patient_ids=tuple(details.patient_ids),
            )
        )
        return details

    def get_payment(self, payment_id: UUID) -> Result[PaymentDetails]:
        def load() -> PaymentDetails:
            payment = self.payment_repo.get_by_id(require(payment_id, "Payment ID is required"))
            logger.debug("get_payment id=%s found=%s", payment_id, payment is not None)
            if payment is None:
                raise NotFoundError("Payment not found")
            return self.details.payment_details(payment)

        return self._run("get payment", load)

    def list_payments(self) -> Result[list[PaymentDetails]]:
        def load() -> list[PaymentDetails]:
            payments = self.payment_repo.list_all()
            logger.debug("Listed %d payments", len(payments))
            return [self.details.payment_details(p) for p in payments]

        return self._run("list payments", load)
