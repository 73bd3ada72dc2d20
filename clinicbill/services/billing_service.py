from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from clinicbill import calculator, payment_status
from clinicbill.errors import ConflictError, NotFoundError, StateError
from clinicbill.events import ManualDiscountApplied, SessionBillingCalculated, SessionCompleted
from clinicbill.models.billing import Discount, SessionBilling
from clinicbill.models.details import SessionBillingDetails
from clinicbill.models.invoice import PaymentStatus
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
from clinicbill.validation import require, require_amount, require_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BillingService:
    def __init__(
        self,
        billing_repo: SessionBillingRepository,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        sessions: SessionProvider,
        users: UserDirectory,
        outbox: EventOutbox,
    ) -> None:
        self.billing_repo = billing_repo
        self.invoice_repo = invoice_repo
        self.payment_repo = payment_repo
        self.sessions = sessions
        self.users = users
        self.outbox = outbox
        self.details = DetailsLoader(billing_repo, invoice_repo, payment_repo, sessions)

    def _run(self, description: str, operation: Callable[[], T]) -> Result[T]:
        return run_operation(description, operation, self.billing_repo.rollback)

    def create_session_billing(self, session_id: UUID | None) -> Result[SessionBillingDetails]:
        return self._run("create session billing", lambda: self._create_session_billing(session_id))

    def _create_session_billing(self, session_id: UUID | None) -> SessionBillingDetails:
        session_id = require(session_id, "Session ID is required")
        if self.billing_repo.exists_for_session(session_id):
            raise ConflictError("Billing already exists for this session")

        session = self.sessions.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_completed:
            raise StateError("Session must be completed before billing")

        billing = self.billing_repo.create(SessionBilling(session_id=session_id))
        details = SessionBillingDetails(billing=billing, session=session)
        logger.info(
            "Session billing created: id=%s, session=%s, subtotal=%s",
            billing.id,
            session_id,
            details.subtotal_amount,
        )
        self.outbox.append(
            SessionBillingCalculated(
                billing_id=billing.id,
                session_id=session_id,
                patient_id=session.patient_id,
                subtotal=details.subtotal_amount,
                final=details.final_amount,
                consultation_names=tuple(session.consultation_names),
            )
        )
        return details

    def apply_discount(
        self,
        session_id: UUID | None,
        applied_by: UUID | None,
        amount: Decimal | None,
        reason: str | None,
    ) -> Result[SessionBillingDetails]:
        return self._run(
            "apply discount",
            lambda: self._apply_discount(session_id, applied_by, amount, reason),
        )

    def _apply_discount(
        self,
        session_id: UUID | None,
        applied_by: UUID | None,
        amount: Decimal | None,
        reason: str | None,
    ) -> SessionBillingDetails:
        session_id = require(session_id, "Session ID is required")
        applied_by = require(applied_by, "User ID is required")
        amount = require_amount(amount, "Discount amount")
        reason = require_text(reason, "Discount reason is required")

        billing = self.billing_repo.get_by_session_id(session_id)
        if billing is None:
            raise NotFoundError("Billing not found for session")
        if self.users.get_user(applied_by) is None:
            raise NotFoundError("User not found")

        current = self.details.billing_details(billing)
        if current.total_discount_amount + amount > current.subtotal_amount:
            raise ConflictError("Total discounts cannot exceed subtotal amount")

        discount = Discount(amount=amount, reason=reason, applied_by=applied_by)
        updated = self.billing_repo.add_discount(billing.id, discount, billing.version)
        details = SessionBillingDetails(billing=updated, session=current.session)
        logger.info(
            "Discount applied: billing=%s, amount=%s, by=%s, final=%s",
            billing.id,
            amount,
            applied_by,
            details.final_amount,
        )
        self.outbox.append(
            ManualDiscountApplied(
                billing_id=billing.id,
                session_id=session_id,
                amount=amount,
                reason=reason,
                applied_by_user_id=applied_by,
            )
        )
        return details

    def get_billing(self, billing_id: UUID) -> Result[SessionBillingDetails]:
        def load() -> SessionBillingDetails:
            billing = self.billing_repo.get_by_id(require(billing_id, "Billing ID is required"))
            logger.debug("get_billing id=%s found=%s", billing_id, billing is not None)
            if billing is None:
                raise NotFoundError("Billing not found")
            return self.details.billing_details(billing)

        return self._run("get billing", load)

    def get_billing_for_session(self, session_id: UUID) -> Result[SessionBillingDetails]:
        def load() -> SessionBillingDetails:
            billing = self.billing_repo.get_by_session_id(require(session_id, "Session ID is required"))
            logger.debug("get_billing_for_session session=%s found=%s", session_id, billing is not None)
            if billing is None:
                raise NotFoundError("Billing not found for session")
            return self.details.billing_details(billing)

        return self._run("get billing for session", load)

    def list_billings(self) -> Result[list[SessionBillingDetails]]:
        def load() -> list[SessionBillingDetails]:
            billings = self.billing_repo.list_all()
            logger.debug("Listed %d session billings", len(billings))
            return [self.details.billing_details(b) for b in billings]

        return self._run("list session billings", load)

    def calculate_final_amount(self, session_id: UUID) -> Result[Decimal]:
        """Final amount of the session's billing, or its live subtotal when not billed yet."""

        def calculate() -> Decimal:
            sid = require(session_id, "Session ID is required")
            billing = self.billing_repo.get_by_session_id(sid)
            if billing is not None:
                return self.details.billing_details(billing).final_amount
            session = self.sessions.get_session(sid)
            if session is None:
                raise NotFoundError("Session not found")
            return calculator.subtotal(session.consultations)

        return self._run("calculate final amount", calculate)

    def get_payment_status(self, session_id: UUID) -> Result[PaymentStatus]:
        """Payment status of a session's billing across its final invoices.

        Proforma invoices do not count. A billing on no invoice is PENDING.
        """

        def derive() -> PaymentStatus:
            billing = self.billing_repo.get_by_session_id(require(session_id, "Session ID is required"))
            if billing is None:
                raise NotFoundError("Billing not found for session")
            invoices = self.invoice_repo.list_by_session_billing(billing.id)
            if not invoices:
                return PaymentStatus.PENDING

            payment_ids = list(dict.fromkeys(pid for inv in invoices if not inv.is_proforma for pid in inv.payment_ids))
            paid = payment_status.total_paid(self.payment_repo.list_by_ids(payment_ids))
            final_amount = self.details.billing_details(billing).final_amount
            result = payment_status.status(final_amount, paid)
            logger.debug("get_payment_status session=%s paid=%s status=%s", session_id, paid, result.value)
            return result

        return self._run("get payment status", derive)

    def handle_session_completed(self, event: SessionCompleted) -> None:
        """Create the billing for a session reported as completed."""
        result = self.create_session_billing(event.session_id)
        if result.ok:
            logger.info("Billing created from %s for session %s", event.event_type, event.session_id)
        else:
            logger.warning(
                "No billing created for completed session %s: %s",
                event.session_id,
                result.error_message,
            )
