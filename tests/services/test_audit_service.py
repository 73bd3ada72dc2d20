from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

from clinicbill.events import (
    InvoiceConvertedToFinal,
    InvoiceCreated,
    ManualDiscountApplied,
    PaymentProcessed,
    SessionBillingCalculated,
    SessionCompleted,
)
from clinicbill.models.audit_log import AuditEventType, AuditLog
from clinicbill.models.payment import PaymentType
from clinicbill.services.audit_service import AuditService


class TestAuditServiceLog:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.service = AuditService(self.mock_repo)

    def test_log_creates_entry(self):
        self.mock_repo.create.return_value = AuditLog(id=1, uuid="abc", event_type=AuditEventType.INVOICE_CREATE)

        result = self.service.log(
            AuditEventType.INVOICE_CREATE,
            actor_id="user-1",
            source="cli",
            entity_type="invoice",
            entity_id="inv-1",
            new_state={"invoice_number": "INV-0001"},
        )

        assert result.event_type == AuditEventType.INVOICE_CREATE
        created_log = self.mock_repo.create.call_args[0][0]
        assert created_log.event_type == "invoice.create"
        assert created_log.actor_id == "user-1"
        assert created_log.source == "cli"
        assert created_log.entity_type == "invoice"
        assert created_log.entity_id == "inv-1"
        assert created_log.new_state == {"invoice_number": "INV-0001"}
        assert created_log.metadata == {}

    def test_safe_log_swallows_errors(self):
        self.mock_repo.create.side_effect = RuntimeError("db down")
        assert self.service.safe_log("test") is None

    def test_list_helpers_delegate(self):
        self.service.list_by_entity("invoice", "inv-1")
        self.mock_repo.list_by_entity.assert_called_once_with("invoice", "inv-1")
        self.service.list_recent(10)
        self.mock_repo.list_recent.assert_called_once_with(10)


class TestAuditServiceRecordEvent:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.mock_repo.create.side_effect = lambda log: log
        self.service = AuditService(self.mock_repo, source="cli")

    def test_billing_calculated(self):
        event = SessionBillingCalculated(
            billing_id=uuid4(),
            session_id=uuid4(),
            patient_id=uuid4(),
            subtotal=Decimal("150.00"),
            final=Decimal("150.00"),
            consultation_names=("ECG", "Consultation"),
        )

        log = self.service.record_event(event)

        assert log.event_type == AuditEventType.BILLING_CREATE
        assert log.entity_type == "session_billing"
        assert log.entity_id == str(event.billing_id)
        assert log.actor_id is None
        assert log.source == "cli"
        assert log.new_state["subtotal"] == "150.00"
        assert log.new_state["consultation_names"] == ["ECG", "Consultation"]
        assert log.metadata["event_id"] == event.event_id
        assert log.metadata["event_name"] == "SessionBillingCalculated"

    def test_discount_actor(self):
        user = uuid4()
        event = ManualDiscountApplied(
            billing_id=uuid4(), session_id=uuid4(), amount=Decimal("5.00"), reason="r", applied_by_user_id=user
        )
        log = self.service.record_event(event)
        assert log.event_type == AuditEventType.BILLING_DISCOUNT
        assert log.actor_id == str(user)
        assert log.new_state["amount"] == "5.00"

    def test_invoice_events(self):
        created = InvoiceCreated(
            invoice_id=uuid4(),
            invoice_number="INV-1",
            invoice_date=date(2026, 10, 19),
            generated_by_user_id=uuid4(),
            is_proforma=True,
            session_billing_ids=(uuid4(),),
            total_amount=Decimal("10.00"),
        )
        log = self.service.record_event(created)
        assert log.event_type == AuditEventType.INVOICE_CREATE
        assert log.new_state["invoice_date"] == "2026-10-19"
        assert log.new_state["is_proforma"] is True

        converted = InvoiceConvertedToFinal(invoice_id=created.invoice_id, old_number="INV-1", new_number="INV-F-1")
        log = self.service.record_event(converted)
        assert log.event_type == AuditEventType.INVOICE_CONVERT
        assert log.entity_id == str(created.invoice_id)

    def test_payment_processed(self):
        event = PaymentProcessed(
            payment_id=uuid4(), invoice_ids=(uuid4(),), amount=Decimal("1.00"), payment_type=PaymentType.CARD
        )
        log = self.service.record_event(event)
        assert log.event_type == AuditEventType.PAYMENT_PROCESS
        assert log.entity_type == "payment"
        assert log.new_state["payment_type"] == "CARD"

    def test_inbound_event_not_audited(self):
        assert self.service.record_event(SessionCompleted(session_id=uuid4())) is None
        self.mock_repo.create.assert_not_called()


class TestAuditTrailEndToEnd:
    def test_dispatched_events_land_in_audit_log(
        self, audit_repo, dispatcher, outbox, billing_service, invoice_service, make_session, staff_user
    ):
        audit = AuditService(audit_repo, source="test")
        audit.subscribe_to(dispatcher)

        billing = billing_service.create_session_billing(make_session()).unwrap()
        invoice = invoice_service.create_invoice("INV-1", date(2026, 10, 19), staff_user, False, [billing.id]).unwrap()
        assert dispatcher.dispatch_pending() == 2

        invoice_logs = audit.list_by_entity("invoice", str(invoice.id))
        assert [log.event_type for log in invoice_logs] == [AuditEventType.INVOICE_CREATE]
        assert invoice_logs[0].actor_id == str(staff_user)
        assert invoice_logs[0].new_state["total_amount"] == "150.00"
        assert len(audit.list_recent()) == 2
