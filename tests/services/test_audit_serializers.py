import json
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from clinicbill.events import InvoiceCreated, PaymentProcessed, SessionCompleted
from clinicbill.models.payment import PaymentType
from clinicbill.services.audit_serializers import event_metadata, serialize_event


class TestSerializeEvent:
    def test_invoice_created(self):
        invoice_id, user, billing = uuid4(), uuid4(), uuid4()
        event = InvoiceCreated(
            invoice_id=invoice_id,
            invoice_number="INV-0001",
            invoice_date=date(2026, 10, 19),
            generated_by_user_id=user,
            is_proforma=False,
            session_billing_ids=(billing,),
            total_amount=Decimal("150.00"),
        )

        result = serialize_event(event)

        assert result == {
            "invoice_id": str(invoice_id),
            "invoice_number": "INV-0001",
            "invoice_date": "2026-10-19",
            "generated_by_user_id": str(user),
            "is_proforma": False,
            "session_billing_ids": [str(billing)],
            "total_amount": "150.00",
        }

    def test_enum_and_empty_tuple(self):
        event = PaymentProcessed(
            payment_id=uuid4(), invoice_ids=(), amount=Decimal("9.99"), payment_type=PaymentType.BANK_TRANSFER
        )
        result = serialize_event(event)
        assert result["payment_type"] == "BANK_TRANSFER"
        assert result["invoice_ids"] == []
        assert result["patient_ids"] == []

    def test_json_serializable(self):
        event = PaymentProcessed(
            payment_id=uuid4(), invoice_ids=(uuid4(),), amount=Decimal("1.00"), payment_type=PaymentType.CASH
        )
        json.dumps(serialize_event(event))

    def test_bookkeeping_fields_excluded(self):
        result = serialize_event(SessionCompleted(session_id=uuid4()))
        assert set(result) == {"session_id"}


class TestEventMetadata:
    def test_metadata(self):
        occurred = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)
        event = SessionCompleted(session_id=uuid4(), event_id="evt-1", occurred_at=occurred)
        assert event_metadata(event) == {
            "event_id": "evt-1",
            "event_name": "SessionCompleted",
            "occurred_at": "2026-10-19T08:30:00+00:00",
        }
