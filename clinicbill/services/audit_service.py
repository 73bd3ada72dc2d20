from __future__ import annotations

import logging
from uuid import UUID

from clinicbill.events import (
    BillingEvent,
    InvoiceConvertedToFinal,
    InvoiceCreated,
    ManualDiscountApplied,
    PaymentProcessed,
    SessionBillingCalculated,
)
from clinicbill.models.audit_log import AuditEventType, AuditLog
from clinicbill.outbox import EventDispatcher
from clinicbill.repositories.base import AuditLogRepository
from clinicbill.services.audit_serializers import event_metadata, serialize_event

logger = logging.getLogger(__name__)


class AuditService:
    def __init__(self, repo: AuditLogRepository, source: str = "") -> None:
        self.repo = repo
        self.source = source

    def log(
        self,
        event_type: str,
        *,
        actor_id: str | None = None,
        source: str = "",
        entity_type: str = "",
        entity_id: str = "",
        new_state: dict | None = None,
        metadata: dict | None = None,
    ) -> AuditLog:
        """Create an audit log entry. Raises on failure."""
        audit_log = AuditLog(
            event_type=event_type,
            actor_id=actor_id,
            source=source,
            entity_type=entity_type,
            entity_id=entity_id,
            new_state=new_state,
            metadata=metadata or {},
        )
        result = self.repo.create(audit_log)
        logger.info(
            "Audit logged: event=%s actor=%s entity=%s/%s",
            event_type,
            actor_id,
            entity_type,
            entity_id,
        )
        return result

    def safe_log(self, *args, **kwargs) -> AuditLog | None:
        """Create an audit log entry, swallowing any exceptions."""
        try:
            return self.log(*args, **kwargs)
        except Exception:
            logger.exception("Failed to write audit log")
            return None

    def record_event(self, event: BillingEvent) -> AuditLog | None:
        """Write the audit entry for a dispatched billing event.

        Events without an audit mapping (e.g. inbound ``SessionCompleted``) are skipped.
        """
        entry = _audit_entry(event)
        if entry is None:
            logger.debug("No audit mapping for %s", event.event_type)
            return None
        event_type, entity_type, entity_id, actor_id = entry
        return self.safe_log(
            event_type,
            actor_id=str(actor_id) if actor_id is not None else None,
            source=self.source,
            entity_type=entity_type,
            entity_id=str(entity_id),
            new_state=serialize_event(event),
            metadata=event_metadata(event),
        )

    def subscribe_to(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe("*", self.record_event)

    def list_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]:
        return self.repo.list_by_entity(entity_type, entity_id)

    def list_recent(self, limit: int = 50) -> list[AuditLog]:
        return self.repo.list_recent(limit)


def _audit_entry(event: BillingEvent) -> tuple[str, str, UUID, UUID | None] | None:
    """Map an event to (audit event type, entity type, entity id, actor id)."""
    if isinstance(event, SessionBillingCalculated):
        return AuditEventType.BILLING_CREATE, "session_billing", event.billing_id, None
    if isinstance(event, ManualDiscountApplied):
        return AuditEventType.BILLING_DISCOUNT, "session_billing", event.billing_id, event.applied_by_user_id
    if isinstance(event, InvoiceCreated):
        return AuditEventType.INVOICE_CREATE, "invoice", event.invoice_id, event.generated_by_user_id
    if isinstance(event, InvoiceConvertedToFinal):
        return AuditEventType.INVOICE_CONVERT, "invoice", event.invoice_id, None
    if isinstance(event, PaymentProcessed):
        return AuditEventType.PAYMENT_PROCESS, "payment", event.payment_id, None
    return None
