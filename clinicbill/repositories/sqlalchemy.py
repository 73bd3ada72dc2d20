from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from uuid import UUID

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError
from ulid import ULID

from clinicbill.constants import CLINIC_TZ
from clinicbill.errors import ConcurrentModificationError, ConflictError
from clinicbill.models.audit_log import AuditLog
from clinicbill.models.billing import Discount, SessionBilling
from clinicbill.models.invoice import Invoice
from clinicbill.models.payment import Payment, PaymentType
from clinicbill.models.session import ClinicalSession, ConsultationCharge, SessionStatus
from clinicbill.models.user import UserRef, UserRole
from clinicbill.money import from_cents, to_cents
from clinicbill.repositories.base import (
    AuditLogRepository,
    InvoiceRepository,
    PaymentRepository,
    SessionBillingRepository,
    SessionProvider,
    UserDirectory,
)


def _now() -> datetime:
    return datetime.now(CLINIC_TZ)


@contextmanager
def _transaction(conn: Connection) -> Iterator[None]:
    """Commit everything executed inside the block, or nothing."""
    try:
        yield
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def _end_transaction(conn: Connection) -> None:
    if conn.in_transaction():
        conn.rollback()


def _in_params(prefix: str, values: list[UUID]) -> tuple[str, dict[str, str]]:
    placeholders = ", ".join(f":{prefix}{i}" for i in range(len(values)))
    params = {f"{prefix}{i}": str(value) for i, value in enumerate(values)}
    return placeholders, params


def _in_request_order(items: dict[UUID, object], ids: list[UUID]) -> list:
    return [items[i] for i in ids if i in items]


class SQLAlchemySessionBillingRepository(SessionBillingRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, billing: SessionBilling) -> SessionBilling:
        try:
            with _transaction(self.conn):
                self.conn.execute(
                    text(
                        "INSERT INTO session_billings (id, session_id, version, created_at) "
                        "VALUES (:id, :session_id, 0, :created_at)"
                    ),
                    {"id": str(billing.id), "session_id": str(billing.session_id), "created_at": _now()},
                )
        except IntegrityError as exc:
            raise ConflictError("Billing already exists for this session") from exc
        result = self.get_by_id(billing.id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve billing after create (id={billing.id})")
        return result

    @staticmethod
    def _build_billing(row: RowMapping, discount_rows: list[RowMapping]) -> SessionBilling:
        return SessionBilling(
            id=row["id"],
            session_id=row["session_id"],
            discounts=[
                Discount(
                    id=d["id"],
                    amount=from_cents(d["amount_cents"]),
                    reason=d["reason"],
                    applied_by=d["applied_by"],
                    created_at=d["created_at"],
                )
                for d in discount_rows
            ],
            version=row["version"],
            created_at=row["created_at"],
        )

    def _build_billings_from_rows(self, rows: list[RowMapping]) -> list[SessionBilling]:
        if not rows:
            return []
        placeholders, params = _in_params("id", [row["id"] for row in rows])
        all_discounts = (
            self.conn.execute(
                text(
                    f"SELECT * FROM billing_discounts WHERE billing_id IN ({placeholders}) "
                    "ORDER BY billing_id, position"
                ),
                params,
            )
            .mappings()
            .fetchall()
        )
        discounts_by_billing: dict[str, list[RowMapping]] = {}
        for d in all_discounts:
            discounts_by_billing.setdefault(d["billing_id"], []).append(d)
        return [self._build_billing(row, discounts_by_billing.get(row["id"], [])) for row in rows]

    def _fetch_one(self, where: str, params: dict) -> SessionBilling | None:
        row = self.conn.execute(text(f"SELECT * FROM session_billings WHERE {where}"), params).mappings().fetchone()
        if row is None:
            return None
        return self._build_billings_from_rows([row])[0]

    def get_by_id(self, billing_id: UUID) -> SessionBilling | None:
        return self._fetch_one("id = :id", {"id": str(billing_id)})

    def get_by_session_id(self, session_id: UUID) -> SessionBilling | None:
        return self._fetch_one("session_id = :session_id", {"session_id": str(session_id)})

    def exists_by_id(self, billing_id: UUID) -> bool:
        row = self.conn.execute(
            text("SELECT 1 FROM session_billings WHERE id = :id"), {"id": str(billing_id)}
        ).fetchone()
        return row is not None

    def exists_for_session(self, session_id: UUID) -> bool:
        row = self.conn.execute(
            text("SELECT 1 FROM session_billings WHERE session_id = :session_id"),
            {"session_id": str(session_id)},
        ).fetchone()
        return row is not None

    def list_by_ids(self, billing_ids: list[UUID]) -> list[SessionBilling]:
        if not billing_ids:
            return []
        placeholders, params = _in_params("id", billing_ids)
        rows = (
            self.conn.execute(text(f"SELECT * FROM session_billings WHERE id IN ({placeholders})"), params)
            .mappings()
            .fetchall()
        )
        by_id = {b.id: b for b in self._build_billings_from_rows(list(rows))}
        return _in_request_order(by_id, billing_ids)

    def list_all(self) -> list[SessionBilling]:
        rows = (
            self.conn.execute(text("SELECT * FROM session_billings ORDER BY created_at DESC"))
            .mappings()
            .fetchall()
        )
        return self._build_billings_from_rows(list(rows))

    def add_discount(self, billing_id: UUID, discount: Discount, expected_version: int) -> SessionBilling:
        with _transaction(self.conn):
            bumped = self.conn.execute(
                text(
                    "UPDATE session_billings SET version = version + 1 "
                    "WHERE id = :id AND version = :expected_version"
                ),
                {"id": str(billing_id), "expected_version": expected_version},
            )
            if bumped.rowcount != 1:
                raise ConcurrentModificationError(
                    f"Billing {billing_id} was modified concurrently, retry the discount"
                )
            self.conn.execute(
                text(
                    "INSERT INTO billing_discounts (id, billing_id, amount_cents, reason, applied_by, "
                    "position, created_at) "
                    "VALUES (:id, :billing_id, :amount_cents, :reason, :applied_by, "
                    "(SELECT COUNT(*) FROM billing_discounts WHERE billing_id = :billing_id), :created_at)"
                ),
                {
                    "id": str(discount.id),
                    "billing_id": str(billing_id),
                    "amount_cents": to_cents(discount.amount),
                    "reason": discount.reason,
                    "applied_by": str(discount.applied_by),
                    "created_at": _now(),
                },
            )
        result = self.get_by_id(billing_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve billing after discount (id={billing_id})")
        return result

    def rollback(self) -> None:
        _end_transaction(self.conn)


class SQLAlchemyInvoiceRepository(InvoiceRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, invoice: Invoice) -> Invoice:
        try:
            with _transaction(self.conn):
                self.conn.execute(
                    text(
                        "INSERT INTO invoices (id, invoice_number, invoice_date, generated_by, is_proforma, "
                        "version, created_at) "
                        "VALUES (:id, :invoice_number, :invoice_date, :generated_by, :is_proforma, 0, :created_at)"
                    ),
                    {
                        "id": str(invoice.id),
                        "invoice_number": invoice.invoice_number,
                        "invoice_date": invoice.invoice_date,
                        "generated_by": str(invoice.generated_by),
                        "is_proforma": invoice.is_proforma,
                        "created_at": _now(),
                    },
                )
                for i, billing_id in enumerate(invoice.session_billing_ids):
                    self.conn.execute(
                        text(
                            "INSERT INTO invoice_session_billings (invoice_id, billing_id, sort_order) "
                            "VALUES (:invoice_id, :billing_id, :sort_order)"
                        ),
                        {"invoice_id": str(invoice.id), "billing_id": str(billing_id), "sort_order": i},
                    )
        except IntegrityError as exc:
            raise ConflictError("Invoice number already exists") from exc
        result = self.get_by_id(invoice.id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve invoice after create (id={invoice.id})")
        return result

    def _build_invoices_from_rows(self, rows: list[RowMapping]) -> list[Invoice]:
        if not rows:
            return []
        placeholders, params = _in_params("id", [row["id"] for row in rows])
        billing_links = (
            self.conn.execute(
                text(
                    f"SELECT invoice_id, billing_id FROM invoice_session_billings "
                    f"WHERE invoice_id IN ({placeholders}) ORDER BY invoice_id, sort_order"
                ),
                params,
            )
            .mappings()
            .fetchall()
        )
        payment_links = (
            self.conn.execute(
                text(
                    f"SELECT pi.invoice_id, pi.payment_id FROM payment_invoices pi "
                    f"JOIN payments p ON p.id = pi.payment_id "
                    f"WHERE pi.invoice_id IN ({placeholders}) ORDER BY p.created_at"
                ),
                params,
            )
            .mappings()
            .fetchall()
        )
        billings_by_invoice: dict[str, list[str]] = {}
        for link in billing_links:
            billings_by_invoice.setdefault(link["invoice_id"], []).append(link["billing_id"])
        payments_by_invoice: dict[str, list[str]] = {}
        for link in payment_links:
            payments_by_invoice.setdefault(link["invoice_id"], []).append(link["payment_id"])

        return [
            Invoice(
                id=row["id"],
                invoice_number=row["invoice_number"],
                invoice_date=row["invoice_date"],
                generated_by=row["generated_by"],
                is_proforma=bool(row["is_proforma"]),
                session_billing_ids=billings_by_invoice.get(row["id"], []),
                payment_ids=payments_by_invoice.get(row["id"], []),
                version=row["version"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def _fetch_one(self, where: str, params: dict) -> Invoice | None:
        row = self.conn.execute(text(f"SELECT * FROM invoices WHERE {where}"), params).mappings().fetchone()
        if row is None:
            return None
        return self._build_invoices_from_rows([row])[0]

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        return self._fetch_one("id = :id", {"id": str(invoice_id)})

    def get_by_number(self, invoice_number: str) -> Invoice | None:
        return self._fetch_one("invoice_number = :invoice_number", {"invoice_number": invoice_number})

    def exists_by_id(self, invoice_id: UUID) -> bool:
        row = self.conn.execute(text("SELECT 1 FROM invoices WHERE id = :id"), {"id": str(invoice_id)}).fetchone()
        return row is not None

    def exists_invoice_number(self, invoice_number: str) -> bool:
        row = self.conn.execute(
            text("SELECT 1 FROM invoices WHERE invoice_number = :invoice_number"),
            {"invoice_number": invoice_number},
        ).fetchone()
        return row is not None

    def list_by_ids(self, invoice_ids: list[UUID]) -> list[Invoice]:
        if not invoice_ids:
            return []
        placeholders, params = _in_params("id", invoice_ids)
        rows = (
            self.conn.execute(text(f"SELECT * FROM invoices WHERE id IN ({placeholders})"), params)
            .mappings()
            .fetchall()
        )
        by_id = {inv.id: inv for inv in self._build_invoices_from_rows(list(rows))}
        return _in_request_order(by_id, invoice_ids)

    def list_by_session_billing(self, billing_id: UUID) -> list[Invoice]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT i.* FROM invoices i "
                    "JOIN invoice_session_billings isb ON isb.invoice_id = i.id "
                    "WHERE isb.billing_id = :billing_id ORDER BY i.created_at"
                ),
                {"billing_id": str(billing_id)},
            )
            .mappings()
            .fetchall()
        )
        return self._build_invoices_from_rows(list(rows))

    def list_all(self) -> list[Invoice]:
        rows = self.conn.execute(text("SELECT * FROM invoices ORDER BY created_at DESC")).mappings().fetchall()
        return self._build_invoices_from_rows(list(rows))

    def convert_to_final(self, invoice_id: UUID, new_invoice_number: str, expected_version: int) -> Invoice:
        try:
            with _transaction(self.conn):
                updated = self.conn.execute(
                    text(
                        "UPDATE invoices SET is_proforma = :is_proforma, invoice_number = :invoice_number, "
                        "version = version + 1 "
                        "WHERE id = :id AND version = :expected_version AND is_proforma = :was_proforma"
                    ),
                    {
                        "is_proforma": False,
                        "invoice_number": new_invoice_number,
                        "id": str(invoice_id),
                        "expected_version": expected_version,
                        "was_proforma": True,
                    },
                )
                if updated.rowcount != 1:
                    raise ConcurrentModificationError(
                        f"Invoice {invoice_id} was modified concurrently, reload it before converting"
                    )
        except IntegrityError as exc:
            raise ConflictError("Invoice number already exists") from exc
        result = self.get_by_id(invoice_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve invoice after conversion (id={invoice_id})")
        return result

    def rollback(self) -> None:
        _end_transaction(self.conn)


class SQLAlchemyPaymentRepository(PaymentRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, payment: Payment, invoice_versions: dict[UUID, int]) -> Payment:
        with _transaction(self.conn):
            for invoice_id in payment.invoice_ids:
                bumped = self.conn.execute(
                    text("UPDATE invoices SET version = version + 1 WHERE id = :id AND version = :expected_version"),
                    {"id": str(invoice_id), "expected_version": invoice_versions[invoice_id]},
                )
                if bumped.rowcount != 1:
                    raise ConcurrentModificationError(
                        f"Invoice {invoice_id} was modified concurrently, retry the payment"
                    )
            self.conn.execute(
                text(
                    "INSERT INTO payments (id, generated_by, amount_cents, currency, payment_date, "
                    "payment_type, notes, created_at) "
                    "VALUES (:id, :generated_by, :amount_cents, :currency, :payment_date, "
                    ":payment_type, :notes, :created_at)"
                ),
                {
                    "id": str(payment.id),
                    "generated_by": str(payment.generated_by),
                    "amount_cents": to_cents(payment.amount),
                    "currency": payment.currency,
                    "payment_date": payment.payment_date,
                    "payment_type": payment.payment_type.value,
                    "notes": payment.notes,
                    "created_at": _now(),
                },
            )
            for i, invoice_id in enumerate(payment.invoice_ids):
                self.conn.execute(
                    text(
                        "INSERT INTO payment_invoices (payment_id, invoice_id, sort_order) "
                        "VALUES (:payment_id, :invoice_id, :sort_order)"
                    ),
                    {"payment_id": str(payment.id), "invoice_id": str(invoice_id), "sort_order": i},
                )
        result = self.get_by_id(payment.id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve payment after create (id={payment.id})")
        return result

    def _build_payments_from_rows(self, rows: list[RowMapping]) -> list[Payment]:
        if not rows:
            return []
        placeholders, params = _in_params("id", [row["id"] for row in rows])
        links = (
            self.conn.execute(
                text(
                    f"SELECT payment_id, invoice_id FROM payment_invoices "
                    f"WHERE payment_id IN ({placeholders}) ORDER BY payment_id, sort_order"
                ),
                params,
            )
            .mappings()
            .fetchall()
        )
        invoices_by_payment: dict[str, list[str]] = {}
        for link in links:
            invoices_by_payment.setdefault(link["payment_id"], []).append(link["invoice_id"])
        return [
            Payment(
                id=row["id"],
                invoice_ids=invoices_by_payment.get(row["id"], []),
                generated_by=row["generated_by"],
                amount=from_cents(row["amount_cents"]),
                currency=row["currency"],
                payment_date=row["payment_date"],
                payment_type=PaymentType(row["payment_type"]),
                notes=row["notes"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        row = (
            self.conn.execute(text("SELECT * FROM payments WHERE id = :id"), {"id": str(payment_id)})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._build_payments_from_rows([row])[0]

    def list_by_ids(self, payment_ids: list[UUID]) -> list[Payment]:
        if not payment_ids:
            return []
        placeholders, params = _in_params("id", payment_ids)
        rows = (
            self.conn.execute(text(f"SELECT * FROM payments WHERE id IN ({placeholders})"), params)
            .mappings()
            .fetchall()
        )
        by_id = {p.id: p for p in self._build_payments_from_rows(list(rows))}
        return _in_request_order(by_id, payment_ids)

    def list_all(self) -> list[Payment]:
        rows = self.conn.execute(text("SELECT * FROM payments ORDER BY created_at DESC")).mappings().fetchall()
        return self._build_payments_from_rows(list(rows))

    def rollback(self) -> None:
        _end_transaction(self.conn)


class SQLAlchemySessionProvider(SessionProvider):
    """Reads sessions from the clinic's scheduling tables."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get_session(self, session_id: UUID) -> ClinicalSession | None:
        row = (
            self.conn.execute(
                text("SELECT id, patient_id, status FROM clinical_sessions WHERE id = :id"),
                {"id": str(session_id)},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        consultation_rows = (
            self.conn.execute(
                text(
                    "SELECT c.id, c.name, c.price_cents, c.currency FROM consultations c "
                    "JOIN session_consultations sc ON sc.consultation_id = c.id "
                    "WHERE sc.session_id = :session_id ORDER BY sc.sort_order"
                ),
                {"session_id": str(session_id)},
            )
            .mappings()
            .fetchall()
        )
        return ClinicalSession(
            id=row["id"],
            patient_id=row["patient_id"],
            status=SessionStatus(row["status"]),
            consultations=[
                ConsultationCharge(
                    consultation_id=c["id"],
                    name=c["name"],
                    price=from_cents(c["price_cents"]),
                    currency=c["currency"],
                )
                for c in consultation_rows
            ],
        )


class SQLAlchemyUserDirectory(UserDirectory):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_user(row: RowMapping) -> UserRef:
        return UserRef(
            id=row["id"],
            username=row["username"],
            full_name=row["full_name"] or "",
            role=UserRole(row["role"]),
        )

    def get_user(self, user_id: UUID) -> UserRef | None:
        row = (
            self.conn.execute(
                text("SELECT id, username, full_name, role FROM users WHERE id = :id"),
                {"id": str(user_id)},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> list[UserRef]:
        rows = (
            self.conn.execute(text("SELECT id, username, full_name, role FROM users ORDER BY username"))
            .mappings()
            .fetchall()
        )
        return [self._row_to_user(row) for row in rows]


class SQLAlchemyAuditLogRepository(AuditLogRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_audit_log(row: RowMapping) -> AuditLog:
        new_state = row["new_state"]
        if isinstance(new_state, str):
            new_state = json.loads(new_state)
        metadata = row["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)

        return AuditLog(
            id=row["id"],
            uuid=row["uuid"],
            event_type=row["event_type"],
            actor_id=row["actor_id"],
            source=row["source"],
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            new_state=new_state,
            metadata=metadata,
            created_at=row["created_at"],
        )

    def create(self, audit_log: AuditLog) -> AuditLog:
        audit_uuid = str(ULID())
        with _transaction(self.conn):
            self.conn.execute(
                text(
                    "INSERT INTO audit_logs (uuid, event_type, actor_id, source, entity_type, entity_id, "
                    "new_state, metadata, created_at) "
                    "VALUES (:uuid, :event_type, :actor_id, :source, :entity_type, :entity_id, "
                    ":new_state, :metadata, :created_at)"
                ),
                {
                    "uuid": audit_uuid,
                    "event_type": audit_log.event_type,
                    "actor_id": audit_log.actor_id,
                    "source": audit_log.source,
                    "entity_type": audit_log.entity_type,
                    "entity_id": audit_log.entity_id,
                    "new_state": json.dumps(audit_log.new_state) if audit_log.new_state is not None else None,
                    "metadata": json.dumps(audit_log.metadata),
                    "created_at": _now(),
                },
            )

        row = (
            self.conn.execute(
                text("SELECT * FROM audit_logs WHERE uuid = :uuid"),
                {"uuid": audit_uuid},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            raise RuntimeError(f"Failed to retrieve audit log after create (uuid={audit_uuid})")
        return self._row_to_audit_log(row)

    def list_by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT * FROM audit_logs "
                    "WHERE entity_type = :entity_type AND entity_id = :entity_id "
                    "ORDER BY id DESC"
                ),
                {"entity_type": entity_type, "entity_id": entity_id},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_audit_log(row) for row in rows]

    def list_recent(self, limit: int = 50) -> list[AuditLog]:
        rows = (
            self.conn.execute(
                text("SELECT * FROM audit_logs ORDER BY id DESC LIMIT :limit"),
                {"limit": limit},
            )
            .mappings()
            .fetchall()
        )
        return [self._row_to_audit_log(row) for row in rows]
