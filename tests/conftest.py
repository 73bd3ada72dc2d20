"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from clinicbill.models.session import SessionStatus
from clinicbill.models.user import UserRole
from clinicbill.money import to_cents
from clinicbill.outbox import EventDispatcher, EventOutbox
from clinicbill.repositories.sqlalchemy import (
    SQLAlchemyAuditLogRepository,
    SQLAlchemyInvoiceRepository,
    SQLAlchemyPaymentRepository,
    SQLAlchemySessionBillingRepository,
    SQLAlchemySessionProvider,
    SQLAlchemyUserDirectory,
)

# Matches Alembic head: 3f9a1c2b7d10 (initial schema)
SCHEMA_DDL = """
CREATE TABLE users (
    id VARCHAR(36) PRIMARY KEY,
    username VARCHAR(255) NOT NULL UNIQUE,
    full_name VARCHAR(255) NOT NULL DEFAULT '',
    role VARCHAR(32) NOT NULL,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE clinical_sessions (
    id VARCHAR(36) PRIMARY KEY,
    patient_id VARCHAR(36) NOT NULL,
    status VARCHAR(32) NOT NULL,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE consultations (
    id VARCHAR(36) PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    price_cents INTEGER,
    currency VARCHAR(3) NOT NULL DEFAULT 'RON'
);

CREATE TABLE session_consultations (
    session_id VARCHAR(36) NOT NULL REFERENCES clinical_sessions(id) ON DELETE CASCADE,
    consultation_id VARCHAR(36) NOT NULL REFERENCES consultations(id),
    sort_order INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (session_id, consultation_id)
);

CREATE TABLE session_billings (
    id VARCHAR(36) PRIMARY KEY,
    session_id VARCHAR(36) NOT NULL UNIQUE REFERENCES clinical_sessions(id),
    version INTEGER NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE billing_discounts (
    id VARCHAR(36) PRIMARY KEY,
    billing_id VARCHAR(36) NOT NULL REFERENCES session_billings(id) ON DELETE CASCADE,
    amount_cents INTEGER NOT NULL CHECK (amount_cents > 0),
    reason TEXT NOT NULL,
    applied_by VARCHAR(36) NOT NULL REFERENCES users(id),
    position INTEGER NOT NULL,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE invoices (
    id VARCHAR(36) PRIMARY KEY,
    invoice_number VARCHAR(64) NOT NULL UNIQUE,
    invoice_date DATE NOT NULL,
    generated_by VARCHAR(36) NOT NULL REFERENCES users(id),
    is_proforma BOOLEAN NOT NULL DEFAULT 0,
    version INTEGER NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE invoice_session_billings (
    invoice_id VARCHAR(36) NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    billing_id VARCHAR(36) NOT NULL REFERENCES session_billings(id),
    sort_order INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (invoice_id, billing_id)
);

CREATE TABLE payments (
    id VARCHAR(36) PRIMARY KEY,
    generated_by VARCHAR(36) NOT NULL REFERENCES users(id),
    amount_cents INTEGER NOT NULL CHECK (amount_cents > 0),
    currency VARCHAR(3) NOT NULL DEFAULT 'RON',
    payment_date DATETIME NOT NULL,
    payment_type VARCHAR(32) NOT NULL,
    notes TEXT,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE payment_invoices (
    payment_id VARCHAR(36) NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
    invoice_id VARCHAR(36) NOT NULL REFERENCES invoices(id),
    sort_order INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (payment_id, invoice_id)
);

CREATE TABLE audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    event_type VARCHAR(64) NOT NULL,
    actor_id VARCHAR(36),
    source VARCHAR(32) NOT NULL DEFAULT '',
    entity_type VARCHAR(64) NOT NULL DEFAULT '',
    entity_id VARCHAR(36) NOT NULL DEFAULT '',
    new_state TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


def _insert_user(conn: Connection, username: str = "reception", role: UserRole = UserRole.RECEPTIONIST) -> UUID:
    user_id = uuid4()
    conn.execute(
        text("INSERT INTO users (id, username, full_name, role) VALUES (:id, :username, :full_name, :role)"),
        {"id": str(user_id), "username": username, "full_name": username.title(), "role": role.value},
    )
    conn.commit()
    return user_id


def _insert_session(
    conn: Connection,
    prices: tuple = (Decimal("100.00"), Decimal("50.00")),
    status: SessionStatus = SessionStatus.COMPLETED,
    patient_id: UUID | None = None,
) -> UUID:
    """Insert a session with one consultation per price. A None price is an unpriced consultation."""
    session_id = uuid4()
    conn.execute(
        text("INSERT INTO clinical_sessions (id, patient_id, status) VALUES (:id, :patient_id, :status)"),
        {"id": str(session_id), "patient_id": str(patient_id or uuid4()), "status": status.value},
    )
    for order, price in enumerate(prices):
        consultation_id = uuid4()
        conn.execute(
            text("INSERT INTO consultations (id, name, price_cents) VALUES (:id, :name, :price_cents)"),
            {
                "id": str(consultation_id),
                "name": f"Consultation {order + 1}",
                "price_cents": to_cents(price) if price is not None else None,
            },
        )
        conn.execute(
            text(
                "INSERT INTO session_consultations (session_id, consultation_id, sort_order) "
                "VALUES (:session_id, :consultation_id, :sort_order)"
            ),
            {"session_id": str(session_id), "consultation_id": str(consultation_id), "sort_order": order},
        )
    conn.commit()
    return session_id


@pytest.fixture()
def make_user(db_connection: Connection):
    def _make(username: str = "reception", role: UserRole = UserRole.RECEPTIONIST) -> UUID:
        return _insert_user(db_connection, username, role)

    return _make


@pytest.fixture()
def make_session(db_connection: Connection):
    def _make(**kwargs) -> UUID:
        return _insert_session(db_connection, **kwargs)

    return _make


@pytest.fixture()
def staff_user(make_user) -> UUID:
    return make_user("accounting", UserRole.ACCOUNTANT)


@pytest.fixture()
def billing_repo(db_connection: Connection) -> SQLAlchemySessionBillingRepository:
    return SQLAlchemySessionBillingRepository(db_connection)


@pytest.fixture()
def invoice_repo(db_connection: Connection) -> SQLAlchemyInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db_connection)


@pytest.fixture()
def payment_repo(db_connection: Connection) -> SQLAlchemyPaymentRepository:
    return SQLAlchemyPaymentRepository(db_connection)


@pytest.fixture()
def session_provider(db_connection: Connection) -> SQLAlchemySessionProvider:
    return SQLAlchemySessionProvider(db_connection)


@pytest.fixture()
def user_directory(db_connection: Connection) -> SQLAlchemyUserDirectory:
    return SQLAlchemyUserDirectory(db_connection)


@pytest.fixture()
def audit_repo(db_connection: Connection) -> SQLAlchemyAuditLogRepository:
    return SQLAlchemyAuditLogRepository(db_connection)


@pytest.fixture()
def outbox() -> EventOutbox:
    return EventOutbox()


@pytest.fixture()
def dispatcher(outbox: EventOutbox) -> EventDispatcher:
    return EventDispatcher(outbox)
