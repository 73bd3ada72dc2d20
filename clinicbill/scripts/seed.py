"""Seed the database with demo data for local development.

Usage:
    python -m clinicbill.scripts.seed
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from faker import Faker
from rich.console import Console
from rich.table import Table
from sqlalchemy import Connection, text

from clinicbill.cli.app import build_services
from clinicbill.constants import CLINIC_TZ
from clinicbill.db import close_connection, get_connection, initialize_db
from clinicbill.logging import configure_logging
from clinicbill.models.payment import PaymentType
from clinicbill.models.session import SessionStatus
from clinicbill.models.user import UserRole
from clinicbill.money import format_money, to_cents

console = Console()
fake = Faker("ro_RO")

NUM_PATIENT_SESSIONS = 12

# Deleted children first so foreign keys hold.
TABLES_TO_CLEAR = [
    "audit_logs",
    "payment_invoices",
    "payments",
    "invoice_session_billings",
    "invoices",
    "billing_discounts",
    "session_billings",
    "session_consultations",
    "consultations",
    "clinical_sessions",
    "users",
]

STAFF = [
    ("admin", UserRole.ADMIN),
    ("reception", UserRole.RECEPTIONIST),
    ("accounting", UserRole.ACCOUNTANT),
    ("dr.popescu", UserRole.DOCTOR),
]

# (name, price) ; price None means the consultation is free of charge
CONSULTATION_CATALOG = [
    ("General consultation", Decimal("150.00")),
    ("Cardiology consultation", Decimal("250.00")),
    ("ECG", Decimal("100.00")),
    ("Blood panel", Decimal("85.50")),
    ("Ultrasound", Decimal("200.00")),
    ("Follow-up visit", None),
]

DISCOUNT_REASONS = ["Loyal patient", "Courtesy", "Staff family", "Package price"]


def _clear_all(conn: Connection) -> None:
    console.print("\n[yellow]Clearing all tables...[/yellow]")
    for table in TABLES_TO_CLEAR:
        conn.execute(text(f"DELETE FROM {table}"))  # noqa: S608
        console.print(f"  Cleared [dim]{table}[/dim]")
    conn.commit()
    console.print("[green]All tables cleared.[/green]\n")


def _create_users(conn: Connection) -> list[UUID]:
    console.print("[cyan]Creating staff users...[/cyan]")
    user_ids = []
    for username, role in STAFF:
        user_id = uuid4()
        conn.execute(
            text("INSERT INTO users (id, username, full_name, role) VALUES (:id, :username, :full_name, :role)"),
            {"id": str(user_id), "username": username, "full_name": fake.name(), "role": role.value},
        )
        user_ids.append(user_id)
        console.print(f"  {username} ({role.value})")
    conn.commit()
    return user_ids


def _create_catalog(conn: Connection) -> list[UUID]:
    console.print("[cyan]Creating consultation catalog...[/cyan]")
    ids = []
    for name, price in CONSULTATION_CATALOG:
        consultation_id = uuid4()
        conn.execute(
            text("INSERT INTO consultations (id, name, price_cents) VALUES (:id, :name, :price_cents)"),
            {"id": str(consultation_id), "name": name, "price_cents": to_cents(price) if price is not None else None},
        )
        ids.append(consultation_id)
    conn.commit()
    return ids


def _create_sessions(conn: Connection, consultation_ids: list[UUID]) -> list[UUID]:
    """Create sessions for random patients. Most are completed, a few are not."""
    console.print("[cyan]Creating clinical sessions...[/cyan]")
    completed = []
    for i in range(NUM_PATIENT_SESSIONS):
        session_id = uuid4()
        status = SessionStatus.COMPLETED if i < NUM_PATIENT_SESSIONS - 2 else SessionStatus.SCHEDULED
        conn.execute(
            text("INSERT INTO clinical_sessions (id, patient_id, status) VALUES (:id, :patient_id, :status)"),
            {"id": str(session_id), "patient_id": str(uuid4()), "status": status.value},
        )
        for order, consultation_id in enumerate(random.sample(consultation_ids, random.randint(1, 3))):
            conn.execute(
                text(
                    "INSERT INTO session_consultations (session_id, consultation_id, sort_order) "
                    "VALUES (:session_id, :consultation_id, :sort_order)"
                ),
                {"session_id": str(session_id), "consultation_id": str(consultation_id), "sort_order": order},
            )
        if status == SessionStatus.COMPLETED:
            completed.append(session_id)
    conn.commit()
    console.print(f"[green]{NUM_PATIENT_SESSIONS} sessions created, {len(completed)} completed.[/green]\n")
    return completed


def seed() -> None:
    initialize_db()
    conn = get_connection()
    _clear_all(conn)

    user_ids = _create_users(conn)
    consultation_ids = _create_catalog(conn)
    completed = _create_sessions(conn, consultation_ids)

    services = build_services()
    admin = user_ids[0]
    accountant = user_ids[2]

    console.print("[cyan]Billing completed sessions...[/cyan]")
    billings = []
    for session_id in completed:
        details = services.billing.create_session_billing(session_id).unwrap()
        if details.subtotal_amount > 0 and random.random() > 0.6:
            amount = min(details.subtotal_amount, Decimal(random.choice([10, 20, 50])))
            details = services.billing.apply_discount(
                session_id, admin, amount, random.choice(DISCOUNT_REASONS)
            ).unwrap()
        billings.append(details)
    services.dispatcher.dispatch_pending()

    console.print("[cyan]Issuing invoices and payments...[/cyan]")
    table = Table(title="Invoices")
    table.add_column("Number", style="bold")
    table.add_column("Kind")
    table.add_column("Total", justify="right")
    table.add_column("Status")

    issued = datetime.now(CLINIC_TZ) - timedelta(days=30)
    for i in range(0, len(billings), 2):
        bundle = billings[i : i + 2]
        is_proforma = i % 4 == 2
        number = f"{'PF' if is_proforma else 'INV'}-{issued.year}-{i // 2 + 1:04d}"
        invoice = services.invoice.create_invoice(
            number,
            (issued + timedelta(days=i)).date(),
            accountant,
            is_proforma,
            [b.id for b in bundle],
        ).unwrap()

        if not is_proforma and invoice.total_amount > 0 and random.random() > 0.3:
            partial = random.random() > 0.5
            amount = (invoice.total_amount / 2).quantize(Decimal("0.01")) if partial else invoice.total_amount
            services.payment.process_payment(
                [invoice.id],
                amount,
                random.choice([PaymentType.CASH, PaymentType.CARD, PaymentType.BANK_TRANSFER]),
                accountant,
            ).unwrap()
            invoice = services.invoice.get_invoice(invoice.id).unwrap()

        table.add_row(
            invoice.invoice_number,
            "Proforma" if invoice.is_proforma else "Final",
            format_money(invoice.total_amount),
            invoice.payment_status.value,
        )
    services.dispatcher.dispatch_pending()

    console.print(table)
    console.print("\n[green bold]Seed complete.[/green bold]")


if __name__ == "__main__":
    configure_logging("INFO")
    try:
        seed()
    finally:
        close_connection()
