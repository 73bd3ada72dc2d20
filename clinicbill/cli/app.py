from __future__ import annotations

from dataclasses import dataclass

import questionary
from rich.console import Console

from clinicbill.cli.audit_menu import audit_trail_menu
from clinicbill.cli.billing_menu import apply_discount_menu, create_billing_menu, list_billings_menu
from clinicbill.cli.invoice_menu import convert_invoice_menu, create_invoice_menu, list_invoices_menu
from clinicbill.cli.payment_menu import list_payments_menu, process_payment_menu
from clinicbill.outbox import EventDispatcher, EventOutbox
from clinicbill.repositories.base import UserDirectory
from clinicbill.repositories.factory import (
    get_audit_log_repository,
    get_invoice_repository,
    get_payment_repository,
    get_session_billing_repository,
    get_session_provider,
    get_user_directory,
)
from clinicbill.services.audit_service import AuditService
from clinicbill.services.billing_service import BillingService
from clinicbill.services.invoice_service import InvoiceService
from clinicbill.services.payment_service import PaymentService

console = Console()

LIST_BILLINGS = "List session billings"
BILL_SESSION = "Bill a completed session"
APPLY_DISCOUNT = "Apply a discount"
LIST_INVOICES = "List invoices"
CREATE_INVOICE = "Create invoice"
CONVERT_INVOICE = "Convert proforma to final"
PROCESS_PAYMENT = "Record a payment"
LIST_PAYMENTS = "List payments"
AUDIT_TRAIL = "Audit trail"
EXIT = "Exit"


@dataclass
class Services:
    billing: BillingService
    invoice: InvoiceService
    payment: PaymentService
    audit: AuditService
    users: UserDirectory
    dispatcher: EventDispatcher


def build_services(source: str = "cli") -> Services:
    """Wire services to the global connection, with billing events audited."""
    billing_repo = get_session_billing_repository()
    invoice_repo = get_invoice_repository()
    payment_repo = get_payment_repository()
    sessions = get_session_provider()
    users = get_user_directory()
    outbox = EventOutbox()
    dispatcher = EventDispatcher(outbox)

    billing_service = BillingService(billing_repo, invoice_repo, payment_repo, sessions, users, outbox)
    audit_service = AuditService(get_audit_log_repository(), source=source)
    audit_service.subscribe_to(dispatcher)
    dispatcher.subscribe("SessionCompleted", billing_service.handle_session_completed)

    return Services(
        billing=billing_service,
        invoice=InvoiceService(invoice_repo, billing_repo, payment_repo, sessions, users, outbox),
        payment=PaymentService(payment_repo, invoice_repo, billing_repo, sessions, users, outbox),
        audit=audit_service,
        users=users,
        dispatcher=dispatcher,
    )


def main_menu() -> None:
    services = build_services()

    console.print()
    console.print("[bold]Clinic Billing[/bold]", style="cyan")
    console.print()

    while True:
        choice = questionary.select(
            "Main menu",
            choices=[
                LIST_BILLINGS,
                BILL_SESSION,
                APPLY_DISCOUNT,
                LIST_INVOICES,
                CREATE_INVOICE,
                CONVERT_INVOICE,
                PROCESS_PAYMENT,
                LIST_PAYMENTS,
                AUDIT_TRAIL,
                EXIT,
            ],
        ).ask()

        if choice is None or choice == EXIT:
            console.print("[bold]Goodbye![/bold]")
            break
        elif choice == LIST_BILLINGS:
            list_billings_menu(services.billing)
        elif choice == BILL_SESSION:
            create_billing_menu(services.billing)
        elif choice == APPLY_DISCOUNT:
            apply_discount_menu(services.billing, services.users)
        elif choice == LIST_INVOICES:
            list_invoices_menu(services.invoice)
        elif choice == CREATE_INVOICE:
            create_invoice_menu(services.invoice, services.billing, services.users)
        elif choice == CONVERT_INVOICE:
            convert_invoice_menu(services.invoice)
        elif choice == PROCESS_PAYMENT:
            process_payment_menu(services.payment, services.invoice, services.users)
        elif choice == LIST_PAYMENTS:
            list_payments_menu(services.payment)
        elif choice == AUDIT_TRAIL:
            audit_trail_menu(services.audit)

        services.dispatcher.dispatch_pending()
