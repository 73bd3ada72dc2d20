from __future__ import annotations

import questionary
from rich.console import Console
from rich.table import Table

from clinicbill.cli.prompts import ask_amount, report_failure, select_user
from clinicbill.constants import PAYMENT_TYPE_LABELS
from clinicbill.money import format_money
from clinicbill.repositories.base import UserDirectory
from clinicbill.services.invoice_service import InvoiceService
from clinicbill.services.payment_service import PaymentService

console = Console()


def process_payment_menu(
    payment_service: PaymentService,
    invoice_service: InvoiceService,
    users: UserDirectory,
) -> None:
    console.print()
    console.print("[bold]Record a payment[/bold]", style="cyan")

    invoices_result = invoice_service.list_invoices()
    if not invoices_result.ok:
        report_failure(invoices_result)
        return
    invoices = invoices_result.unwrap()
    if not invoices:
        console.print("[yellow]No invoices to pay.[/yellow]")
        return

    choices = {
        f"{inv.invoice_number} - outstanding {format_money(inv.outstanding_amount)}": inv.id for inv in invoices
    }
    selected = questionary.checkbox("Invoices:", choices=list(choices)).ask()
    if not selected:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    amount = ask_amount("Amount (e.g. 150.00):")
    if amount is None:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    type_choices = {label: payment_type for payment_type, label in PAYMENT_TYPE_LABELS.items()}
    type_label = questionary.select("Payment type:", choices=list(type_choices)).ask()
    if type_label is None:
        return

    user = select_user(users, "Processed by:")
    if user is None:
        return
    notes = questionary.text("Notes (optional):").ask() or None

    result = payment_service.process_payment(
        [choices[label] for label in selected],
        amount,
        type_choices[type_label],
        user.id,
        notes=notes,
    )
    if not result.ok:
        report_failure(result)
        return
    payment = result.unwrap().payment
    console.print(
        f"[green bold]Payment of {format_money(payment.amount, payment.currency)} recorded.[/green bold]"
    )


def list_payments_menu(payment_service: PaymentService) -> None:
    result = payment_service.list_payments()
    if not result.ok:
        report_failure(result)
        return
    payments = result.unwrap()
    if not payments:
        console.print("[yellow]No payments yet.[/yellow]")
        return

    table = Table(title="Payments")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Amount", justify="right", style="bold")
    table.add_column("Invoices")
    table.add_column("Notes")

    for details in payments:
        p = details.payment
        table.add_row(
            p.payment_date.strftime("%Y-%m-%d %H:%M"),
            PAYMENT_TYPE_LABELS[p.payment_type],
            format_money(p.amount, p.currency),
            ", ".join(inv.invoice_number for inv in details.invoices),
            p.notes or "",
        )

    console.print()
    console.print(table)
