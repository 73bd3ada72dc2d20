from __future__ import annotations

from datetime import date, datetime

import questionary
from rich.console import Console
from rich.table import Table

from clinicbill.cli.prompts import BACK, report_failure, select_user
from clinicbill.constants import CLINIC_TZ
from clinicbill.money import format_money
from clinicbill.repositories.base import UserDirectory
from clinicbill.services.billing_service import BillingService
from clinicbill.services.invoice_service import InvoiceService

console = Console()


def _parse_date(raw: str) -> date | None:
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        return None


def list_invoices_menu(invoice_service: InvoiceService) -> None:
    result = invoice_service.list_invoices()
    if not result.ok:
        report_failure(result)
        return
    invoices = result.unwrap()
    if not invoices:
        console.print("[yellow]No invoices yet.[/yellow]")
        return

    table = Table(title="Invoices")
    table.add_column("Number", style="bold")
    table.add_column("Date")
    table.add_column("Kind")
    table.add_column("Total", justify="right")
    table.add_column("Paid", justify="right")
    table.add_column("Outstanding", justify="right")
    table.add_column("Status")

    for inv in invoices:
        table.add_row(
            inv.invoice_number,
            inv.invoice.invoice_date.isoformat(),
            "Proforma" if inv.is_proforma else "Final",
            format_money(inv.total_amount),
            format_money(inv.total_paid),
            format_money(inv.outstanding_amount),
            inv.payment_status.value,
        )

    console.print()
    console.print(table)


def create_invoice_menu(
    invoice_service: InvoiceService,
    billing_service: BillingService,
    users: UserDirectory,
) -> None:
    console.print()
    console.print("[bold]New invoice[/bold]", style="cyan")

    billings_result = billing_service.list_billings()
    if not billings_result.ok:
        report_failure(billings_result)
        return
    billings = billings_result.unwrap()
    if not billings:
        console.print("[yellow]No session billings to invoice.[/yellow]")
        return

    choices = {f"{b.session_id} - {format_money(b.final_amount)}": b.id for b in billings}
    selected = questionary.checkbox("Session billings to include:", choices=list(choices)).ask()
    if not selected:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    number = questionary.text("Invoice number:").ask()
    if not number:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    today = datetime.now(CLINIC_TZ).date()
    while True:
        raw_date = questionary.text("Invoice date (YYYY-MM-DD):", default=today.isoformat()).ask()
        if raw_date is None:
            return
        invoice_date = _parse_date(raw_date)
        if invoice_date is not None:
            break
        console.print("[red]Invalid date. Try again.[/red]")

    is_proforma = questionary.confirm("Proforma invoice?", default=False).ask()
    user = select_user(users, "Issued by:")
    if user is None:
        return

    result = invoice_service.create_invoice(
        number,
        invoice_date,
        user.id,
        bool(is_proforma),
        [choices[label] for label in selected],
    )
    if not result.ok:
        report_failure(result)
        return
    invoice = result.unwrap()
    console.print(
        f"[green bold]Invoice {invoice.invoice_number} created, total "
        f"{format_money(invoice.total_amount)}.[/green bold]"
    )


def convert_invoice_menu(invoice_service: InvoiceService) -> None:
    result = invoice_service.list_invoices()
    if not result.ok:
        report_failure(result)
        return
    proformas = [inv for inv in result.unwrap() if inv.is_proforma]
    if not proformas:
        console.print("[yellow]No proforma invoices.[/yellow]")
        return

    choices = {f"{inv.invoice_number} - {format_money(inv.total_amount)}": inv for inv in proformas}
    choice = questionary.select("Proforma to convert:", choices=list(choices) + [BACK]).ask()
    if choice is None or choice == BACK:
        return
    invoice = choices[choice]

    new_number = questionary.text("Final invoice number:").ask()
    if not new_number:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    converted = invoice_service.convert_to_final(invoice.id, new_number)
    if not converted.ok:
        report_failure(converted)
        return
    console.print(
        f"[green bold]Invoice {invoice.invoice_number} is now final as "
        f"{converted.unwrap().invoice_number}.[/green bold]"
    )
