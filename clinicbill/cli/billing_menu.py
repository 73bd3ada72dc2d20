from __future__ import annotations

import questionary
from rich.console import Console
from rich.table import Table

from clinicbill.cli.prompts import ask_amount, ask_uuid, report_failure, select_user
from clinicbill.models.details import SessionBillingDetails
from clinicbill.money import format_money
from clinicbill.repositories.base import UserDirectory
from clinicbill.services.billing_service import BillingService
from clinicbill.settings import settings

console = Console()


def _print_billing(details: SessionBillingDetails) -> None:
    console.print()
    console.print(f"[bold cyan]Billing {details.id}[/bold cyan]")
    console.print(f"  Session: {details.session_id}")
    console.print(f"  Patient: {details.patient_id}")

    table = Table(title="Consultations")
    table.add_column("Consultation")
    table.add_column("Price", justify="right")
    for c in details.session.consultations:
        table.add_row(c.name, format_money(c.price, settings.currency) if c.price is not None else "-")
    console.print(table)

    if details.billing.discounts:
        discounts = Table(title="Discounts")
        discounts.add_column("Reason")
        discounts.add_column("Amount", justify="right")
        for d in details.billing.discounts:
            discounts.add_row(d.reason, format_money(d.amount, settings.currency))
        console.print(discounts)

    console.print(f"  Subtotal: {format_money(details.subtotal_amount, settings.currency)}")
    console.print(f"  Discounts: {format_money(details.total_discount_amount, settings.currency)}")
    console.print(f"  [bold]Final: {format_money(details.final_amount, settings.currency)}[/bold]")


def list_billings_menu(billing_service: BillingService) -> None:
    result = billing_service.list_billings()
    if not result.ok:
        report_failure(result)
        return
    billings = result.unwrap()
    if not billings:
        console.print("[yellow]No session billings yet.[/yellow]")
        return

    table = Table(title="Session billings")
    table.add_column("Billing", style="dim")
    table.add_column("Session")
    table.add_column("Subtotal", justify="right")
    table.add_column("Discounts", justify="right")
    table.add_column("Final", justify="right", style="bold")

    for b in billings:
        table.add_row(
            str(b.id),
            str(b.session_id),
            format_money(b.subtotal_amount),
            format_money(b.total_discount_amount),
            format_money(b.final_amount),
        )

    console.print()
    console.print(table)


def create_billing_menu(billing_service: BillingService) -> None:
    console.print()
    console.print("[bold]Bill a completed session[/bold]", style="cyan")

    session_id = ask_uuid("Session id:")
    if session_id is None:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    result = billing_service.create_session_billing(session_id)
    if not result.ok:
        report_failure(result)
        return
    _print_billing(result.unwrap())
    console.print("[green bold]Billing created.[/green bold]")


def apply_discount_menu(billing_service: BillingService, users: UserDirectory) -> None:
    console.print()
    console.print("[bold]Apply a discount[/bold]", style="cyan")

    session_id = ask_uuid("Session id:")
    if session_id is None:
        console.print("[yellow]Cancelled.[/yellow]")
        return

    current = billing_service.get_billing_for_session(session_id)
    if not current.ok:
        report_failure(current)
        return
    _print_billing(current.unwrap())

    user = select_user(users, "Applied by:")
    if user is None:
        return
    amount = ask_amount("Discount amount (e.g. 50.00):")
    if amount is None:
        console.print("[yellow]Cancelled.[/yellow]")
        return
    reason = questionary.text("Reason:").ask() or ""

    result = billing_service.apply_discount(session_id, user.id, amount, reason)
    if not result.ok:
        report_failure(result)
        return
    _print_billing(result.unwrap())
    console.print("[green bold]Discount applied.[/green bold]")
