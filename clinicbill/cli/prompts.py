from __future__ import annotations

from decimal import Decimal
from uuid import UUID

import questionary
from rich.console import Console

from clinicbill.models.user import UserRef
from clinicbill.money import parse_money
from clinicbill.repositories.base import UserDirectory
from clinicbill.result import Result

console = Console()

BACK = "Back"


def ask_uuid(message: str) -> UUID | None:
    """Prompt until a valid UUID is entered. Blank input cancels."""
    while True:
        raw = questionary.text(message).ask()
        if not raw or not raw.strip():
            return None
        try:
            return UUID(raw.strip())
        except ValueError:
            console.print("[red]Invalid id. Try again.[/red]")


def ask_amount(message: str) -> Decimal | None:
    """Prompt until a positive amount is entered. Blank input cancels."""
    while True:
        raw = questionary.text(message).ask()
        if not raw or not raw.strip():
            return None
        amount = parse_money(raw)
        if amount is not None and amount > 0:
            return amount
        console.print("[red]Invalid amount. Try again.[/red]")


def select_user(users: UserDirectory, message: str = "Acting user:") -> UserRef | None:
    available = users.list_users()
    if not available:
        console.print("[yellow]No users registered.[/yellow]")
        return None
    choices = {f"{u.username} ({u.role.value})": u for u in available}
    choice = questionary.select(message, choices=list(choices) + [BACK]).ask()
    if choice is None or choice == BACK:
        return None
    return choices[choice]


def report_failure(result: Result) -> None:
    console.print(f"[red]{result.error_message}[/red]")
