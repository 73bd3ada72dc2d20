from __future__ import annotations

from rich.console import Console
from rich.table import Table

from clinicbill.services.audit_service import AuditService

console = Console()


def audit_trail_menu(audit_service: AuditService, limit: int = 50) -> None:
    logs = audit_service.list_recent(limit)
    if not logs:
        console.print("[yellow]No audit entries yet.[/yellow]")
        return

    table = Table(title=f"Last {limit} audit entries")
    table.add_column("When", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Entity")
    table.add_column("Actor")

    for log in logs:
        table.add_row(
            log.created_at.strftime("%Y-%m-%d %H:%M:%S") if log.created_at else "",
            log.event_type,
            f"{log.entity_type}/{log.entity_id}",
            log.actor_id or "-",
        )

    console.print()
    console.print(table)
