"""Collection statistics command."""

from __future__ import annotations

import json as json_module

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mdiary.entries.commands import open_store, short_id
from mdiary.entries.models import MediaType, Status
from mdiary.entries.views import compute_statistics

console = Console()


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def stats(ctx, as_json: bool) -> None:
    """Show diary statistics and recent activity."""
    store = open_store(ctx)
    s = compute_statistics(store.all())

    if as_json:
        click.echo(json_module.dumps(s.to_dict(), indent=2))
        return

    average = f"{s.average_rating}/10" if s.average_rating is not None else "-"
    content = f"""[cyan]Total entries:[/cyan] {s.total}
[cyan]Pending:[/cyan] {s.pending}
[cyan]In progress:[/cyan] {s.in_progress}
[cyan]Completed:[/cyan] {s.completed}
[cyan]Average rating:[/cyan] {average}"""
    console.print(Panel(content, title="Diary Stats"))

    table = Table(title="By type")
    table.add_column("Type", style="green")
    table.add_column("Entries", justify="right")
    for media_type in MediaType:
        table.add_row(media_type.label, str(s.by_type[media_type.value]))
    console.print(table)

    table = Table(title="By status")
    table.add_column("Status")
    table.add_column("Entries", justify="right")
    for status in Status:
        table.add_row(status.label, str(s.by_status[status.value]))
    console.print(table)

    if s.recent:
        console.print("\n[cyan]Recent activity:[/cyan]")
        for entry in s.recent:
            console.print(f"  - {entry.title} [dim]({short_id(entry)}, {entry.type.label}, {entry.status.label})[/dim]")
