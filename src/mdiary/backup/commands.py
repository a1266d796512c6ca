"""
Backup management CLI commands.

Lists, creates, cleans and restores backups of the entries file. Backups
are also taken automatically every time the diary is saved.
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mdiary.config.commands import get_setting
from mdiary.core.backup import (
    BackupInfo,
    create_backup,
    list_backups,
    rollback_database,
)
from mdiary.core.config import get_paths

console = Console()


def _entries_paths() -> tuple[Path, Path]:
    """Return (entries file, backup folder), exiting when there is no diary."""
    try:
        paths = get_paths()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e
    return paths.entries_db, paths.backups


def _format_age(days: float) -> str:
    """Format age in human-readable form."""
    if days < 1:
        hours = days * 24
        if hours < 1:
            return f"{int(hours * 60)}m ago"
        return f"{int(hours)}h ago"
    elif days < 7:
        return f"{int(days)}d ago"
    elif days < 30:
        return f"{int(days / 7)}w ago"
    else:
        return f"{int(days / 30)}mo ago"


@click.group()
def backup():
    """Manage backups of the entries file.

    A timestamped copy of entries.csv is kept every time it is saved.
    """
    pass


@backup.command(name="list")
@click.option("-n", "--limit", type=int, default=10, help="Maximum number of backups to show")
@click.option("--all", "show_all", is_flag=True, help="Show all backups (no limit)")
def list_cmd(limit: int, show_all: bool):
    """List available backups, newest first."""
    db_path, backup_dir = _entries_paths()
    backups = list_backups(backup_dir, db_path.stem)

    if not backups:
        console.print(f"[dim]No backups found for {db_path.name}[/dim]")
        return

    display_backups = backups if show_all else backups[:limit]
    hidden = len(backups) - len(display_backups)

    table = Table(
        title=f"[bold]{db_path.name}[/bold] ({len(backups)} backups)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Date", style="green")
    table.add_column("Age", style="yellow", justify="right")
    table.add_column("Size", style="blue", justify="right")
    table.add_column("Filename", style="dim")

    for i, info in enumerate(display_backups):
        table.add_row(
            str(i),
            info.timestamp.strftime("%Y-%m-%d %H:%M"),
            _format_age(info.age_days),
            info.size_human,
            info.path.name,
        )

    console.print(table)
    if hidden > 0:
        console.print(f"  [dim]... and {hidden} older backups (use --all to see all)[/dim]")


@backup.command(name="status")
def status_cmd():
    """Show backup counts, sizes and the retention policy."""
    db_path, backup_dir = _entries_paths()
    keep_days = int(get_setting("backup.keep_days"))
    keep_count = int(get_setting("backup.keep_count"))

    backups = list_backups(backup_dir, db_path.stem)
    total_size = sum(b.size_bytes for b in backups)
    expired = sum(1 for b in backups if b.age_days > keep_days)

    table = Table(title="Backup Status", show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("Count", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Latest", justify="right")
    table.add_column("Oldest", justify="right")
    table.add_column(f">{keep_days}d", justify="right", style="yellow")
    table.add_row(
        db_path.name,
        str(len(backups)),
        f"{total_size / 1024:.1f} KB" if total_size else "-",
        backups[0].timestamp.strftime("%Y-%m-%d") if backups else "-",
        backups[-1].timestamp.strftime("%Y-%m-%d") if backups else "-",
        str(expired) if expired else "[green]0[/green]",
    )
    console.print(table)

    console.print()
    console.print(Panel(
        f"[bold]Retention Policy[/bold]\n"
        f"Keep minimum: [cyan]{keep_count}[/cyan] backups\n"
        f"Delete older than: [cyan]{keep_days}[/cyan] days\n\n"
        f"[dim]Backups are cleaned automatically when the diary is saved.[/dim]\n"
        f"[dim]Use 'mdiary config set backup.keep_days N' to change retention.[/dim]",
        title="Settings",
    ))


@backup.command(name="create")
def create_cmd():
    """Take a backup of the entries file now."""
    db_path, backup_dir = _entries_paths()
    if not db_path.exists():
        console.print(f"[yellow]Nothing to back up: {db_path.name} does not exist yet[/yellow]")
        return
    path = create_backup(db_path, backup_dir)
    console.print(f"[green]Created backup {path.name}[/green]")


@backup.command(name="clean")
@click.option("--days", type=int, default=None, help="Remove backups older than this many days (default: from config)")
@click.option("--keep", type=int, default=None, help="Always keep at least this many backups (default: from config)")
@click.option("--dry-run", "-n", is_flag=True, help="Preview what would be deleted")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean_cmd(days: int | None, keep: int | None, dry_run: bool, force: bool):
    """Clean up old backups.

    Removes backups older than --days while always keeping at least --keep
    backups. Uses values from config if not specified.

    \b
    Examples:
        mdiary backup clean                # Use configured defaults
        mdiary backup clean --days 7       # Delete backups older than 7 days
        mdiary backup clean -n             # Preview what would be deleted
    """
    if days is None:
        days = int(get_setting("backup.keep_days"))
    if keep is None:
        keep = int(get_setting("backup.keep_count"))

    db_path, backup_dir = _entries_paths()
    to_delete: list[BackupInfo] = [
        info for i, info in enumerate(list_backups(backup_dir, db_path.stem)) if i >= keep and info.age_days > days
    ]

    if not to_delete:
        console.print("[green]No old backups to clean up.[/green]")
        return

    console.print(f"[bold]Found {len(to_delete)} backup(s) to delete:[/bold]")
    for info in to_delete[:10]:
        console.print(f"  [red]x[/red] {info.path.name} [dim]({_format_age(info.age_days)}, {info.size_human})[/dim]")
    if len(to_delete) > 10:
        console.print(f"  [dim]... and {len(to_delete) - 10} more[/dim]")

    total_size = sum(b.size_bytes for b in to_delete)
    console.print(f"\nTotal: [bold]{len(to_delete)}[/bold] files, [bold]{total_size / 1024:.1f} KB[/bold]")

    if dry_run:
        console.print("\n[yellow]DRY RUN - no files deleted[/yellow]")
        return

    if not force and not click.confirm("\nProceed with deletion?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    deleted = 0
    for info in to_delete:
        try:
            info.path.unlink(missing_ok=True)
            deleted += 1
        except OSError as e:
            console.print(f"[red]Failed to delete {info.path.name}: {e}[/red]")

    console.print(f"\n[green]Deleted {deleted} backup(s)[/green]")


@backup.command(name="rollback")
@click.option("-i", "--index", type=int, default=0, help="Backup to restore (0 = most recent, 1 = second most recent, etc.)")
@click.option("--dry-run", "-n", is_flag=True, help="Preview without making changes")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def rollback_cmd(index: int, dry_run: bool, force: bool):
    """Restore the entries file from a backup.

    Creates a backup of the current state before restoring.

    \b
    Examples:
        mdiary backup rollback             # Restore most recent backup
        mdiary backup rollback -i 1        # Restore second most recent
        mdiary backup rollback -n          # Preview (dry run)
    """
    db_path, backup_dir = _entries_paths()
    backups = list_backups(backup_dir, db_path.stem)
    if not backups:
        console.print(f"[red]No backups found for {db_path.name}[/red]")
        raise SystemExit(1)

    if index >= len(backups):
        console.print(f"[red]Backup index {index} out of range (only {len(backups)} backups)[/red]")
        raise SystemExit(1)

    info = backups[index]
    console.print(Panel(
        f"[bold]Current:[/bold] {db_path.name}\n"
        f"[bold]Restore from:[/bold] {info.path.name}\n"
        f"[bold]Backup date:[/bold] {info.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"[bold]Backup age:[/bold] {_format_age(info.age_days)}\n"
        f"[bold]Backup size:[/bold] {info.size_human}",
        title="Rollback Preview",
    ))

    if dry_run:
        console.print("\n[yellow]DRY RUN - no changes made[/yellow]")
        return

    if not force:
        console.print("\n[yellow]Warning: This will create a backup of the current state, then restore.[/yellow]")
        if not click.confirm("Proceed with rollback?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

    try:
        rollback_database(db_path, backup_dir, index)
    except OSError as e:
        console.print(f"[red]Rollback failed: {e}[/red]")
        raise click.Abort() from e
    console.print(f"\n[green]Successfully restored {db_path.name} from {info.path.name}[/green]")
    console.print("[dim]A backup of the previous state was created.[/dim]")
