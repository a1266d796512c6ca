"""CLI commands for diary entries."""

from __future__ import annotations

import json as json_module
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mdiary.entries.errors import DiaryError, StoreResult, ValidationFailed
from mdiary.entries.models import Entry, EntryDraft, EntryKind, MediaType, Status
from mdiary.entries.store import CollectionStore

console = Console()

TYPE_CHOICES = [t.value for t in MediaType]
STATUS_INTENTS = [s.value for s in Status if s is not Status.PENDING] + ["unknown-dates"]


# -----------------------------------------------------------------------------
# Shared helpers (also used by the pending and stats commands)
# -----------------------------------------------------------------------------


def open_store(ctx: Any) -> CollectionStore:
    """Load the diary's collection; dry runs never write back."""
    from mdiary.entries.database import EntryDatabase, NullPersistence

    dry_run = ctx.dry_run if ctx else False
    try:
        database = EntryDatabase()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    persistence = NullPersistence(database) if dry_run else database
    return CollectionStore.open(persistence)


def resolve_entry(store: CollectionStore, ref: str) -> Entry:
    """Find an entry by id or unique id prefix, exiting when there is none."""
    try:
        return store.resolve(ref)
    except DiaryError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e


def report_result(result: StoreResult, success: str | None = None) -> Entry | None:
    """Print the outcome of a store operation; exit non-zero on failure."""
    if not result.ok:
        if isinstance(result.error, ValidationFailed):
            console.print("[red]Entry not saved:[/red]")
            for err in result.error.errors:
                console.print(f"  [red]- {err}[/red]")
        else:
            console.print(f"[red]{result.error}[/red]")
        raise SystemExit(1)

    status = result.entry.status.label.lower() if result.entry else ""
    for name in result.ignored:
        console.print(f"[yellow]Ignored {name}: not used for {status} entries[/yellow]")
    for warning in result.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    if success:
        console.print(f"[green]{success}[/green]")
    return result.entry


def short_id(entry: Entry) -> str:
    return entry.id[:8]


def render_entries(entries: Iterable[Entry], title: str, pending: bool = False) -> None:
    """Print entries as a table."""
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Type", style="green")
    if pending:
        table.add_column("Hype", justify="right")
    else:
        table.add_column("Status")
        table.add_column("Started")
        table.add_column("Finished")
        table.add_column("Rating", justify="right")
    table.add_column("Tags", style="dim")

    for entry in entries:
        title_text = entry.title[:50] + "..." if len(entry.title) > 50 else entry.title
        if pending:
            extra = [str(entry.hype_rating) if entry.hype_rating is not None else "-"]
        else:
            extra = [
                entry.status.label,
                entry.start_date.isoformat() if entry.start_date else "-",
                entry.finish_date.isoformat() if entry.finish_date else "-",
                str(entry.rating),
            ]
        table.add_row(short_id(entry), title_text, entry.type.label, *extra, entry.tags_text)

    console.print(table)


def show_entry(entry: Entry) -> None:
    """Print every field of one entry in a panel."""
    from mdiary.entries.covers import resolve_cover

    lines = [
        f"[cyan]ID:[/cyan] {entry.id}",
        f"[cyan]Type:[/cyan] {entry.type.label}",
        f"[cyan]Status:[/cyan] {entry.status.label}",
    ]
    if entry.author:
        lines.append(f"[cyan]Author:[/cyan] {entry.author}")
    if entry.status.is_pending:
        if entry.hype_rating is not None:
            lines.append(f"[cyan]Hype:[/cyan] {entry.hype_rating}/10")
    else:
        lines.append(f"[cyan]Started:[/cyan] {entry.start_date or '-'}")
        lines.append(f"[cyan]Finished:[/cyan] {entry.finish_date or '-'}")
        lines.append(f"[cyan]Rating:[/cyan] {entry.rating}")
    if entry.tags:
        lines.append(f"[cyan]Tags:[/cyan] {entry.tags_text}")
    lines.append(f"[cyan]Cover:[/cyan] {resolve_cover(entry)}")
    lines.append(f"[cyan]Created:[/cyan] {entry.created_at.isoformat(timespec='seconds')}")
    if entry.notes:
        lines.append(f"\n{entry.notes}")
    if entry.metadata:
        lines.append(f"\n[dim]{json_module.dumps(entry.metadata, indent=2)}[/dim]")

    console.print(Panel("\n".join(lines), title=entry.title))


def dry_run_notice(ctx: Any) -> None:
    if ctx and ctx.dry_run:
        console.print("[yellow]Dry run: no changes saved.[/yellow]")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------


@click.group()
def entries() -> None:
    """Track books, films, series, video games and papers.

    Add entries, update them as you go, and browse the overview.
    """
    pass


@entries.command(name="add")
@click.argument("title")
@click.option("--type", "-t", "media_type", required=True, type=click.Choice(TYPE_CHOICES, case_sensitive=False))
@click.option("--author", help="Author (books)")
@click.option("--start", "start_date", help="Start date (YYYY-MM-DD)")
@click.option("--finish", "finish_date", help="Finish date (YYYY-MM-DD)")
@click.option("--rating", "-r", help="Rating 1-10, or N/A")
@click.option("--not-rated", is_flag=True, help="Finished but deliberately not rated")
@click.option("--notes", help="Free-form notes")
@click.option("--tags", help="Comma-separated tags")
@click.option("--cover", "cover_url", help="Cover image URL")
@click.option("--status", "status_intent", type=click.Choice(STATUS_INTENTS), help="Intended status (checked against the dates)")
@click.option("--metadata", help="Extra data as a JSON object")
@click.pass_obj
def add(
    ctx,
    title: str,
    media_type: str,
    author: str | None,
    start_date: str | None,
    finish_date: str | None,
    rating: str | None,
    not_rated: bool,
    notes: str | None,
    tags: str | None,
    cover_url: str | None,
    status_intent: str | None,
    metadata: str | None,
) -> None:
    """Add an entry you are reading, watching or playing (or have finished).

    \b
    Examples:
        mdiary entries add "Dune" -t book --author "Frank Herbert" --start 2024-01-02
        mdiary entries add "Hades" -t videogame --start 2024-03-01 --finish 2024-04-10 -r 9
        mdiary entries add "Old paper" -t paper --not-rated
    """
    if not_rated and rating:
        console.print("[red]Use either --rating or --not-rated, not both[/red]")
        raise SystemExit(1)

    draft = EntryDraft(
        title=title,
        type=media_type,
        author=author,
        start_date=start_date,
        finish_date=finish_date,
        rating="N/A" if not_rated else rating,
        notes=notes,
        tags=tags,
        cover_url=cover_url,
        metadata=metadata,
        status=status_intent,
    )
    store = open_store(ctx)
    entry = report_result(store.create(draft, EntryKind.ACTIVE))
    assert entry is not None
    console.print(f"[green]Added[/green] {entry.title} [dim]({short_id(entry)}, {entry.status.label})[/dim]")
    dry_run_notice(ctx)


@entries.command(name="list")
@click.option("--view", type=click.Choice(["overview", "pending"]), help="Which view (default from config)")
@click.option("--status", type=click.Choice(["all", "in-progress", "completed"]), help="Filter by status")
@click.option("--type", "-t", "media_type", type=click.Choice(["all", *TYPE_CHOICES], case_sensitive=False), help="Filter by type")
@click.option("--sort", "-s", help="Sort order, e.g. rating-desc, title-asc")
@click.option("--search", "-q", help="Search title, tags and author")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_entries(
    ctx,
    view: str | None,
    status: str | None,
    media_type: str | None,
    sort: str | None,
    search: str | None,
    as_json: bool,
) -> None:
    """List entries in the overview (or the pending list with --view pending)."""
    from mdiary.config.commands import get_setting
    from mdiary.entries.views import ViewState, project

    view = view or get_setting("view.default")
    if sort is None:
        sort = get_setting("view.pending_sort" if view == "pending" else "view.overview_sort")

    try:
        state = ViewState.from_options(kind=view, status=status, media_type=media_type, sort=sort, search=search)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    store = open_store(ctx)
    projection = project(store.all(), state)

    if as_json:
        click.echo(json_module.dumps([e.to_dict() for e in projection.entries], indent=2))
        return

    if not projection.entries:
        console.print("[yellow]No entries found matching criteria[/yellow]")
        return

    title = "Pending" if view == "pending" else "Overview"
    render_entries(projection.entries, f"{title} ({len(projection.entries)} of {projection.statistics.total})", pending=view == "pending")


@entries.command()
@click.argument("entry_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def show(ctx, entry_id: str, as_json: bool) -> None:
    """Show details for one entry."""
    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    if as_json:
        click.echo(json_module.dumps(entry.to_dict(), indent=2))
        return
    show_entry(entry)


# -----------------------------------------------------------------------------
# Field edit commands
# -----------------------------------------------------------------------------


@entries.command(name="fields")
def fields_cmd() -> None:
    """List all editable entry fields and their types."""
    from mdiary.entries.field_ops import ENTRY_SCHEMA

    table = Table(title="Entry Fields")
    table.add_column("Field", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Description")
    table.add_column("Constraints", style="yellow")

    for name, fdef in sorted(ENTRY_SCHEMA.items()):
        constraints = []
        if fdef.choices:
            constraints.append(f"choices: {', '.join(fdef.choices)}")
        if fdef.min_val is not None:
            constraints.append(f"min: {fdef.min_val}")
        if fdef.max_val is not None:
            constraints.append(f"max: {fdef.max_val}")
        table.add_row(name, fdef.type_name, fdef.description, "; ".join(constraints) or "-")

    console.print(table)


@entries.command(name="set")
@click.argument("entry_id")
@click.argument("field")
@click.argument("value")
@click.pass_obj
def set_field_cmd(ctx, entry_id: str, field: str, value: str) -> None:
    """Set an entry field value.

    \b
    Examples:
        mdiary entries set 3f2a rating 8
        mdiary entries set 3f2a finish_date 2024-05-01
        mdiary entries set 3f2a tags "scifi,classic"
        mdiary entries set 3f2a metadata.isbn 9780441013593
    """
    from mdiary.core.field_ops import coerce_value, parse_field_path, print_change
    from mdiary.entries.field_ops import ENTRY_SCHEMA, set_entry_field, validate_entry_field

    top, sub = parse_field_path(field)
    schema = ENTRY_SCHEMA.get(top)
    if schema is None:
        console.print(f"[red]Unknown field: {top!r}[/red]")
        console.print("[dim]Run 'mdiary entries fields' to see valid fields.[/dim]")
        raise SystemExit(1)

    try:
        coerced = value if sub is not None else coerce_value(value, schema)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    errors = validate_entry_field(field, coerced)
    if errors:
        for err in errors:
            console.print(f"[red]{err}[/red]")
        raise SystemExit(1)

    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    change, result = set_entry_field(store, entry.id, field, coerced)
    updated = report_result(result)
    print_change(change, console)
    if updated is not None and updated.status is not entry.status:
        console.print(f"[cyan]Status:[/cyan] {entry.status.label} -> {updated.status.label}")
    dry_run_notice(ctx)


@entries.command(name="unset")
@click.argument("entry_id")
@click.argument("field")
@click.pass_obj
def unset_field_cmd(ctx, entry_id: str, field: str) -> None:
    """Clear an entry field.

    \b
    Examples:
        mdiary entries unset 3f2a rating
        mdiary entries unset 3f2a metadata.isbn
    """
    from mdiary.core.field_ops import parse_field_path, print_change
    from mdiary.entries.field_ops import ENTRY_SCHEMA, unset_entry_field

    top, _sub = parse_field_path(field)
    if top not in ENTRY_SCHEMA:
        console.print(f"[red]Unknown field: {top!r}[/red]")
        console.print("[dim]Run 'mdiary entries fields' to see valid fields.[/dim]")
        raise SystemExit(1)

    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    change, result = unset_entry_field(store, entry.id, field)

    if result is None:
        console.print(f"[yellow]Field {field!r} was not set on {short_id(entry)}.[/yellow]")
        return

    updated = report_result(result)
    print_change(change, console)
    if updated is not None and updated.status is not entry.status:
        console.print(f"[cyan]Status:[/cyan] {entry.status.label} -> {updated.status.label}")
    dry_run_notice(ctx)


@entries.command(name="tag")
@click.argument("entry_id")
@click.option("--add", "add_tags", multiple=True, help="Tags to add")
@click.option("--remove", "remove_tags", multiple=True, help="Tags to remove")
@click.option("--set", "set_tags", help="Replace all tags (comma-separated)")
@click.pass_obj
def tag(ctx, entry_id: str, add_tags: tuple[str, ...], remove_tags: tuple[str, ...], set_tags: str | None) -> None:
    """Manage entry tags.

    \b
    Examples:
        mdiary entries tag 3f2a --add scifi --add classic
        mdiary entries tag 3f2a --remove old-tag
        mdiary entries tag 3f2a --set "scifi,classic"
    """
    from mdiary.core.field_ops import print_change
    from mdiary.entries.field_ops import modify_entry_tags

    if not add_tags and not remove_tags and set_tags is None:
        console.print("[red]Specify --add, --remove, or --set[/red]")
        raise SystemExit(1)

    replace = None
    if set_tags is not None:
        replace = [t.strip() for t in set_tags.split(",") if t.strip()]

    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    change, result = modify_entry_tags(
        store,
        entry.id,
        add=list(add_tags) if add_tags else None,
        remove=list(remove_tags) if remove_tags else None,
        replace=replace,
    )
    report_result(result)
    print_change(change, console)
    dry_run_notice(ctx)


# -----------------------------------------------------------------------------
# Lifecycle commands
# -----------------------------------------------------------------------------


@entries.command()
@click.argument("entry_id")
@click.pass_obj
def finish(ctx, entry_id: str) -> None:
    """Mark an in-progress entry as finished today."""
    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    updated = report_result(store.finish(entry.id))
    assert updated is not None
    console.print(f"[green]Finished[/green] {updated.title} [dim]({updated.status.label})[/dim]")
    dry_run_notice(ctx)


@entries.command()
@click.argument("entry_id")
@click.argument("value", required=False)
@click.option("--not-rated", is_flag=True, help="Record that the entry was deliberately not rated")
@click.pass_obj
def rate(ctx, entry_id: str, value: str | None, not_rated: bool) -> None:
    """Rate an entry from 1 to 10, finishing it if still in progress.

    \b
    Examples:
        mdiary entries rate 3f2a 8
        mdiary entries rate 3f2a --not-rated
    """
    if (value is None) == (not not_rated):
        console.print("[red]Give a rating from 1 to 10 or use --not-rated[/red]")
        raise SystemExit(1)

    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    updated = report_result(store.rate(entry.id, "N/A" if not_rated else value))
    assert updated is not None
    console.print(f"[green]Rated[/green] {updated.title}: {updated.rating} [dim]({updated.status.label})[/dim]")
    dry_run_notice(ctx)


@entries.command()
@click.argument("entry_id")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
@click.pass_obj
def delete(ctx, entry_id: str, force: bool) -> None:
    """Delete an entry permanently."""
    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)

    if not force and not click.confirm(f"Delete '{entry.title}'?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    report_result(store.delete(entry.id), success=f"Deleted {entry.title}")
    dry_run_notice(ctx)


# -----------------------------------------------------------------------------
# Import / export
# -----------------------------------------------------------------------------


@entries.command(name="export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_obj
def export_cmd(ctx, path: Path | None) -> None:
    """Export all entries as CSV (to PATH, or stdout)."""
    from mdiary.entries import tabular

    store = open_store(ctx)
    text = tabular.dumps(store.all())

    if path is None:
        click.echo(text, nl=False)
        return

    if ctx and ctx.dry_run:
        console.print(f"[yellow]Dry run: would write {len(store)} entries to {path}[/yellow]")
        return
    path.write_text(text, encoding="utf-8")
    console.print(f"[green]Exported {len(store)} entries to {path}[/green]")


@entries.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_cmd(ctx, path: Path) -> None:
    """Import entries from a CSV file; ids already present are skipped."""
    from mdiary.entries import tabular

    try:
        incoming = tabular.read_csv(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Could not read {path}: {e}[/red]")
        raise SystemExit(1) from e

    store = open_store(ctx)
    report = store.merge(incoming)

    console.print(f"[green]Imported {len(report.added)} entries[/green]")
    if report.skipped:
        console.print(f"[dim]Skipped {len(report.skipped)} entries already in the diary[/dim]")
    for warning in report.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    dry_run_notice(ctx)
