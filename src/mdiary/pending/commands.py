"""CLI commands for the pending list (things you plan to read, watch or play)."""

from __future__ import annotations

import json as json_module

import click
from rich.console import Console

from mdiary.entries.commands import (
    TYPE_CHOICES,
    dry_run_notice,
    open_store,
    render_entries,
    report_result,
    resolve_entry,
    short_id,
)
from mdiary.entries.models import EntryDraft, EntryKind

console = Console()


@click.group()
def pending() -> None:
    """Manage the pending list.

    Pending entries have no dates or rating; start one to move it to the overview.
    """
    pass


@pending.command(name="add")
@click.argument("title")
@click.option("--type", "-t", "media_type", required=True, type=click.Choice(TYPE_CHOICES, case_sensitive=False))
@click.option("--hype", "hype_rating", help="How much you look forward to it (1-10)")
@click.option("--author", help="Author (books)")
@click.option("--notes", help="Free-form notes")
@click.option("--tags", help="Comma-separated tags")
@click.option("--cover", "cover_url", help="Cover image URL")
@click.pass_obj
def add(
    ctx,
    title: str,
    media_type: str,
    hype_rating: str | None,
    author: str | None,
    notes: str | None,
    tags: str | None,
    cover_url: str | None,
) -> None:
    """Add something to the pending list.

    \b
    Examples:
        mdiary pending add "Dune" -t book --hype 9
        mdiary pending add "Outer Wilds" -t videogame --tags "space,puzzle"
    """
    from mdiary.config.commands import get_setting

    if hype_rating is None:
        default_hype = get_setting("pending.default_hype_rating")
        hype_rating = str(default_hype) if default_hype is not None else None

    draft = EntryDraft(
        title=title,
        type=media_type,
        hype_rating=hype_rating,
        author=author,
        notes=notes,
        tags=tags,
        cover_url=cover_url,
    )
    store = open_store(ctx)
    entry = report_result(store.create(draft, EntryKind.PENDING))
    assert entry is not None
    console.print(f"[green]Added to pending[/green] {entry.title} [dim]({short_id(entry)})[/dim]")
    dry_run_notice(ctx)


@pending.command(name="list")
@click.option("--type", "-t", "media_type", type=click.Choice(["all", *TYPE_CHOICES], case_sensitive=False), help="Filter by type")
@click.option("--sort", "-s", help="Sort order: created, title or hyperating, with -asc/-desc")
@click.option("--search", "-q", help="Search title, tags and author")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_pending(ctx, media_type: str | None, sort: str | None, search: str | None, as_json: bool) -> None:
    """List pending entries."""
    from mdiary.config.commands import get_setting
    from mdiary.entries.views import ViewKind, ViewState, project

    try:
        state = ViewState.from_options(
            kind=ViewKind.PENDING,
            media_type=media_type,
            sort=sort or get_setting("view.pending_sort"),
            search=search,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1) from e

    store = open_store(ctx)
    projection = project(store.all(), state)

    if as_json:
        click.echo(json_module.dumps([e.to_dict() for e in projection.entries], indent=2))
        return

    if not projection.entries:
        console.print("[yellow]Nothing pending[/yellow]")
        return

    render_entries(projection.entries, f"Pending ({len(projection.entries)} of {projection.statistics.pending})", pending=True)


@pending.command()
@click.argument("entry_id")
@click.pass_obj
def start(ctx, entry_id: str) -> None:
    """Start a pending entry today (moves it to the overview)."""
    store = open_store(ctx)
    entry = resolve_entry(store, entry_id)
    updated = report_result(store.start(entry.id))
    assert updated is not None
    console.print(f"[green]Started[/green] {updated.title} on {updated.start_date}")
    dry_run_notice(ctx)
