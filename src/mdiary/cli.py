"""
Main CLI dispatcher for mdiary.

Usage:
    mdiary init                          # Initialize .mdiary/ directory
    mdiary entries [add|list|show|set|finish|rate|...]
    mdiary pending [add|list|start]
    mdiary stats
"""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from mdiary import __version__

console = Console()


class Context:
    """Shared context for all commands."""

    def __init__(self, verbose: bool = False, dry_run: bool = False):
        self.verbose = verbose
        self.dry_run = dry_run
        self.console = console


pass_context = click.make_pass_decorator(Context, ensure=True)


def setup_logging(verbose: bool) -> None:
    """Route log records through rich; DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose, rich_tracebacks=True)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="mdiary")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-n", "--dry-run", is_flag=True, help="Preview without making changes")
@click.pass_context
def main(ctx: click.Context, verbose: bool, dry_run: bool) -> None:
    """Personal media diary.

    Track the books, films, series, video games and papers you are
    planning, enjoying and have finished.
    """
    setup_logging(verbose)
    ctx.obj = Context(verbose=verbose, dry_run=dry_run)

    if dry_run:
        console.print("[yellow]DRY RUN MODE - No changes will be made[/yellow]")


@main.command()
@click.option("--force", "-f", is_flag=True, help="Reinitialize an existing .mdiary/ directory")
@click.pass_obj
def init(ctx, force: bool) -> None:
    """Initialize a diary in the current directory.

    Creates the .mdiary/ directory with an empty entries file.
    """
    from pathlib import Path

    from mdiary.core.config import DATA_DIR_NAME, get_paths
    from mdiary.entries.tabular import dumps

    dry_run = ctx.dry_run if ctx else False
    diary_root = Path.cwd()
    paths = get_paths(diary_root)

    if paths.data_dir.exists() and not force:
        console.print(f"[yellow]{DATA_DIR_NAME}/ directory already exists at {paths.data_dir}[/yellow]")
        console.print("[dim]Use --force to reinitialize.[/dim]")
        return

    console.print(f"[cyan]Initializing {DATA_DIR_NAME}/ directory at {diary_root}[/cyan]")

    for dir_path in (paths.data_dir, paths.backups):
        if not dry_run:
            dir_path.mkdir(parents=True, exist_ok=True)
        console.print(f"  [green]Created[/green] {dir_path.relative_to(diary_root)}")

    if not paths.entries_db.exists():
        if not dry_run:
            paths.entries_db.write_text(dumps([]), encoding="utf-8")
        console.print(f"  [green]Created[/green] {paths.entries_db.relative_to(diary_root)}")

    gitignore_path = diary_root / ".gitignore"
    gitignore_entry = f"{DATA_DIR_NAME}/backups/"
    if gitignore_path.exists():
        content = gitignore_path.read_text()
        if gitignore_entry not in content:
            if not dry_run:
                with open(gitignore_path, "a") as f:
                    f.write(f"\n# mdiary backups\n{gitignore_entry}\n")
            console.print(f"  [green]Updated[/green] .gitignore with {gitignore_entry}")

    console.print()
    if dry_run:
        console.print("[yellow]DRY RUN - no changes made[/yellow]")
    else:
        console.print(f"[green]Done![/green] {DATA_DIR_NAME}/ directory initialized.")


# Import and register command groups (imports after main definition intentional)
from mdiary.backup.commands import backup  # noqa: E402
from mdiary.config.commands import config  # noqa: E402
from mdiary.entries.commands import entries  # noqa: E402
from mdiary.pending.commands import pending  # noqa: E402
from mdiary.stats.commands import stats  # noqa: E402

main.add_command(entries)
main.add_command(pending)
main.add_command(stats)
main.add_command(backup)
main.add_command(config)


if __name__ == "__main__":
    main()
