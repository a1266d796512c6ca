"""
Durable storage for diary entries.

Entries live in a single CSV file (``.mdiary/entries.csv``) in the tabular
format. Every save replaces the file atomically and keeps a timestamped
backup of the previous version.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable

from mdiary.config.commands import get_setting
from mdiary.core.backup import safe_write_text
from mdiary.core.config import get_paths
from mdiary.entries import tabular
from mdiary.entries.models import Entry

logger = logging.getLogger(__name__)


@runtime_checkable
class EntryPersistence(Protocol):
    """Anything the collection store can load from and save to."""

    def load_all(self) -> list[Entry]:
        """Return every stored entry."""
        ...

    def persist_all(self, entries: Iterable[Entry]) -> None:
        """Replace the stored collection.

        Raises:
            OSError: If the write fails.
            ValueError: If an entry cannot be serialized.
        """
        ...


class EntryDatabase:
    """Manages entries.csv with safe loading/saving and backups."""

    def __init__(
        self,
        db_path: Path | None = None,
        backup_dir: Path | None = None,
        create_backup: bool = True,
    ):
        """Initialize database.

        Args:
            db_path: Path to entries.csv (uses default if not provided)
            backup_dir: Backup folder (defaults to the diary's backup folder)
            create_backup: Back up the previous file on every save
        """
        if db_path is None or backup_dir is None:
            paths = get_paths()
            db_path = db_path or paths.entries_db
            backup_dir = backup_dir or paths.backups
        self.db_path = Path(db_path)
        self.backup_dir = Path(backup_dir)
        self.create_backup = create_backup

    def load_all(self) -> list[Entry]:
        """Read all entries; a missing file means an empty diary."""
        if not self.db_path.exists():
            logger.debug("No entries file at %s", self.db_path)
            return []
        entries = tabular.read_csv(self.db_path)
        logger.debug("Loaded %d entries from %s", len(entries), self.db_path)
        return entries

    def persist_all(self, entries: Iterable[Entry]) -> None:
        text = tabular.dumps(entries)
        safe_write_text(
            self.db_path,
            text,
            create_backup_first=self.create_backup,
            backup_dir=self.backup_dir,
            keep_backups=get_setting("backup.keep_count"),
            keep_days=get_setting("backup.keep_days"),
        )
        logger.debug("Saved entries to %s", self.db_path)


class NullPersistence:
    """Persistence that loads from another source but never writes.

    Used for dry runs.
    """

    def __init__(self, source: EntryPersistence | None = None):
        self.source = source

    def load_all(self) -> list[Entry]:
        return self.source.load_all() if self.source is not None else []

    def persist_all(self, entries: Iterable[Entry]) -> None:
        logger.debug("Dry run: not saving %d entries", len(list(entries)))
