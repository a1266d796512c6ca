"""
Backup and safe file writing utilities.

Atomic text writes with timestamped backups of the previous file and
rotation by count and age. Backup files are named
``<stem>_<YYYYMMDD_HHMMSS><suffix>`` next to each other in a backup folder.
"""

from __future__ import annotations

import contextlib
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

# Default retention settings
DEFAULT_KEEP_COUNT = 10
DEFAULT_KEEP_DAYS = 30
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
TIMESTAMP_PATTERN = re.compile(r"_(\d{8}_\d{6})(?:_\d+)?\.")
NAME_PATTERN = re.compile(r"(.+)_\d{8}_\d{6}(?:_\d+)?\.\w+$")


@dataclass
class BackupInfo:
    """Information about a backup file."""

    path: Path
    timestamp: datetime
    size_bytes: int
    db_name: str

    @property
    def age_days(self) -> float:
        """Age of backup in days."""
        return (datetime.now() - self.timestamp).total_seconds() / 86400

    @property
    def size_human(self) -> str:
        """Human-readable size."""
        if self.size_bytes < 1024:
            return f"{self.size_bytes} B"
        elif self.size_bytes < 1024 * 1024:
            return f"{self.size_bytes / 1024:.1f} KB"
        else:
            return f"{self.size_bytes / (1024 * 1024):.1f} MB"


def parse_backup_timestamp(filename: str) -> datetime | None:
    """Extract timestamp from backup filename.

    Args:
        filename: Backup filename like 'entries_20251212_144234.csv'

    Returns:
        datetime if parseable, None otherwise
    """
    match = TIMESTAMP_PATTERN.search(filename)
    if match:
        try:
            return datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
        except ValueError:
            return None
    return None


def list_backups(backup_dir: Path, db_name: str | None = None) -> list[BackupInfo]:
    """List backups in a directory, newest first.

    Args:
        backup_dir: Directory containing backups
        db_name: Optional filter by database stem (e.g., 'entries')
    """
    backup_dir = Path(backup_dir)
    if not backup_dir.exists():
        return []

    pattern = f"{db_name}_*" if db_name else "*_[0-9]*_[0-9]*.*"
    backups = []

    for path in backup_dir.glob(pattern):
        timestamp = parse_backup_timestamp(path.name)
        if timestamp is None:
            continue
        name_match = NAME_PATTERN.match(path.name)
        backups.append(
            BackupInfo(
                path=path,
                timestamp=timestamp,
                size_bytes=path.stat().st_size,
                db_name=name_match.group(1) if name_match else "unknown",
            )
        )

    return sorted(backups, key=lambda b: (b.timestamp, b.path.name), reverse=True)


def create_backup(file_path: Path, backup_dir: Path | None = None) -> Path:
    """Copy *file_path* to a timestamped backup.

    Args:
        file_path: File to back up
        backup_dir: Where to put it (defaults to file_path.parent / 'backups')

    Returns:
        Path to the backup file

    Raises:
        FileNotFoundError: If file_path doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Cannot backup non-existent file: {file_path}")

    backup_dir = Path(backup_dir) if backup_dir is not None else file_path.parent / "backups"
    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime(TIMESTAMP_FORMAT)
    backup_path = backup_dir / f"{file_path.stem}_{timestamp}{file_path.suffix}"
    # Several saves within one second get a counter suffix
    counter = 1
    while backup_path.exists():
        backup_path = backup_dir / f"{file_path.stem}_{timestamp}_{counter}{file_path.suffix}"
        counter += 1

    shutil.copy2(file_path, backup_path)
    return backup_path


def cleanup_old_backups(
    backup_dir: Path,
    db_name: str,
    keep_last: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = None,
) -> list[Path]:
    """Remove old backups of one database.

    A backup is kept if it is among the newest *keep_last* OR younger than
    *keep_days* (when given).

    Returns:
        List of removed backup file paths
    """
    cutoff = datetime.now() - timedelta(days=keep_days) if keep_days is not None else None
    removed = []

    for i, backup in enumerate(list_backups(backup_dir, db_name)):
        if i < keep_last:
            continue
        if cutoff is not None and backup.timestamp >= cutoff:
            continue
        backup.path.unlink()
        removed.append(backup.path)

    return removed


def rollback_database(db_path: Path, backup_dir: Path, backup_index: int = 0) -> Path:
    """Restore a database file from a backup.

    The current file is backed up first.

    Args:
        db_path: Path to current database file
        backup_dir: Directory containing backups
        backup_index: Which backup to restore (0 = most recent)

    Returns:
        Path to the backup that was restored

    Raises:
        FileNotFoundError: If no suitable backup exists
    """
    db_name = db_path.stem
    backups = list_backups(backup_dir, db_name)

    if not backups:
        raise FileNotFoundError(f"No backups found for {db_name}")

    if backup_index >= len(backups):
        raise FileNotFoundError(
            f"Backup index {backup_index} out of range (only {len(backups)} backups)"
        )

    backup = backups[backup_index]

    if db_path.exists():
        create_backup(db_path, backup_dir)

    shutil.copy2(backup.path, db_path)
    return backup.path


def safe_write_text(
    file_path: Path,
    text: str,
    create_backup_first: bool = True,
    backup_dir: Path | None = None,
    keep_backups: int = DEFAULT_KEEP_COUNT,
    keep_days: int | None = DEFAULT_KEEP_DAYS,
) -> Path | None:
    """Atomically replace *file_path* with *text*, backing up the old file.

    Steps: back up the existing file (if requested), rotate old backups,
    write to a temporary file in the same directory, fsync, then replace.

    Returns:
        Path to backup file if created, None otherwise

    Raises:
        OSError: If writing fails (the original file is left untouched)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    backup_path = None

    if create_backup_first and file_path.exists():
        backup_path = create_backup(file_path, backup_dir)
        cleanup_old_backups(
            backup_dir or (file_path.parent / "backups"),
            file_path.stem,
            keep_backups,
            keep_days,
        )

    temp_fd, temp_path = tempfile.mkstemp(
        suffix=file_path.suffix,
        prefix=f".{file_path.name}.",
        dir=file_path.parent,
        text=True,
    )

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())

        Path(temp_path).replace(file_path)

    except Exception as e:
        with contextlib.suppress(OSError):
            Path(temp_path).unlink()
        raise OSError(f"Failed to write {file_path}: {e}") from e

    return backup_path
