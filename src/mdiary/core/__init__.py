"""Core utilities for mdiary."""

from mdiary.core.backup import (
    DEFAULT_KEEP_COUNT,
    DEFAULT_KEEP_DAYS,
    BackupInfo,
    cleanup_old_backups,
    create_backup,
    list_backups,
    rollback_database,
    safe_write_text,
)
from mdiary.core.config import get_diary_root, get_paths

__all__ = [
    # Backup
    "create_backup",
    "safe_write_text",
    "cleanup_old_backups",
    "list_backups",
    "rollback_database",
    "BackupInfo",
    "DEFAULT_KEEP_COUNT",
    "DEFAULT_KEEP_DAYS",
    # Config
    "get_diary_root",
    "get_paths",
]
