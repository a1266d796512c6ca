"""
Configuration and path management.

Locates the diary's data directory (``.mdiary/``) and exposes the standard
paths inside it (entries file, per-diary config, backups).

Resolution order for the diary root:
  1. MDIARY_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .mdiary/ directory
  3. Global config file (~/.config/mdiary/config.yaml) diary_root key
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

DATA_DIR_NAME = ".mdiary"


@dataclass(frozen=True)
class DiaryPaths:
    """Standard paths for a diary."""

    root: Path
    data_dir: Path
    entries_db: Path
    config_file: Path
    backups: Path


def get_global_config_path() -> Path:
    """Return the path to the global config file (may not exist).

    Respects XDG_CONFIG_HOME if set, otherwise ~/.config/mdiary/config.yaml.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / "mdiary" / "config.yaml"


def load_global_config() -> dict:
    """Load the global configuration; empty if missing or invalid."""
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def _walk_up_for_data_dir(start_path: Path) -> Path | None:
    current = start_path.resolve()
    while current != current.parent:
        if (current / DATA_DIR_NAME).is_dir():
            return current
        current = current.parent
    return None


def find_diary_root(start_path: Path | None = None) -> Path:
    """Find the diary root using 3-tier resolution.

    Args:
        start_path: Starting path for the directory walk (defaults to cwd)

    Raises:
        FileNotFoundError: If no .mdiary/ directory is found by any method
    """
    env_root = os.environ.get("MDIARY_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / DATA_DIR_NAME).is_dir():
            return env_path
        raise FileNotFoundError(f"MDIARY_ROOT={env_root} does not contain a {DATA_DIR_NAME}/ directory.")

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_data_dir(Path(start_path))
    if result is not None:
        return result

    root_str = load_global_config().get("diary_root")
    if root_str:
        global_path = Path(root_str).expanduser().resolve()
        if (global_path / DATA_DIR_NAME).is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config diary_root={root_str} does not contain a {DATA_DIR_NAME}/ directory."
        )

    raise FileNotFoundError(
        f"Could not find {DATA_DIR_NAME}/ directory starting from {start_path}. "
        f"Run 'mdiary init' to create one, set MDIARY_ROOT, or configure "
        f"diary_root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_diary_root() -> Path:
    """Get the cached diary root path."""
    return find_diary_root()


def get_paths(diary_root: Path | None = None) -> DiaryPaths:
    """Get all standard paths for the diary.

    Args:
        diary_root: Diary root (uses the cached default if not provided)
    """
    if diary_root is None:
        diary_root = get_diary_root()

    root = Path(diary_root)
    data_dir = root / DATA_DIR_NAME

    return DiaryPaths(
        root=root,
        data_dir=data_dir,
        entries_db=data_dir / "entries.csv",
        config_file=data_dir / "config.yaml",
        backups=data_dir / "backups",
    )
