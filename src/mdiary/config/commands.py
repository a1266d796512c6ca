"""
Configuration management CLI commands.

Manages diary settings stored in .mdiary/config.yaml (config written as JSON
is still read).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.table import Table

from mdiary.core.backup import DEFAULT_KEEP_COUNT, DEFAULT_KEEP_DAYS
from mdiary.core.config import get_paths

console = Console()

SORT_CHOICES = (
    "created-desc",
    "created-asc",
    "title-asc",
    "title-desc",
    "startdate-desc",
    "startdate-asc",
    "finishdate-desc",
    "finishdate-asc",
    "rating-desc",
    "rating-asc",
)
PENDING_SORT_CHOICES = (
    "created-desc",
    "created-asc",
    "title-asc",
    "title-desc",
    "hyperating-desc",
    "hyperating-asc",
)


def get_config_path() -> Path:
    """Get path to config file."""
    return get_paths().config_file


def load_config() -> dict[str, Any]:
    """Load configuration from file (supports YAML and JSON)."""
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    content = config_path.read_text(encoding="utf-8")
    if not content.strip():
        return {}

    if content.strip().startswith("{"):
        result: dict[str, Any] = json.loads(content)
        return result
    loaded = yaml.safe_load(content)
    if isinstance(loaded, dict):
        return loaded
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to file (YAML format)."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.dump(config, default_flow_style=False, sort_keys=False), encoding="utf-8")


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a configuration value by dotted key."""
    current: Any = load_config()
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return current


def set_config_value(key: str, value: Any) -> None:
    """Set a configuration value by dotted key."""
    config = load_config()
    parts = key.split(".")

    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value
    save_config(config)


CONFIG_SCHEMA: dict[str, dict[str, Any]] = {
    "backup.keep_days": {
        "default": DEFAULT_KEEP_DAYS,
        "type": int,
        "description": "Maximum age of backups in days",
    },
    "backup.keep_count": {
        "default": DEFAULT_KEEP_COUNT,
        "type": int,
        "description": "Minimum number of backups to keep",
    },
    "view.default": {
        "default": "overview",
        "type": str,
        "choices": ("overview", "pending"),
        "description": "View shown by 'mdiary entries list' when none is given",
    },
    "view.overview_sort": {
        "default": "created-desc",
        "type": str,
        "choices": SORT_CHOICES,
        "description": "Default sort order for the overview",
    },
    "view.pending_sort": {
        "default": "created-desc",
        "type": str,
        "choices": PENDING_SORT_CHOICES,
        "description": "Default sort order for the pending list",
    },
    "pending.default_hype_rating": {
        "default": None,
        "type": int,
        "min": 1,
        "max": 10,
        "description": "Hype rating given to new pending items when none is set",
    },
}


def get_setting(key: str) -> Any:
    """Configured value for *key*, falling back to its schema default.

    Missing diary roots and unreadable config files yield the default.
    """
    default = CONFIG_SCHEMA[key]["default"]
    try:
        value = get_config_value(key)
    except (FileNotFoundError, OSError, ValueError, yaml.YAMLError):
        return default
    return default if value is None else value


def coerce_setting(key: str, value: str) -> Any:
    """Convert CLI text to the setting's type, enforcing choices and bounds.

    Raises:
        ValueError: With a user-facing message when the value is not allowed.
    """
    schema = CONFIG_SCHEMA[key]
    expected = schema["type"]
    try:
        if expected is int:
            typed: Any = int(value)
        elif expected is bool:
            typed = value.lower() in ("true", "1", "yes")
        else:
            typed = value
    except ValueError as e:
        raise ValueError(f"Invalid value type. Expected {expected.__name__}") from e

    choices = schema.get("choices")
    if choices and typed not in choices:
        raise ValueError(f"Invalid value '{value}'. Choose from: {', '.join(choices)}")
    if "min" in schema and typed < schema["min"]:
        raise ValueError(f"Value must be at least {schema['min']}")
    if "max" in schema and typed > schema["max"]:
        raise ValueError(f"Value must be at most {schema['max']}")
    return typed


def _unknown_setting(key: str) -> None:
    console.print(f"[red]Unknown setting: {key}[/red]")
    console.print("\nAvailable settings:")
    for k in CONFIG_SCHEMA:
        console.print(f"  - {k}")


@click.group()
def config():
    """Manage diary configuration.

    Settings are stored in .mdiary/config.yaml.
    """
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Show all settings including defaults")
def show_cmd(show_all: bool):
    """Show current configuration.

    Without --all, only shows settings that differ from defaults.
    """
    config = load_config()
    config_path = get_config_path()

    if not config and not show_all:
        console.print("[dim]No custom configuration set. Using defaults.[/dim]")
        console.print(f"[dim]Config file: {config_path}[/dim]")
        console.print("\n[dim]Use 'mdiary config show --all' to see all settings.[/dim]")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value", style="green")
    table.add_column("Default", style="dim")
    table.add_column("Description", style="dim")

    for key, schema in CONFIG_SCHEMA.items():
        current = get_config_value(key)
        default = schema["default"]
        is_custom = current is not None and current != default

        if show_all or is_custom:
            display_value = str(current) if current is not None else f"[dim]{default}[/dim]"
            table.add_row(key, display_value, str(default), schema["description"])

    console.print(table)
    console.print(f"\n[dim]Config file: {config_path}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Get a configuration value.

    Examples:
        mdiary config get backup.keep_days
        mdiary config get view.overview_sort
    """
    if key not in CONFIG_SCHEMA:
        _unknown_setting(key)
        return

    value = get_config_value(key)
    default = CONFIG_SCHEMA[key]["default"]

    if value is None:
        console.print(f"{key} = {default} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Set a configuration value.

    Examples:
        mdiary config set backup.keep_count 5
        mdiary config set view.overview_sort rating-desc
        mdiary config set pending.default_hype_rating 7
    """
    if key not in CONFIG_SCHEMA:
        _unknown_setting(key)
        return

    try:
        typed_value = coerce_setting(key, value)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return

    set_config_value(key, typed_value)
    console.print(f"[green]Set {key} = {typed_value}[/green]")


@config.command(name="reset")
@click.argument("key", required=False)
@click.option("--all", "reset_all", is_flag=True, help="Reset all settings to defaults")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def reset_cmd(key: str | None, reset_all: bool, force: bool):
    """Reset configuration to defaults.

    Examples:
        mdiary config reset backup.keep_days   # Reset single setting
        mdiary config reset --all              # Reset all settings
    """
    if not key and not reset_all:
        console.print("[red]Specify a key or use --all to reset all settings[/red]")
        return

    if reset_all:
        if not force and not click.confirm("Reset all settings to defaults?"):
            console.print("[yellow]Cancelled[/yellow]")
            return

        config_path = get_config_path()
        if config_path.exists():
            config_path.unlink()
        console.print("[green]All settings reset to defaults[/green]")
        return

    if key not in CONFIG_SCHEMA:
        console.print(f"[red]Unknown setting: {key}[/red]")
        return

    config = load_config()
    parts = key.split(".")

    current = config
    for part in parts[:-1]:
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            console.print(f"[dim]{key} is already at default[/dim]")
            return

    if isinstance(current, dict) and parts[-1] in current:
        del current[parts[-1]]
        save_config(config)
        console.print(f"[green]Reset {key} to default ({CONFIG_SCHEMA[key]['default']})[/green]")
    else:
        console.print(f"[dim]{key} is already at default[/dim]")


@config.command(name="path")
def path_cmd():
    """Show path to config file."""
    console.print(str(get_config_path()))
