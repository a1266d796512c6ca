"""Shared field schema, coercion, validation, and change tracking.

Domain-agnostic pieces used by the ``set``/``unset``/``tag`` commands: a
field schema describes what each editable field accepts, ``coerce_value``
turns CLI text into a typed value, and ``ChangeResult`` records what an edit
did so it can be shown to the user.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from rich.console import Console


class FieldType(Enum):
    """Supported field types for edits from the command line."""

    STRING = "string"
    INT = "int"
    DATE = "date"
    STRING_LIST = "string_list"
    DICT = "dict"


@dataclass
class FieldDef:
    """Schema definition for a single field."""

    field_type: FieldType
    description: str
    choices: list[str] | None = None
    min_val: int | None = None
    max_val: int | None = None
    # Overrides the type's default coercion
    parser: Callable[[str], Any] | None = None
    label: str | None = None

    @property
    def type_name(self) -> str:
        return self.label or self.field_type.value


@dataclass
class ChangeResult:
    """Result of a field change operation."""

    entry_id: str
    field: str
    old_value: Any
    new_value: Any
    action: str  # "set", "unset", "add", "remove", "replace", "modify"


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def parse_field_path(field: str) -> tuple[str, str | None]:
    """Split a dot-notation field path into (top_level, sub_key).

    Examples:
        "rating" -> ("rating", None)
        "metadata.isbn" -> ("metadata", "isbn")
    """
    parts = field.split(".", 1)
    if len(parts) == 2:
        return parts[0], parts[1]
    return parts[0], None


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce_value(value_str: str, field_def: FieldDef) -> Any:
    """Coerce a string value to the field's expected type.

    Args:
        value_str: Raw string from CLI input.
        field_def: Schema definition for the target field.

    Returns:
        Coerced value.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    if field_def.parser is not None:
        return field_def.parser(value_str)

    ft = field_def.field_type

    if ft == FieldType.STRING:
        return value_str

    if ft == FieldType.INT:
        try:
            return int(value_str)
        except ValueError as e:
            raise ValueError(f"Expected integer, got: {value_str!r}") from e

    if ft == FieldType.DATE:
        try:
            return date.fromisoformat(value_str.strip())
        except ValueError as e:
            raise ValueError(f"Expected date (YYYY-MM-DD), got: {value_str!r}") from e

    if ft == FieldType.STRING_LIST:
        # Try JSON array first, then comma-separated
        stripped = value_str.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
                if isinstance(parsed, list):
                    return [str(item) for item in parsed]
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value_str.split(",") if item.strip()]

    if ft == FieldType.DICT:
        stripped = value_str.strip()
        try:
            parsed = json.loads(stripped)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
        raise ValueError(f"Expected JSON object, got: {value_str!r}")

    raise ValueError(f"Unknown field type: {ft}")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_field(field: str, value: Any, schema: dict[str, FieldDef]) -> list[str]:
    """Validate a field value against a schema.

    Args:
        field: Field name (may be dot-notation).
        value: Already-coerced value.
        schema: The field schema dict.

    Returns:
        List of error messages (empty if valid).
    """
    top, sub = parse_field_path(field)
    field_def = schema.get(top)
    if field_def is None:
        return [f"Unknown field: {top!r}"]

    errors: list[str] = []

    if sub is not None:
        if field_def.field_type != FieldType.DICT:
            errors.append(f"Dot notation only works on dict fields, but {top!r} is {field_def.type_name}.")
        return errors

    if field_def.field_type == FieldType.INT and isinstance(value, int) and not isinstance(value, bool):
        if field_def.min_val is not None and value < field_def.min_val:
            errors.append(f"{top}: value {value} is below minimum {field_def.min_val}.")
        if field_def.max_val is not None and value > field_def.max_val:
            errors.append(f"{top}: value {value} is above maximum {field_def.max_val}.")

    if field_def.choices is not None and isinstance(value, str) and value not in field_def.choices:
        errors.append(f"{top}: {value!r} is not a valid choice. Options: {', '.join(field_def.choices)}.")

    return errors


# ---------------------------------------------------------------------------
# List helpers
# ---------------------------------------------------------------------------


def merge_list(
    old_value: list[str],
    *,
    add: list[str] | None = None,
    remove: list[str] | None = None,
    replace: list[str] | None = None,
) -> tuple[list[str], str]:
    """Compute a list field's new value and the action name.

    ``replace`` wins over ``add``/``remove``. Added items are appended
    once each, in order.
    """
    if replace is not None:
        return list(replace), "replace"

    new_value = list(old_value)
    if add:
        seen = set(new_value)
        for item in add:
            if item not in seen:
                new_value.append(item)
                seen.add(item)
    if remove:
        remove_set = set(remove)
        new_value = [item for item in new_value if item not in remove_set]

    action = "add" if add and not remove else "remove" if remove and not add else "modify"
    return new_value, action


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------


def print_change(result: ChangeResult, console: Console) -> None:
    """Print a ChangeResult as a formatted diff."""
    console.print(f"[cyan]{result.entry_id}[/cyan]: {result.field}")
    if result.old_value is not None:
        console.print(f"  old: {result.old_value}")
    if result.new_value is not None:
        console.print(f"  new: {result.new_value}")
    elif result.action == "unset":
        console.print("  [dim](removed)[/dim]")
