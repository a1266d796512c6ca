"""Field schema and field edits for diary entries.

ENTRY_SCHEMA plus thin wrappers that turn single-field edits into
``EntryUpdate`` objects and apply them through the collection store, so
every edit goes through the same validation and status rules.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mdiary.core.field_ops import (
    ChangeResult,
    FieldDef,
    FieldType,
    merge_list,
    parse_field_path,
)
from mdiary.core.field_ops import (
    validate_field as _validate_field,
)
from mdiary.entries.errors import NotFound, StoreResult
from mdiary.entries.models import MAX_RATING, MIN_RATING, EntryUpdate, MediaType, Rating

if TYPE_CHECKING:
    from mdiary.entries.models import Entry
    from mdiary.entries.store import CollectionStore


# -- Field schema for all user-editable entry fields --

ENTRY_SCHEMA: dict[str, FieldDef] = {
    "title": FieldDef(FieldType.STRING, "Title"),
    "type": FieldDef(FieldType.STRING, "Media type", choices=[t.value for t in MediaType]),
    "author": FieldDef(FieldType.STRING, "Author (books)"),
    "start_date": FieldDef(FieldType.DATE, "Date started (YYYY-MM-DD)"),
    "finish_date": FieldDef(FieldType.DATE, "Date finished (YYYY-MM-DD)"),
    "rating": FieldDef(
        FieldType.INT,
        "Outcome rating, or N/A for not rated",
        min_val=MIN_RATING,
        max_val=MAX_RATING,
        parser=Rating.parse,
        label="rating",
    ),
    "hype_rating": FieldDef(FieldType.INT, "Anticipation while pending", min_val=1, max_val=10),
    "notes": FieldDef(FieldType.STRING, "Free-form notes"),
    "tags": FieldDef(FieldType.STRING_LIST, "Tags (comma-separated)"),
    "cover_url": FieldDef(FieldType.STRING, "Cover image URL"),
    "metadata": FieldDef(FieldType.DICT, "Extra data as a JSON object (supports metadata.<key>)"),
}


def _display(value: Any) -> Any:
    """Human-readable form of a stored value; None when there is nothing."""
    if isinstance(value, Rating):
        return str(value) if value.is_set else None
    if isinstance(value, MediaType):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if value in ("", [], {}):
        return None
    return value


def _current(store: CollectionStore, entry_id: str) -> Entry:
    entry = store.get(entry_id)
    if entry is None:
        raise NotFound(entry_id)
    return entry


# ---------------------------------------------------------------------------
# Thin wrappers that bind the entry schema
# ---------------------------------------------------------------------------


def validate_entry_field(field: str, value: Any) -> list[str]:
    """Validate a field value against the entry schema."""
    return _validate_field(field, value, ENTRY_SCHEMA)


def set_entry_field(store: CollectionStore, entry_id: str, field: str, value: Any) -> tuple[ChangeResult, StoreResult]:
    """Set one field (``metadata.<key>`` sets a single metadata key).

    Raises:
        NotFound: If the entry doesn't exist.
    """
    entry = _current(store, entry_id)
    top, sub = parse_field_path(field)

    if sub is not None:
        old_value = entry.metadata.get(sub)
        metadata = dict(entry.metadata)
        metadata[sub] = value
        update = EntryUpdate(metadata=metadata)
    else:
        old_value = _display(getattr(entry, top))
        update = EntryUpdate(**{top: value})

    change = ChangeResult(entry_id=entry.id, field=field, old_value=old_value, new_value=_display(value), action="set")
    return change, store.update(entry.id, update)


def unset_entry_field(store: CollectionStore, entry_id: str, field: str) -> tuple[ChangeResult, StoreResult | None]:
    """Clear one field. Returns no store result when the field was already empty.

    Raises:
        NotFound: If the entry doesn't exist.
    """
    entry = _current(store, entry_id)
    top, sub = parse_field_path(field)

    if sub is not None:
        old_value = entry.metadata.get(sub)
        change = ChangeResult(entry_id=entry.id, field=field, old_value=old_value, new_value=None, action="unset")
        if sub not in entry.metadata:
            return change, None
        metadata = {key: value for key, value in entry.metadata.items() if key != sub}
        return change, store.update(entry.id, EntryUpdate(metadata=metadata))

    old_value = _display(getattr(entry, top))
    change = ChangeResult(entry_id=entry.id, field=field, old_value=old_value, new_value=None, action="unset")
    if old_value is None:
        return change, None
    return change, store.update(entry.id, EntryUpdate(**{top: None}))


def modify_entry_tags(
    store: CollectionStore,
    entry_id: str,
    *,
    add: list[str] | None = None,
    remove: list[str] | None = None,
    replace: list[str] | None = None,
) -> tuple[ChangeResult, StoreResult]:
    """Add, remove, or replace an entry's tags.

    Raises:
        NotFound: If the entry doesn't exist.
    """
    entry = _current(store, entry_id)
    new_tags, action = merge_list(entry.tags, add=add, remove=remove, replace=replace)
    change = ChangeResult(entry_id=entry.id, field="tags", old_value=list(entry.tags), new_value=new_tags, action=action)
    return change, store.update(entry.id, EntryUpdate(tags=new_tags))
