"""
Tabular (CSV) export and import format for entries.

One header row, then one record per entry with a fixed column order.
Metadata is embedded as a JSON object, tags are comma-joined, dates use
YYYY-MM-DD and the creation timestamp is ISO 8601.
"""

from __future__ import annotations

import csv
import io
import json
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime
from pathlib import Path

from mdiary.entries.lifecycle import check_invariants, derive_active_status, rederive_status
from mdiary.entries.models import (
    Entry,
    MediaType,
    Rating,
    Status,
    parse_date,
    parse_metadata,
    parse_tags,
)
from mdiary.entries.validation import parse_hype_rating

logger = logging.getLogger(__name__)

COLUMNS = (
    "id",
    "title",
    "type",
    "author",
    "startdate",
    "finishdate",
    "rating",
    "notes",
    "coverurl",
    "metadata",
    "createdat",
    "status",
    "tags",
    "hyperating",
)


def entry_to_row(entry: Entry) -> dict[str, str]:
    """Flatten an entry into column -> text."""
    return {
        "id": entry.id,
        "title": entry.title,
        "type": entry.type.value,
        "author": entry.author or "",
        "startdate": entry.start_date.isoformat() if entry.start_date else "",
        "finishdate": entry.finish_date.isoformat() if entry.finish_date else "",
        "rating": entry.rating.to_storage(),
        "notes": entry.notes or "",
        "coverurl": entry.cover_url or "",
        "metadata": json.dumps(entry.metadata, ensure_ascii=False) if entry.metadata else "",
        "createdat": entry.created_at.isoformat(),
        "status": entry.status.value,
        "tags": ", ".join(entry.tags),
        "hyperating": str(entry.hype_rating) if entry.hype_rating is not None else "",
    }


def dumps(entries: Iterable[Entry]) -> str:
    """Serialize entries to CSV text (header included)."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS, lineterminator="\n")
    writer.writeheader()
    for entry in entries:
        writer.writerow(entry_to_row(entry))
    return buffer.getvalue()


def _parse_created_at(raw: str) -> datetime:
    text = raw.strip()
    if not text:
        return datetime.now()
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _parse_status(raw: str, entry: Entry) -> Status:
    text = raw.strip().lower()
    try:
        return Status(text)
    except ValueError:
        pass
    if not text and entry.hype_rating is not None and not (entry.start_date or entry.finish_date):
        derived = Status.PENDING
    else:
        derived = derive_active_status(entry.start_date, entry.finish_date, entry.rating)
    logger.warning("Entry %s has unknown status %r; using %r", entry.id, raw, derived.value)
    return derived


def _repair(entry: Entry) -> Entry:
    """Bring a loaded entry back in line with the status invariants."""
    problems = check_invariants(entry)
    if not problems:
        return entry
    if entry.status is Status.COMPLETED_NO_DATES and not entry.rating.is_set:
        entry.rating = Rating.NOT_RATED  # type: ignore[attr-defined]
    else:
        entry.status = rederive_status(entry.status, entry.start_date, entry.finish_date, entry.rating)
    logger.warning("Entry %s repaired on load: %s", entry.id, "; ".join(problems))
    return entry


def row_to_entry(row: Mapping[str, str | None]) -> Entry:
    """Build an entry from one CSV record.

    Raises:
        ValueError: If the record has no title or an unknown type.
    """
    values = {key.strip().lower(): (value or "").strip() for key, value in row.items() if key}

    title = values.get("title", "")
    if not title:
        raise ValueError("Record has no title")
    media_type = MediaType.parse(values.get("type", ""))

    try:
        rating = Rating.parse(values.get("rating"))
    except ValueError:
        logger.warning("Ignoring invalid rating %r for %r", values.get("rating"), title)
        rating = Rating.UNSET  # type: ignore[attr-defined]
    try:
        hype_rating = parse_hype_rating(values.get("hyperating"))
    except ValueError:
        logger.warning("Ignoring invalid hype rating %r for %r", values.get("hyperating"), title)
        hype_rating = None
    try:
        metadata = parse_metadata(values.get("metadata"))
    except ValueError:
        logger.warning("Ignoring invalid metadata for %r", title)
        metadata = {}

    entry = Entry(
        id=values.get("id") or str(uuid.uuid4()),
        title=title,
        type=media_type,
        status=Status.PENDING,
        created_at=_parse_created_at(values.get("createdat", "")),
        author=values.get("author") or None,
        start_date=parse_date(values.get("startdate")),
        finish_date=parse_date(values.get("finishdate")),
        rating=rating,
        hype_rating=hype_rating,
        notes=values.get("notes") or None,
        tags=parse_tags(values.get("tags", "")),
        cover_url=values.get("coverurl") or None,
        metadata=metadata,
    )
    entry.status = _parse_status(values.get("status", ""), entry)
    return _repair(entry)


def loads(text: str) -> list[Entry]:
    """Parse CSV text into entries, newest first.

    Records that cannot be turned into an entry are skipped with a warning.

    Raises:
        ValueError: If the text is not readable as CSV at all.
    """
    entries: list[Entry] = []
    seen: set[str] = set()
    reader = csv.DictReader(io.StringIO(text))
    try:
        for row in reader:
            try:
                entry = row_to_entry(row)
            except ValueError as e:
                logger.warning("Skipping CSV record ending on line %d: %s", reader.line_num, e)
                continue
            if entry.id in seen:
                logger.warning("Skipping duplicate id %s on line %d", entry.id, reader.line_num)
                continue
            seen.add(entry.id)
            entries.append(entry)
    except csv.Error as e:
        raise ValueError(f"Malformed CSV near line {reader.line_num}: {e}") from e
    entries.sort(key=lambda e: e.created_at.timestamp(), reverse=True)
    return entries


def read_csv(path: Path) -> list[Entry]:
    """Load entries from a CSV file."""
    return loads(Path(path).read_text(encoding="utf-8"))
