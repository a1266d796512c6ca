"""
Entry data model for the media diary.

Defines the closed enums (media type, status), the tagged Rating value, the
Entry record itself, and the two input shapes the store accepts: EntryDraft
for create flows and EntryUpdate for partial edits.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any

MAX_TAGS = 20
MAX_TAG_LENGTH = 50
MIN_RATING = 1
MAX_RATING = 10
NOT_RATED_TEXT = "N/A"


class MediaType(Enum):
    """Kinds of media that can be tracked."""

    VIDEOGAME = "videogame"
    FILM = "film"
    SERIES = "series"
    BOOK = "book"
    PAPER = "paper"

    @classmethod
    def parse(cls, raw: Any) -> MediaType:
        """Parse a type name case-insensitively.

        Raises:
            ValueError: If *raw* is not one of the known types.
        """
        if isinstance(raw, cls):
            return raw
        text = str(raw).strip().lower()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"Invalid content type: {raw!r}")

    @property
    def label(self) -> str:
        return "Video game" if self is MediaType.VIDEOGAME else self.value.capitalize()


class Status(Enum):
    """Closed set of lifecycle states."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    IN_PROGRESS_NO_DATES = "in-progress-no-dates"
    COMPLETED = "completed"
    COMPLETED_NO_DATES = "completed-no-dates"

    @property
    def is_pending(self) -> bool:
        return self is Status.PENDING

    @property
    def is_in_progress(self) -> bool:
        return self in (Status.IN_PROGRESS, Status.IN_PROGRESS_NO_DATES)

    @property
    def is_completed(self) -> bool:
        return self in (Status.COMPLETED, Status.COMPLETED_NO_DATES)

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    Status.PENDING: "Pending",
    Status.IN_PROGRESS: "In progress",
    Status.IN_PROGRESS_NO_DATES: "In progress (dates not recorded)",
    Status.COMPLETED: "Completed",
    Status.COMPLETED_NO_DATES: "Finished (dates not recorded)",
}


class EntryKind(Enum):
    """Which create flow an entry comes from."""

    ACTIVE = "active"
    PENDING = "pending"


class RatingKind(Enum):
    UNSET = "unset"
    NOT_RATED = "not-rated"
    VALUE = "value"


@dataclass(frozen=True)
class Rating:
    """Outcome rating: unset, explicitly not rated, or a score from 1 to 10."""

    kind: RatingKind
    value: int | None = None

    @classmethod
    def of(cls, value: int) -> Rating:
        if not MIN_RATING <= value <= MAX_RATING:
            raise ValueError("Rating must be between 1 and 10")
        return cls(RatingKind.VALUE, value)

    @classmethod
    def parse(cls, raw: Any) -> Rating:
        """Convert user or storage input into a Rating.

        None, blank and 0 mean unset; "N/A" means not rated.

        Raises:
            ValueError: If *raw* is not a score between 1 and 10.
        """
        if isinstance(raw, Rating):
            return raw
        if raw is None:
            return Rating.UNSET
        if isinstance(raw, bool):
            raise ValueError("Rating must be between 1 and 10")
        if isinstance(raw, float):
            if not raw.is_integer():
                raise ValueError("Rating must be between 1 and 10")
            raw = int(raw)
        if isinstance(raw, str):
            text = raw.strip()
            if text.upper() == NOT_RATED_TEXT:
                return Rating.NOT_RATED
            if not text:
                return Rating.UNSET
            try:
                raw = int(text)
            except ValueError as e:
                raise ValueError("Rating must be between 1 and 10") from e
        if isinstance(raw, int):
            if raw == 0:
                return Rating.UNSET
            return cls.of(raw)
        raise ValueError("Rating must be between 1 and 10")

    @property
    def is_set(self) -> bool:
        """True for both a numeric score and the not-rated marker."""
        return self.kind is not RatingKind.UNSET

    @property
    def is_numeric(self) -> bool:
        return self.kind is RatingKind.VALUE

    def to_storage(self) -> str:
        if self.kind is RatingKind.VALUE:
            return str(self.value)
        if self.kind is RatingKind.NOT_RATED:
            return NOT_RATED_TEXT
        return ""

    def __str__(self) -> str:
        if self.kind is RatingKind.VALUE:
            return f"{self.value}/10"
        if self.kind is RatingKind.NOT_RATED:
            return "Not rated"
        return "-"


Rating.UNSET = Rating(RatingKind.UNSET)  # type: ignore[attr-defined]
Rating.NOT_RATED = Rating(RatingKind.NOT_RATED)  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Parsing helpers shared by validation and the tabular format
# ---------------------------------------------------------------------------


def parse_date(raw: Any) -> date | None:
    """Parse a calendar date.

    Accepts date/datetime objects, ``YYYY-MM-DD`` and full ISO timestamps
    (only the date part is kept). Blank input yields None.

    Raises:
        ValueError: If the text is not a valid date.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise ValueError(f"Invalid date: {raw!r}") from e


def parse_tags(raw: Any) -> list[str]:
    """Split comma-joined tags (or a list) into an ordered, de-duplicated list."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else [str(item) for item in raw]
    tags: list[str] = []
    seen: set[str] = set()
    for item in items:
        tag = item.strip()
        if tag and tag not in seen:
            tags.append(tag)
            seen.add(tag)
    return tags


def parse_metadata(raw: Any) -> dict[str, Any]:
    """Accept a dict or a JSON object string; blank means empty.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        try:
            json.dumps(raw)
        except (TypeError, ValueError) as e:
            raise ValueError("Metadata must be a JSON object") from e
        return dict(raw)
    text = str(raw).strip()
    if not text:
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Metadata must be a JSON object") from e
    if not isinstance(parsed, dict):
        raise ValueError("Metadata must be a JSON object")
    return parsed


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------


@dataclass
class Entry:
    """A single tracked media item."""

    id: str
    title: str
    type: MediaType
    status: Status
    created_at: datetime
    author: str | None = None
    start_date: date | None = None
    finish_date: date | None = None
    rating: Rating = Rating.UNSET  # type: ignore[attr-defined]
    hype_rating: int | None = None
    notes: str | None = None
    tags: list[str] = field(default_factory=list)
    cover_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def tags_text(self) -> str:
        return ", ".join(self.tags)

    def copy(self) -> Entry:
        """Return a copy that shares no mutable state with this entry."""
        return replace(self, tags=list(self.tags), metadata=json.loads(json.dumps(self.metadata)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "status": self.status.value,
            "author": self.author,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "finish_date": self.finish_date.isoformat() if self.finish_date else None,
            "rating": self.rating.value if self.rating.is_numeric else self.rating.to_storage() or None,
            "hype_rating": self.hype_rating,
            "notes": self.notes,
            "tags": list(self.tags),
            "cover_url": self.cover_url,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Create and update inputs
# ---------------------------------------------------------------------------


@dataclass
class EntryDraft:
    """Raw candidate for a new entry, or the merged state of an edit.

    Values are unparsed user input; the validator decides whether they are
    well-formed. ``status`` is only an intent checked by validation (for
    example "completed" or "unknown-dates"); the store derives the real one.
    """

    title: Any = None
    type: Any = None
    author: Any = None
    start_date: Any = None
    finish_date: Any = None
    rating: Any = None
    hype_rating: Any = None
    notes: Any = None
    tags: Any = None
    cover_url: Any = None
    metadata: Any = None
    status: Any = None

    @classmethod
    def from_entry(cls, entry: Entry) -> EntryDraft:
        return cls(
            title=entry.title,
            type=entry.type,
            author=entry.author,
            start_date=entry.start_date,
            finish_date=entry.finish_date,
            rating=entry.rating,
            hype_rating=entry.hype_rating,
            notes=entry.notes,
            tags=list(entry.tags),
            cover_url=entry.cover_url,
            metadata=dict(entry.metadata),
        )

    @property
    def has_dates(self) -> bool:
        return _blank_to_none(self.start_date) is not None or _blank_to_none(self.finish_date) is not None


class _Unchanged:
    """Marker for fields an update leaves alone."""

    def __repr__(self) -> str:
        return "UNCHANGED"


UNCHANGED: Any = _Unchanged()


@dataclass
class EntryUpdate:
    """Explicit partial update; None clears a field, UNCHANGED keeps it."""

    title: Any = UNCHANGED
    type: Any = UNCHANGED
    author: Any = UNCHANGED
    start_date: Any = UNCHANGED
    finish_date: Any = UNCHANGED
    rating: Any = UNCHANGED
    hype_rating: Any = UNCHANGED
    notes: Any = UNCHANGED
    tags: Any = UNCHANGED
    cover_url: Any = UNCHANGED
    metadata: Any = UNCHANGED

    def changes(self) -> dict[str, Any]:
        """Return only the fields this update touches."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNCHANGED}

    def apply_to(self, draft: EntryDraft) -> EntryDraft:
        return replace(draft, **self.changes())

    def __bool__(self) -> bool:
        return bool(self.changes())
