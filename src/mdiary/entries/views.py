"""
View projections over the entry collection.

A ViewState describes what the user is looking at (overview or pending list,
filters, sort order, search text). ``project`` turns the collection plus a
ViewState into the ordered list to display and the collection statistics.
It is a pure function: the input entries are never modified and the same
input always yields the same output.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from mdiary.entries.models import Entry, MediaType, Status

RECENT_LIMIT = 5


class ViewKind(Enum):
    OVERVIEW = "overview"
    PENDING = "pending"


class StatusFilter(Enum):
    """Overview status filter; each value covers both dated and undated variants."""

    ALL = "all"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    def matches(self, status: Status) -> bool:
        if self is StatusFilter.IN_PROGRESS:
            return status.is_in_progress
        if self is StatusFilter.COMPLETED:
            return status.is_completed
        return True


class SortKey(Enum):
    CREATED_DESC = "created-desc"
    CREATED_ASC = "created-asc"
    TITLE_ASC = "title-asc"
    TITLE_DESC = "title-desc"
    STARTDATE_DESC = "startdate-desc"
    STARTDATE_ASC = "startdate-asc"
    FINISHDATE_DESC = "finishdate-desc"
    FINISHDATE_ASC = "finishdate-asc"
    RATING_DESC = "rating-desc"
    RATING_ASC = "rating-asc"
    HYPERATING_DESC = "hyperating-desc"
    HYPERATING_ASC = "hyperating-asc"

    @property
    def field_name(self) -> str:
        return self.value.rsplit("-", 1)[0]

    @property
    def descending(self) -> bool:
        return self.value.endswith("-desc")


OVERVIEW_SORTS = frozenset(
    {
        SortKey.CREATED_DESC,
        SortKey.CREATED_ASC,
        SortKey.TITLE_ASC,
        SortKey.TITLE_DESC,
        SortKey.STARTDATE_DESC,
        SortKey.STARTDATE_ASC,
        SortKey.FINISHDATE_DESC,
        SortKey.FINISHDATE_ASC,
        SortKey.RATING_DESC,
        SortKey.RATING_ASC,
    }
)
PENDING_SORTS = frozenset(
    {
        SortKey.CREATED_DESC,
        SortKey.CREATED_ASC,
        SortKey.TITLE_ASC,
        SortKey.TITLE_DESC,
        SortKey.HYPERATING_DESC,
        SortKey.HYPERATING_ASC,
    }
)
ALLOWED_SORTS = {ViewKind.OVERVIEW: OVERVIEW_SORTS, ViewKind.PENDING: PENDING_SORTS}

# Value used for ordering; None means "missing" and always sorts last.
_SORT_VALUES: dict[str, Callable[[Entry], Any]] = {
    "created": lambda e: e.created_at.timestamp(),
    "title": lambda e: e.title.casefold(),
    "startdate": lambda e: e.start_date,
    "finishdate": lambda e: e.finish_date,
    "rating": lambda e: e.rating.value if e.rating.is_numeric else None,
    "hyperating": lambda e: e.hype_rating if e.hype_rating is not None else 0,
}


@dataclass(frozen=True)
class ViewState:
    """What is being shown: view kind, filters, sort order and search text."""

    kind: ViewKind = ViewKind.OVERVIEW
    status: StatusFilter = StatusFilter.ALL
    type: MediaType | None = None
    sort: SortKey = SortKey.CREATED_DESC
    search: str = ""

    def __post_init__(self) -> None:
        if self.kind is ViewKind.PENDING and self.status is not StatusFilter.ALL:
            raise ValueError("The pending view cannot be filtered by status")
        if self.sort not in ALLOWED_SORTS[self.kind]:
            raise ValueError(f"Sort order '{self.sort.value}' is not available in the {self.kind.value} view")

    @classmethod
    def from_options(
        cls,
        kind: str | ViewKind = ViewKind.OVERVIEW,
        status: str | StatusFilter | None = None,
        media_type: str | MediaType | None = None,
        sort: str | SortKey | None = None,
        search: str | None = None,
    ) -> ViewState:
        """Build a ViewState from loosely typed (CLI) values.

        Raises:
            ValueError: If a value is unknown or not allowed for the view kind.
        """
        view_kind = ViewKind(kind.strip().lower()) if isinstance(kind, str) else kind
        return cls(
            kind=view_kind,
            status=StatusFilter(status.strip().lower()) if isinstance(status, str) else status or StatusFilter.ALL,
            type=MediaType.parse(media_type) if media_type and media_type != "all" else None,
            sort=SortKey(sort.strip().lower()) if isinstance(sort, str) else sort or SortKey.CREATED_DESC,
            search=search or "",
        )


@dataclass
class Statistics:
    """Collection-wide counts and averages."""

    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    average_rating: float | None = None
    recent: list[Entry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_type": dict(self.by_type),
            "by_status": dict(self.by_status),
            "pending": self.pending,
            "in_progress": self.in_progress,
            "completed": self.completed,
            "average_rating": self.average_rating,
            "recent": [entry.to_dict() for entry in self.recent],
        }


@dataclass
class Projection:
    entries: list[Entry]
    statistics: Statistics


def _newest_first(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda e: e.created_at.timestamp(), reverse=True)


def _matches_search(entry: Entry, needle: str) -> bool:
    if needle in entry.title.casefold():
        return True
    if entry.author and needle in entry.author.casefold():
        return True
    return any(needle in tag.casefold() for tag in entry.tags)


def filter_entries(entries: Iterable[Entry], state: ViewState) -> list[Entry]:
    """Entries visible in *state*, in their incoming order."""
    needle = state.search.strip().casefold()
    visible = []
    for entry in entries:
        if (entry.status is Status.PENDING) != (state.kind is ViewKind.PENDING):
            continue
        if not state.status.matches(entry.status):
            continue
        if state.type is not None and entry.type is not state.type:
            continue
        if needle and not _matches_search(entry, needle):
            continue
        visible.append(entry)
    return visible


def sort_entries(entries: Sequence[Entry], key: SortKey) -> list[Entry]:
    """Stable sort; entries missing the sort value go last in either direction."""
    value_of = _SORT_VALUES[key.field_name]
    present = [entry for entry in entries if value_of(entry) is not None]
    missing = [entry for entry in entries if value_of(entry) is None]
    present.sort(key=value_of, reverse=key.descending)
    return present + missing


def compute_statistics(entries: Iterable[Entry]) -> Statistics:
    """Statistics over the whole collection, independent of any view."""
    ordered = _newest_first(entries)
    stats = Statistics(
        total=len(ordered),
        by_type={media_type.value: 0 for media_type in MediaType},
        by_status={status.value: 0 for status in Status},
    )
    ratings = []
    for entry in ordered:
        stats.by_type[entry.type.value] += 1
        stats.by_status[entry.status.value] += 1
        if entry.status.is_pending:
            stats.pending += 1
        elif entry.status.is_in_progress:
            stats.in_progress += 1
        else:
            stats.completed += 1
            if entry.rating.is_numeric:
                ratings.append(entry.rating.value)

    if ratings:
        average = Decimal(sum(ratings)) / len(ratings)
        stats.average_rating = float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    stats.recent = [entry.copy() for entry in ordered[:RECENT_LIMIT]]
    return stats


def project(entries: Iterable[Entry], state: ViewState) -> Projection:
    """Compute what *state* shows of *entries*, plus collection statistics."""
    base = _newest_first(entries)
    visible = sort_entries(filter_entries(base, state), state.sort)
    return Projection(entries=[entry.copy() for entry in visible], statistics=compute_statistics(base))
