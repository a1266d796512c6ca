"""Diary entries: the data model, lifecycle rules, collection store and views.

Everything the command line does to entries goes through the
CollectionStore and the view projection in this package.
"""

from mdiary.entries.errors import (
    DiaryError,
    ImportReport,
    InvalidTransition,
    NotFound,
    PersistenceFailed,
    StoreResult,
    ValidationFailed,
)
from mdiary.entries.models import (
    UNCHANGED,
    Entry,
    EntryDraft,
    EntryKind,
    EntryUpdate,
    MediaType,
    Rating,
    Status,
)
from mdiary.entries.store import CollectionStore
from mdiary.entries.validation import ValidationTarget, validate
from mdiary.entries.views import Projection, SortKey, Statistics, StatusFilter, ViewKind, ViewState, project

__all__ = [
    "CollectionStore",
    "DiaryError",
    "Entry",
    "EntryDraft",
    "EntryKind",
    "EntryUpdate",
    "ImportReport",
    "InvalidTransition",
    "MediaType",
    "NotFound",
    "PersistenceFailed",
    "Projection",
    "Rating",
    "SortKey",
    "Statistics",
    "Status",
    "StatusFilter",
    "StoreResult",
    "UNCHANGED",
    "ValidationFailed",
    "ValidationTarget",
    "ViewKind",
    "ViewState",
    "project",
    "validate",
]
