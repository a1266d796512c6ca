"""Error taxonomy and operation results for the collection store."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdiary.entries.models import Entry, Status


class DiaryError(Exception):
    """Base class for all diary errors."""


class ValidationFailed(DiaryError):
    """A candidate entry violates one or more entry rules."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


class NotFound(DiaryError):
    """An operation referenced an entry id that does not exist."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class InvalidTransition(DiaryError):
    """A lifecycle action is not allowed from the entry's current status."""

    def __init__(self, entry_id: str, status: Status, action: str, reason: str | None = None):
        self.entry_id = entry_id
        self.status = status
        self.action = action
        message = reason or f"Cannot {action} an entry in status {status.value!r}"
        super().__init__(message)


class PersistenceFailed(DiaryError):
    """The durable write failed; the in-memory change still stands."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Could not save entries: {cause}")


@dataclass
class StoreResult:
    """Outcome of a store operation.

    ``error`` is set when the operation was refused (nothing changed).
    ``warnings`` carries persistence failures for a change that did apply.
    """

    entry: Entry | None = None
    error: DiaryError | None = None
    warnings: list[PersistenceFailed] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    pending_write: Future | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def errors(self) -> list[str]:
        """Error messages, one per violated rule for validation failures."""
        if self.error is None:
            return []
        if isinstance(self.error, ValidationFailed):
            return list(self.error.errors)
        return [str(self.error)]


@dataclass
class ImportReport:
    """Outcome of merging imported entries into the store."""

    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    warnings: list[PersistenceFailed] = field(default_factory=list)
