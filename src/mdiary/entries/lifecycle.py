"""
Status transition engine.

Decides an entry's status from its dates and rating, applies the explicit
lifecycle actions (start, finish, rate), and checks the status invariants.
Actions return a new Entry and never touch the one they were given.

State machine::

    pending --start--> in-progress --finish/rate--> completed
                       in-progress-no-dates --finish/rate--> completed-no-dates

Edits re-derive the status of active entries from date and rating presence.
Nothing ever moves back to pending.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from mdiary.entries.errors import InvalidTransition
from mdiary.entries.models import Entry, EntryKind, Rating, Status

FINISH_TARGETS = {
    Status.IN_PROGRESS: Status.COMPLETED,
    Status.IN_PROGRESS_NO_DATES: Status.COMPLETED_NO_DATES,
}

# Fields an update may carry that only mean something in some states.
PENDING_ONLY_FIELDS = ("hype_rating",)
ACTIVE_ONLY_FIELDS = ("rating",)


def derive_active_status(start: date | None, finish: date | None, rating: Rating) -> Status:
    """Status of a non-pending entry given what it records.

    Without dates, a rating (score or not-rated marker) is the completion
    signal.
    """
    if finish is not None:
        return Status.COMPLETED
    if start is not None:
        return Status.IN_PROGRESS
    return Status.COMPLETED_NO_DATES if rating.is_set else Status.IN_PROGRESS_NO_DATES


def initial_status(kind: EntryKind, start: date | None, finish: date | None, rating: Rating) -> Status:
    if kind is EntryKind.PENDING:
        return Status.PENDING
    return derive_active_status(start, finish, rating)


def rederive_status(current: Status, start: date | None, finish: date | None, rating: Rating) -> Status:
    """Status after an edit. Pending entries stay pending until given a date."""
    if current is Status.PENDING and start is None and finish is None:
        return Status.PENDING
    return derive_active_status(start, finish, rating)


def ignored_fields(status: Status, changed: list[str]) -> list[str]:
    """Changed fields that carry no meaning for an entry in *status*."""
    inactive = ACTIVE_ONLY_FIELDS if status is Status.PENDING else PENDING_ONLY_FIELDS
    return [name for name in changed if name in inactive]


def start(entry: Entry, today: date) -> Entry:
    """Begin a pending entry.

    Raises:
        InvalidTransition: If the entry is not pending.
    """
    if entry.status is not Status.PENDING:
        raise InvalidTransition(entry.id, entry.status, "start", "Entry is not in pending status")
    return replace(entry.copy(), start_date=today, status=Status.IN_PROGRESS)


def finish(entry: Entry, today: date) -> Entry:
    """Mark an in-progress entry as finished.

    Dated entries get today's finish date. Entries without dates stay
    without dates; an unset rating becomes "not rated".

    Raises:
        InvalidTransition: If the entry is pending or already completed.
    """
    if entry.status.is_completed:
        raise InvalidTransition(entry.id, entry.status, "finish", "Entry is already marked as finished")
    target = FINISH_TARGETS.get(entry.status)
    if target is None:
        raise InvalidTransition(entry.id, entry.status, "finish", "Pending entries must be started before finishing")

    updated = entry.copy()
    if target is Status.COMPLETED:
        if updated.start_date is not None and today < updated.start_date:
            raise InvalidTransition(entry.id, entry.status, "finish", "Finish date cannot be before start date")
        updated.finish_date = today
    elif not updated.rating.is_set:
        updated.rating = Rating.NOT_RATED  # type: ignore[attr-defined]
    updated.status = target
    return updated


def rate(entry: Entry, rating: Rating, today: date) -> Entry:
    """Record an outcome rating, finishing the entry if it is still in progress.

    Raises:
        ValueError: If *rating* is unset.
        InvalidTransition: If the entry is pending.
    """
    if not rating.is_set:
        raise ValueError("Rating must be between 1 and 10")
    if entry.status is Status.PENDING:
        raise InvalidTransition(entry.id, entry.status, "rate", "Pending entries must be started before rating")

    updated = finish(entry, today) if entry.status.is_in_progress else entry.copy()
    updated.rating = rating
    return updated


def check_invariants(entry: Entry) -> list[str]:
    """Return descriptions of every status invariant *entry* breaks."""
    problems: list[str] = []
    if not isinstance(entry.status, Status):
        problems.append(f"Unknown status: {entry.status!r}")
        return problems
    if entry.status is Status.PENDING and (entry.start_date or entry.finish_date):
        problems.append("Pending entries cannot have start or finish dates")
    if entry.status is Status.COMPLETED_NO_DATES and not entry.rating.is_set:
        problems.append("Completed entries without dates need a rating")
    if entry.status is Status.IN_PROGRESS_NO_DATES and entry.rating.is_numeric:
        problems.append("In-progress entries without dates cannot have a rating")
    if entry.start_date and entry.finish_date and entry.finish_date < entry.start_date:
        problems.append("Finish date cannot be before start date")
    return problems
