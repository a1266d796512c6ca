"""
Entry validation.

A pure check of a candidate entry against the entry rules. Every violated
rule is reported; nothing short-circuits except where a later rule depends
on an earlier value parsing at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mdiary.entries.models import (
    MAX_TAG_LENGTH,
    MAX_TAGS,
    EntryDraft,
    MediaType,
    Rating,
    Status,
    parse_date,
    parse_metadata,
    parse_tags,
)

UNKNOWN_DATES = "unknown-dates"


class ValidationTarget(Enum):
    """What the candidate is about to become."""

    NEW_ACTIVE = "new-active-entry"
    NEW_PENDING = "new-pending-entry"
    UPDATE = "update"


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def parse_hype_rating(raw: Any) -> int | None:
    """Parse an anticipation score; blank means none.

    Raises:
        ValueError: If the value is not an integer from 1 to 10.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, bool):
        raise ValueError("Hype rating must be between 1 and 10")
    try:
        value = int(str(raw).strip()) if isinstance(raw, str) else int(raw)
    except (TypeError, ValueError) as e:
        raise ValueError("Hype rating must be between 1 and 10") from e
    if isinstance(raw, float) and not raw.is_integer():
        raise ValueError("Hype rating must be between 1 and 10")
    if not 1 <= value <= 10:
        raise ValueError("Hype rating must be between 1 and 10")
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _rating_or_none(raw: Any) -> Rating | None:
    try:
        return Rating.parse(raw)
    except ValueError:
        return None


def _check_status_intent(candidate: EntryDraft, errors: list[str]) -> None:
    intent = candidate.status
    if _is_blank(intent):
        return
    intent = intent.value if isinstance(intent, Status) else str(intent).strip().lower()

    if intent != UNKNOWN_DATES and intent not in {s.value for s in Status}:
        errors.append("Invalid status")
        return

    has_dates = candidate.has_dates
    rating = _rating_or_none(candidate.rating)

    if intent == UNKNOWN_DATES and has_dates:
        errors.append("Unknown-dates items should not have start or finish dates")
    if intent == Status.COMPLETED.value and not has_dates:
        errors.append("Completed items need at least a finish date or both dates")
    if intent == Status.COMPLETED_NO_DATES.value and (rating is None or not rating.is_set):
        errors.append("Items marked as completed without dates must have a rating")
    if intent == Status.IN_PROGRESS_NO_DATES.value and rating is not None and rating.is_numeric:
        errors.append("Items in progress without dates should not have a rating")


def _check_dates(candidate: EntryDraft, errors: list[str]) -> None:
    start = finish = None
    start_ok = finish_ok = True
    try:
        start = parse_date(candidate.start_date)
    except ValueError:
        errors.append("Invalid start date")
        start_ok = False
    try:
        finish = parse_date(candidate.finish_date)
    except ValueError:
        errors.append("Invalid finish date")
        finish_ok = False
    if start_ok and finish_ok and start and finish and finish < start:
        errors.append("Finish date cannot be before start date")


def _check_tags(raw: Any, errors: list[str]) -> None:
    tags = parse_tags(raw)
    if len(tags) > MAX_TAGS:
        errors.append(f"Maximum {MAX_TAGS} tags allowed")
    if any(len(tag) > MAX_TAG_LENGTH for tag in tags):
        errors.append(f"Tags must be {MAX_TAG_LENGTH} characters or less")


def validate(candidate: EntryDraft, target: ValidationTarget) -> ValidationResult:
    """Validate a candidate entry.

    Args:
        candidate: Raw entry values.
        target: Whether this is a new active entry, a new pending entry,
            or the merged state of an update.

    Returns:
        ValidationResult listing every violated rule (empty when valid).
    """
    errors: list[str] = []

    if _is_blank(candidate.title):
        errors.append("Title is required")

    if _is_blank(candidate.type):
        errors.append("Type is required")
    else:
        try:
            MediaType.parse(candidate.type)
        except ValueError:
            errors.append("Invalid content type")

    if target is ValidationTarget.NEW_ACTIVE:
        _check_status_intent(candidate, errors)
    elif target is ValidationTarget.NEW_PENDING and candidate.has_dates:
        errors.append("Pending items should not have start or finish dates")

    _check_dates(candidate, errors)

    try:
        Rating.parse(candidate.rating)
    except ValueError as e:
        errors.append(str(e))

    try:
        parse_hype_rating(candidate.hype_rating)
    except ValueError as e:
        errors.append(str(e))

    _check_tags(candidate.tags, errors)

    try:
        parse_metadata(candidate.metadata)
    except ValueError as e:
        errors.append(str(e))

    return ValidationResult(errors)
