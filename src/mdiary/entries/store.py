"""
The collection store: the single authority over the in-memory entry list.

Every mutation validates its input, lets the lifecycle module decide the
status, checks the status invariants and then replaces the stored list in a
single assignment, so readers never observe a half-applied change. After a
successful change the persistence collaborator is told about the new
snapshot; a failed write is reported on the result and never rolled back.

Expected failures (validation, unknown ids, disallowed transitions) are
returned on ``StoreResult.error`` rather than raised.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future
from dataclasses import replace
from datetime import datetime
from typing import Any

from mdiary.entries import lifecycle
from mdiary.entries.covers import fetch_external_metadata
from mdiary.entries.database import EntryPersistence
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
    Entry,
    EntryDraft,
    EntryKind,
    EntryUpdate,
    MediaType,
    Rating,
    parse_date,
    parse_metadata,
    parse_tags,
)
from mdiary.entries.validation import ValidationTarget, parse_hype_rating, validate

logger = logging.getLogger(__name__)

MetadataFetcher = Callable[[str, MediaType], dict[str, Any]]


def _new_id() -> str:
    return str(uuid.uuid4())


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _newest_first(entries: Iterable[Entry]) -> list[Entry]:
    return sorted(entries, key=lambda e: e.created_at.timestamp(), reverse=True)


def _parsed_fields(draft: EntryDraft) -> dict[str, Any]:
    """Typed field values of an already validated draft."""
    return {
        "title": str(draft.title).strip(),
        "type": MediaType.parse(draft.type),
        "author": _text_or_none(draft.author),
        "start_date": parse_date(draft.start_date),
        "finish_date": parse_date(draft.finish_date),
        "rating": Rating.parse(draft.rating),
        "hype_rating": parse_hype_rating(draft.hype_rating),
        "notes": _text_or_none(draft.notes),
        "tags": parse_tags(draft.tags),
        "cover_url": _text_or_none(draft.cover_url),
        "metadata": parse_metadata(draft.metadata),
    }


class CollectionStore:
    """Owns the entry collection and applies every change to it.

    Args:
        entries: Initial entries (copied).
        persistence: Collaborator notified with the full collection after
            each change. None keeps the store purely in memory.
        executor: When given, writes are submitted to it instead of running
            inline; failures land in ``persistence_errors``.
        clock: Returns the current time; dates for start/finish use its date.
        id_factory: Returns a fresh opaque id.
        metadata_fetcher: Enrichment hook used when a new entry has no metadata.
    """

    def __init__(
        self,
        entries: Iterable[Entry] = (),
        persistence: EntryPersistence | None = None,
        executor: Executor | None = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = _new_id,
        metadata_fetcher: MetadataFetcher = fetch_external_metadata,
    ):
        self._entries: list[Entry] = _newest_first(entry.copy() for entry in entries)
        self.persistence = persistence
        self.executor = executor
        self.clock = clock
        self.id_factory = id_factory
        self.metadata_fetcher = metadata_fetcher
        self.persistence_errors: list[PersistenceFailed] = []

    @classmethod
    def open(cls, persistence: EntryPersistence, **kwargs: Any) -> CollectionStore:
        """Create a store filled from *persistence*.

        A collection that cannot be read is logged and the store starts empty.
        """
        try:
            entries = persistence.load_all()
        except (OSError, ValueError) as e:
            logger.error("Could not load entries, starting with an empty collection: %s", e)
            entries = []
        return cls(entries, persistence=persistence, **kwargs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return any(entry.id == entry_id for entry in self._entries)

    def all(self) -> list[Entry]:
        """Copies of every entry, newest first."""
        return [entry.copy() for entry in self._entries]

    def get(self, entry_id: str) -> Entry | None:
        entry = self._find(entry_id)
        return entry.copy() if entry is not None else None

    def resolve(self, ref: str) -> Entry:
        """Look an entry up by full id or unique id prefix.

        Raises:
            NotFound: If nothing matches.
            DiaryError: If the prefix matches more than one entry.
        """
        exact = self._find(ref)
        if exact is not None:
            return exact.copy()
        matches = [entry for entry in self._entries if ref and entry.id.startswith(ref)]
        if not matches:
            raise NotFound(ref)
        if len(matches) > 1:
            raise DiaryError(f"Ambiguous id prefix '{ref}' matches {len(matches)} entries")
        return matches[0].copy()

    def _find(self, entry_id: str) -> Entry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, draft: EntryDraft, kind: EntryKind = EntryKind.ACTIVE) -> StoreResult:
        """Validate *draft* and add it as a new entry."""
        target = ValidationTarget.NEW_PENDING if kind is EntryKind.PENDING else ValidationTarget.NEW_ACTIVE
        result = validate(draft, target)
        if not result.valid:
            logger.debug("Rejected new entry: %s", result.errors)
            return StoreResult(error=ValidationFailed(result.errors))

        values = _parsed_fields(draft)
        given = []
        if values["rating"].is_set:
            given.append("rating")
        if values["hype_rating"] is not None:
            given.append("hype_rating")
        status = lifecycle.initial_status(kind, values["start_date"], values["finish_date"], values["rating"])
        ignored = lifecycle.ignored_fields(status, given)
        if "rating" in ignored:
            values["rating"] = Rating.UNSET  # type: ignore[attr-defined]
        if "hype_rating" in ignored:
            values["hype_rating"] = None

        if not values["metadata"]:
            values["metadata"] = dict(self.metadata_fetcher(values["title"], values["type"]))

        entry = Entry(id=self._unique_id(), created_at=self.clock(), status=status, **values)
        problems = lifecycle.check_invariants(entry)
        if problems:
            return StoreResult(error=ValidationFailed(problems))

        self._entries = _newest_first([entry, *self._entries])
        logger.debug("Created %s entry %s (%s)", entry.type.value, entry.id, entry.status.value)
        return self._committed(entry, ignored)

    def update(self, entry_id: str, changes: EntryUpdate) -> StoreResult:
        """Apply a partial update to an existing entry, all or nothing."""
        current = self._find(entry_id)
        if current is None:
            return StoreResult(error=NotFound(entry_id))

        draft = changes.apply_to(EntryDraft.from_entry(current))
        result = validate(draft, ValidationTarget.UPDATE)
        if not result.valid:
            logger.debug("Rejected update of %s: %s", entry_id, result.errors)
            return StoreResult(error=ValidationFailed(result.errors))

        values = _parsed_fields(draft)
        status = lifecycle.rederive_status(current.status, values["start_date"], values["finish_date"], values["rating"])
        ignored = lifecycle.ignored_fields(status, list(changes.changes()))
        if "rating" in ignored:
            values["rating"] = current.rating
        if "hype_rating" in ignored:
            values["hype_rating"] = current.hype_rating

        updated = replace(current.copy(), status=status, **values)
        problems = lifecycle.check_invariants(updated)
        if problems:
            return StoreResult(error=ValidationFailed(problems))

        self._replace(updated)
        logger.debug("Updated entry %s (%s)", entry_id, ", ".join(changes.changes()) or "no changes")
        return self._committed(updated, ignored)

    def delete(self, entry_id: str) -> StoreResult:
        current = self._find(entry_id)
        if current is None:
            return StoreResult(error=NotFound(entry_id))
        self._entries = [entry for entry in self._entries if entry.id != entry_id]
        logger.debug("Deleted entry %s", entry_id)
        return self._committed(current.copy(), [])

    def start(self, entry_id: str) -> StoreResult:
        """Move a pending entry to in-progress, starting today."""
        return self._transition(entry_id, lambda entry: lifecycle.start(entry, self.clock().date()))

    def finish(self, entry_id: str) -> StoreResult:
        """Mark an in-progress entry as finished today."""
        return self._transition(entry_id, lambda entry: lifecycle.finish(entry, self.clock().date()))

    def rate(self, entry_id: str, value: Any) -> StoreResult:
        """Record an outcome rating (1-10 or "N/A"), finishing the entry if needed."""
        try:
            rating = Rating.parse(value)
            if not rating.is_set:
                raise ValueError("Rating must be between 1 and 10")
        except ValueError as e:
            return StoreResult(error=ValidationFailed([str(e)]))
        return self._transition(entry_id, lambda entry: lifecycle.rate(entry, rating, self.clock().date()))

    def merge(self, entries: Iterable[Entry]) -> ImportReport:
        """Add entries whose ids are not in the collection yet."""
        report = ImportReport()
        known = {entry.id for entry in self._entries}
        incoming: list[Entry] = []
        for entry in entries:
            if entry.id in known:
                report.skipped.append(entry.id)
                continue
            problems = lifecycle.check_invariants(entry)
            if problems:
                logger.warning("Skipping imported entry %s: %s", entry.id, "; ".join(problems))
                report.skipped.append(entry.id)
                continue
            known.add(entry.id)
            incoming.append(entry.copy())
            report.added.append(entry.id)

        if incoming:
            self._entries = _newest_first([*self._entries, *incoming])
            logger.debug("Imported %d entries, skipped %d", len(report.added), len(report.skipped))
            report.warnings, _ = self._persist()
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, entry_id: str, action: Callable[[Entry], Entry]) -> StoreResult:
        current = self._find(entry_id)
        if current is None:
            return StoreResult(error=NotFound(entry_id))
        try:
            updated = action(current)
        except InvalidTransition as e:
            logger.debug("Refused transition on %s: %s", entry_id, e)
            return StoreResult(error=e)
        except ValueError as e:
            return StoreResult(error=ValidationFailed([str(e)]))

        problems = lifecycle.check_invariants(updated)
        if problems:
            return StoreResult(error=ValidationFailed(problems))
        self._replace(updated)
        logger.debug("Entry %s is now %s", entry_id, updated.status.value)
        return self._committed(updated, [])

    def _replace(self, updated: Entry) -> None:
        self._entries = [updated if entry.id == updated.id else entry for entry in self._entries]

    def _unique_id(self) -> str:
        new_id = self.id_factory()
        while new_id in self:
            new_id = self.id_factory()
        return new_id

    def _committed(self, entry: Entry, ignored: list[str]) -> StoreResult:
        warnings, pending_write = self._persist()
        return StoreResult(entry=entry.copy(), warnings=warnings, ignored=ignored, pending_write=pending_write)

    def _persist(self) -> tuple[list[PersistenceFailed], Future | None]:
        if self.persistence is None:
            return [], None
        snapshot = self.all()
        if self.executor is not None:
            future = self.executor.submit(self.persistence.persist_all, snapshot)
            future.add_done_callback(self._write_finished)
            return [], future
        try:
            self.persistence.persist_all(snapshot)
        except (OSError, ValueError) as e:
            logger.warning("Saving entries failed: %s", e)
            return [PersistenceFailed(e)], None
        return [], None

    def _write_finished(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.warning("Background save failed: %s", error)
            self.persistence_errors.append(PersistenceFailed(error))
