"""Tests for mdiary.entries.store.CollectionStore."""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from itertools import count

import pytest

from mdiary.entries.errors import DiaryError, InvalidTransition, NotFound, PersistenceFailed, ValidationFailed
from mdiary.entries.models import EntryDraft, EntryKind, EntryUpdate, MediaType, Rating, Status
from mdiary.entries.store import CollectionStore


class MemoryPersistence:
    """Records every save; optionally fails."""

    def __init__(self, entries=None, fail_with=None):
        self.entries = list(entries or [])
        self.saves = []
        self.fail_with = fail_with

    def load_all(self):
        return [e.copy() for e in self.entries]

    def persist_all(self, entries):
        if self.fail_with is not None:
            raise self.fail_with
        self.entries = [e.copy() for e in entries]
        self.saves.append(self.entries)


@pytest.fixture
def persistence():
    return MemoryPersistence()


@pytest.fixture
def store(persistence, clock):
    ids = count(1)
    return CollectionStore(persistence=persistence, clock=clock, id_factory=lambda: f"id-{next(ids)}")


def _create(store, kind=EntryKind.ACTIVE, **fields):
    return store.create(EntryDraft(**fields), kind)


class TestCreate:
    """Creating entries."""

    def test_round_trip(self, store, clock):
        result = _create(store, title="Dune", type="book", author="Frank Herbert", start_date="2024-06-01")

        assert result.ok
        entries = store.all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.id == "id-1"
        assert entry.title == "Dune"
        assert entry.type is MediaType.BOOK
        assert entry.author == "Frank Herbert"
        assert entry.start_date == date(2024, 6, 1)
        assert entry.created_at == clock.now
        assert entry.status is Status.IN_PROGRESS

    def test_empty_title_rejected(self, store, persistence):
        result = _create(store, title="", type="book")

        assert isinstance(result.error, ValidationFailed)
        assert "Title is required" in result.errors
        assert len(store) == 0
        assert persistence.saves == []

    def test_every_error_reported(self, store):
        result = _create(store, title="", type="book", rating=99, start_date="nope")
        assert result.errors == ["Title is required", "Invalid start date", "Rating must be between 1 and 10"]

    def test_undated_active_entry(self, store):
        entry = _create(store, title="Paper X", type="paper").entry
        assert entry.status is Status.IN_PROGRESS_NO_DATES

    def test_unserializable_metadata_rejected(self, store, persistence):
        result = _create(store, title="Dune", type="book", metadata={"released": date(1965, 8, 1)})

        assert isinstance(result.error, ValidationFailed)
        assert "Metadata must be a JSON object" in result.errors
        assert len(store) == 0
        assert store.all() == []
        assert persistence.saves == []

    def test_not_rated_without_dates(self, store):
        entry = _create(store, title="Old film", type="film", rating="N/A").entry
        assert entry.status is Status.COMPLETED_NO_DATES
        assert entry.rating == Rating.NOT_RATED

    def test_finished_with_dates(self, store):
        entry = _create(store, title="Hades", type="videogame", finish_date="2024-04-10", rating="9").entry
        assert entry.status is Status.COMPLETED
        assert entry.rating == Rating.of(9)

    def test_status_intent_checked(self, store):
        result = _create(store, title="Alien", type="film", status="completed")
        assert result.errors == ["Completed items need at least a finish date or both dates"]

    def test_pending_entry(self, store):
        entry = _create(store, EntryKind.PENDING, title="Dune", type="book", hype_rating=9).entry
        assert entry.status is Status.PENDING
        assert entry.hype_rating == 9

    def test_pending_ignores_rating(self, store):
        result = _create(store, EntryKind.PENDING, title="Dune", type="book", rating=8)
        assert result.ignored == ["rating"]
        assert result.entry.rating == Rating.UNSET

    def test_active_ignores_hype(self, store):
        result = _create(store, title="Dune", type="book", hype_rating=8)
        assert result.ignored == ["hype_rating"]
        assert result.entry.hype_rating is None

    def test_pending_with_dates_rejected(self, store):
        result = _create(store, EntryKind.PENDING, title="Dune", type="book", start_date="2024-01-01")
        assert result.errors == ["Pending items should not have start or finish dates"]

    def test_metadata_hook_fills_empty_metadata(self, persistence, clock):
        store = CollectionStore(persistence=persistence, clock=clock, metadata_fetcher=lambda t, m: {"source": m.value})
        entry = _create(store, title="Dune", type="book").entry
        kept = _create(store, title="Alien", type="film", metadata='{"year": 1979}').entry

        assert entry.metadata == {"source": "book"}
        assert kept.metadata == {"year": 1979}

    def test_ids_are_unique(self, persistence, clock):
        ids = iter(["dup", "dup", "fresh"])
        store = CollectionStore(persistence=persistence, clock=clock, id_factory=lambda: next(ids))
        first = _create(store, title="A", type="book").entry
        second = _create(store, title="B", type="book").entry
        assert (first.id, second.id) == ("dup", "fresh")

    def test_newest_first(self, store, clock):
        _create(store, title="First", type="book")
        clock.tick(minutes=1)
        _create(store, title="Second", type="book")
        assert [e.title for e in store.all()] == ["Second", "First"]

    def test_persists_snapshot(self, store, persistence):
        _create(store, title="Dune", type="book")
        assert [e.title for e in persistence.saves[-1]] == ["Dune"]


class TestUpdate:
    """Partial updates."""

    def test_rating_completes_undated_entry(self, store):
        entry = _create(store, title="Paper X", type="paper").entry
        result = store.update(entry.id, EntryUpdate(rating=7))

        assert result.ok
        assert result.entry.status is Status.COMPLETED_NO_DATES
        assert store.get(entry.id).rating == Rating.of(7)

    def test_missing_id(self, store):
        _create(store, title="Dune", type="book")
        before = store.all()

        result = store.update("nope", EntryUpdate(title="X"))

        assert isinstance(result.error, NotFound)
        assert store.all() == before

    def test_invalid_update_changes_nothing(self, store, persistence):
        entry = _create(store, title="Dune", type="book", start_date="2024-05-01").entry
        saves = len(persistence.saves)

        result = store.update(entry.id, EntryUpdate(title="Dune 2", finish_date="2024-04-01"))

        assert result.errors == ["Finish date cannot be before start date"]
        assert store.get(entry.id).title == "Dune"
        assert len(persistence.saves) == saves

    def test_unserializable_metadata_update_rejected(self, store):
        entry = _create(store, title="Dune", type="book", metadata={"pages": 412}).entry

        result = store.update(entry.id, EntryUpdate(metadata={"released": date(1965, 8, 1)}))

        assert isinstance(result.error, ValidationFailed)
        assert store.get(entry.id).metadata == {"pages": 412}

    def test_clearing_field(self, store):
        entry = _create(store, title="Dune", type="book", notes="great").entry
        store.update(entry.id, EntryUpdate(notes=None))
        assert store.get(entry.id).notes is None

    def test_pending_stays_pending(self, store):
        entry = _create(store, EntryKind.PENDING, title="Dune", type="book").entry
        result = store.update(entry.id, EntryUpdate(hype_rating=4, title="Dune Messiah"))
        assert result.entry.status is Status.PENDING
        assert result.entry.hype_rating == 4

    def test_start_date_activates_pending(self, store):
        entry = _create(store, EntryKind.PENDING, title="Dune", type="book").entry
        result = store.update(entry.id, EntryUpdate(start_date="2024-06-01"))
        assert result.entry.status is Status.IN_PROGRESS

    def test_keeps_id_and_created_at(self, store, clock):
        entry = _create(store, title="Dune", type="book").entry
        clock.tick(days=1)
        updated = store.update(entry.id, EntryUpdate(title="Dune!")).entry
        assert (updated.id, updated.created_at) == (entry.id, entry.created_at)


class TestLifecycle:
    def test_dune_scenario(self, store, clock):
        entry = _create(store, EntryKind.PENDING, title="Dune", type="book", hype_rating=9).entry
        assert entry.status is Status.PENDING

        started = store.start(entry.id).entry
        assert started.status is Status.IN_PROGRESS
        assert started.start_date == clock.now.date()

        clock.tick(days=3)
        finished = store.finish(entry.id).entry
        assert finished.status is Status.COMPLETED
        assert finished.finish_date == date(2024, 6, 18)

        again = store.finish(entry.id)
        assert isinstance(again.error, InvalidTransition)

    def test_start_unknown(self, store):
        assert isinstance(store.start("nope").error, NotFound)

    def test_rate(self, store):
        entry = _create(store, title="Alien", type="film", start_date="2024-06-01").entry
        result = store.rate(entry.id, "8")
        assert result.entry.status is Status.COMPLETED
        assert result.entry.rating == Rating.of(8)

    def test_rate_not_rated(self, store):
        entry = _create(store, title="Paper X", type="paper").entry
        assert store.rate(entry.id, "N/A").entry.rating == Rating.NOT_RATED

    @pytest.mark.parametrize("value", [None, "", "0", "11"])
    def test_rate_invalid(self, store, value):
        entry = _create(store, title="Alien", type="film", start_date="2024-06-01").entry
        result = store.rate(entry.id, value)
        assert result.errors == ["Rating must be between 1 and 10"]
        assert store.get(entry.id).status is Status.IN_PROGRESS

    def test_rate_pending(self, store):
        entry = _create(store, EntryKind.PENDING, title="Dune", type="book").entry
        assert isinstance(store.rate(entry.id, 8).error, InvalidTransition)

    def test_delete(self, store, persistence):
        entry = _create(store, title="Dune", type="book").entry
        result = store.delete(entry.id)
        assert result.entry.title == "Dune"
        assert len(store) == 0
        assert persistence.saves[-1] == []

    def test_delete_unknown(self, store):
        assert isinstance(store.delete("nope").error, NotFound)


class TestReads:
    def test_copies_are_isolated(self, store):
        entry = _create(store, title="Dune", type="book", tags="scifi").entry
        store.get(entry.id).tags.append("mutated")
        store.all()[0].tags.append("mutated")
        assert store.get(entry.id).tags == ["scifi"]

    def test_resolve_prefix(self, make_entry):
        store = CollectionStore([make_entry(id="abc123"), make_entry(id="abd456")])
        assert store.resolve("abc").id == "abc123"
        assert store.resolve("abd456").id == "abd456"

    def test_resolve_ambiguous(self, make_entry):
        store = CollectionStore([make_entry(id="abc123"), make_entry(id="abd456")])
        with pytest.raises(DiaryError, match="Ambiguous"):
            store.resolve("ab")

    def test_resolve_missing(self):
        with pytest.raises(NotFound):
            CollectionStore().resolve("x")

    def test_contains(self, make_entry):
        store = CollectionStore([make_entry(id="abc")])
        assert "abc" in store
        assert "zzz" not in store


class TestPersistence:
    def test_open_loads_entries(self, make_entry):
        store = CollectionStore.open(MemoryPersistence([make_entry("Dune")]))
        assert [e.title for e in store.all()] == ["Dune"]

    def test_open_unreadable_starts_empty(self):
        class Broken(MemoryPersistence):
            def load_all(self):
                raise ValueError("Malformed CSV near line 3")

        assert len(CollectionStore.open(Broken())) == 0

    def test_failed_write_is_warning(self, clock):
        persistence = MemoryPersistence(fail_with=OSError("disk full"))
        store = CollectionStore(persistence=persistence, clock=clock)

        result = _create(store, title="Dune", type="book")

        assert result.ok
        assert len(result.warnings) == 1
        assert isinstance(result.warnings[0], PersistenceFailed)
        assert "disk full" in str(result.warnings[0])
        assert len(store) == 1

    def test_background_writes(self, clock):
        persistence = MemoryPersistence()
        with ThreadPoolExecutor(max_workers=1) as executor:
            store = CollectionStore(persistence=persistence, executor=executor, clock=clock)
            result = _create(store, title="Dune", type="book")
            result.pending_write.result(timeout=5)

        assert [e.title for e in persistence.entries] == ["Dune"]
        assert store.persistence_errors == []

    def test_background_failure_recorded(self, clock):
        persistence = MemoryPersistence(fail_with=OSError("disk full"))
        with ThreadPoolExecutor(max_workers=1) as executor:
            store = CollectionStore(persistence=persistence, executor=executor, clock=clock)
            result = _create(store, title="Dune", type="book")

        assert result.ok
        assert result.pending_write.exception() is not None
        assert len(store.persistence_errors) == 1
        assert len(store) == 1


class TestMerge:
    def test_adds_new_and_skips_known(self, make_entry, persistence):
        existing = make_entry("Dune", id="dune")
        store = CollectionStore([existing], persistence=persistence)

        report = store.merge([make_entry("Dune copy", id="dune"), make_entry("Alien", id="alien")])

        assert report.added == ["alien"]
        assert report.skipped == ["dune"]
        assert {e.id for e in store.all()} == {"dune", "alien"}
        assert len(persistence.saves) == 1

    def test_skips_broken_entries(self, make_entry):
        broken = make_entry(id="bad", status=Status.PENDING, start_date=date(2024, 1, 1))
        report = CollectionStore().merge([broken])
        assert report.skipped == ["bad"]

    def test_nothing_new_saves_nothing(self, make_entry, persistence):
        store = CollectionStore([make_entry(id="dune")], persistence=persistence)
        store.merge([make_entry(id="dune")])
        assert persistence.saves == []
