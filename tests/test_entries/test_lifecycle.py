"""Tests for mdiary.entries.lifecycle."""

from datetime import date

import pytest

from mdiary.entries import lifecycle
from mdiary.entries.errors import InvalidTransition
from mdiary.entries.models import EntryKind, Rating, Status

TODAY = date(2024, 6, 15)


class TestDeriveStatus:
    """Status follows dates first, then rating presence."""

    def test_finish_date_means_completed(self):
        assert lifecycle.derive_active_status(None, date(2024, 1, 1), Rating.UNSET) is Status.COMPLETED

    def test_start_only_means_in_progress(self):
        assert lifecycle.derive_active_status(date(2024, 1, 1), None, Rating.of(8)) is Status.IN_PROGRESS

    def test_undated_with_rating(self):
        assert lifecycle.derive_active_status(None, None, Rating.of(8)) is Status.COMPLETED_NO_DATES
        assert lifecycle.derive_active_status(None, None, Rating.NOT_RATED) is Status.COMPLETED_NO_DATES

    def test_undated_without_rating(self):
        assert lifecycle.derive_active_status(None, None, Rating.UNSET) is Status.IN_PROGRESS_NO_DATES

    def test_pending_kind(self):
        assert lifecycle.initial_status(EntryKind.PENDING, None, None, Rating.UNSET) is Status.PENDING

    def test_pending_stays_pending_without_dates(self):
        assert lifecycle.rederive_status(Status.PENDING, None, None, Rating.UNSET) is Status.PENDING

    def test_pending_with_start_date_becomes_active(self):
        assert lifecycle.rederive_status(Status.PENDING, TODAY, None, Rating.UNSET) is Status.IN_PROGRESS

    def test_never_back_to_pending(self):
        for status in Status:
            if status is not Status.PENDING:
                assert lifecycle.rederive_status(status, None, None, Rating.UNSET) is not Status.PENDING


class TestIgnoredFields:
    def test_rating_ignored_while_pending(self):
        assert lifecycle.ignored_fields(Status.PENDING, ["rating", "notes"]) == ["rating"]

    def test_hype_ignored_once_active(self):
        assert lifecycle.ignored_fields(Status.IN_PROGRESS, ["hype_rating", "title"]) == ["hype_rating"]


class TestStart:
    def test_start_pending(self, make_entry):
        entry = make_entry(status=Status.PENDING, hype_rating=9)
        started = lifecycle.start(entry, TODAY)

        assert started.status is Status.IN_PROGRESS
        assert started.start_date == TODAY
        assert entry.status is Status.PENDING

    def test_start_non_pending(self, make_entry):
        with pytest.raises(InvalidTransition, match="not in pending status"):
            lifecycle.start(make_entry(status=Status.IN_PROGRESS), TODAY)


class TestFinish:
    def test_finish_dated(self, make_entry):
        finished = lifecycle.finish(make_entry(status=Status.IN_PROGRESS), TODAY)
        assert finished.status is Status.COMPLETED
        assert finished.finish_date == TODAY

    def test_finish_undated_marks_not_rated(self, make_entry):
        finished = lifecycle.finish(make_entry(status=Status.IN_PROGRESS_NO_DATES), TODAY)
        assert finished.status is Status.COMPLETED_NO_DATES
        assert finished.finish_date is None
        assert finished.rating == Rating.NOT_RATED

    def test_finish_pending(self, make_entry):
        with pytest.raises(InvalidTransition, match="must be started before finishing"):
            lifecycle.finish(make_entry(status=Status.PENDING), TODAY)

    @pytest.mark.parametrize("status", [Status.COMPLETED, Status.COMPLETED_NO_DATES])
    def test_finish_completed(self, make_entry, status):
        with pytest.raises(InvalidTransition, match="already marked as finished") as exc_info:
            lifecycle.finish(make_entry(status=status), TODAY)
        assert exc_info.value.action == "finish"

    def test_finish_before_start(self, make_entry):
        entry = make_entry(status=Status.IN_PROGRESS, start_date=date(2024, 7, 1))
        with pytest.raises(InvalidTransition, match="before start date"):
            lifecycle.finish(entry, TODAY)


class TestRate:
    def test_rate_in_progress_finishes(self, make_entry):
        rated = lifecycle.rate(make_entry(status=Status.IN_PROGRESS), Rating.of(8), TODAY)
        assert rated.status is Status.COMPLETED
        assert rated.rating == Rating.of(8)

    def test_rate_undated_keeps_score(self, make_entry):
        rated = lifecycle.rate(make_entry(status=Status.IN_PROGRESS_NO_DATES), Rating.of(6), TODAY)
        assert rated.status is Status.COMPLETED_NO_DATES
        assert rated.rating == Rating.of(6)

    def test_rerate_completed(self, make_entry):
        entry = make_entry(status=Status.COMPLETED, rating=Rating.of(5))
        rated = lifecycle.rate(entry, Rating.of(9), TODAY)
        assert rated.status is Status.COMPLETED
        assert rated.finish_date == entry.finish_date
        assert rated.rating.value == 9

    def test_rate_pending(self, make_entry):
        with pytest.raises(InvalidTransition, match="started before rating"):
            lifecycle.rate(make_entry(status=Status.PENDING), Rating.of(8), TODAY)

    def test_rate_unset(self, make_entry):
        with pytest.raises(ValueError):
            lifecycle.rate(make_entry(), Rating.UNSET, TODAY)


class TestCheckInvariants:
    def test_valid_entries(self, make_entry):
        for status in Status:
            assert lifecycle.check_invariants(make_entry(status=status)) == []

    def test_pending_with_dates(self, make_entry):
        entry = make_entry(status=Status.PENDING, start_date=TODAY)
        assert lifecycle.check_invariants(entry) == ["Pending entries cannot have start or finish dates"]

    def test_completed_no_dates_without_rating(self, make_entry):
        entry = make_entry(status=Status.COMPLETED_NO_DATES, rating=Rating.UNSET)
        assert "Completed entries without dates need a rating" in lifecycle.check_invariants(entry)

    def test_in_progress_no_dates_with_score(self, make_entry):
        entry = make_entry(status=Status.IN_PROGRESS_NO_DATES, rating=Rating.of(4))
        assert "In-progress entries without dates cannot have a rating" in lifecycle.check_invariants(entry)

    def test_unknown_status(self, make_entry):
        entry = make_entry()
        entry.status = "abandoned"
        assert lifecycle.check_invariants(entry) == ["Unknown status: 'abandoned'"]
