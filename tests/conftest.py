"""Shared test fixtures for the mdiary package."""

from datetime import date, datetime, timedelta

import pytest

from mdiary.entries.models import Entry, MediaType, Rating, Status


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory."""
    return tmp_path


@pytest.fixture
def mock_diary_root(tmp_path, monkeypatch):
    """Create a diary with an empty .mdiary/ directory."""
    data_dir = tmp_path / ".mdiary"
    data_dir.mkdir()
    (data_dir / "backups").mkdir()

    # Mock get_diary_root to return our tmp_path
    from mdiary.core import config
    # Clear the lru_cache first
    config.get_diary_root.cache_clear()
    monkeypatch.setattr(config, "get_diary_root", lambda: tmp_path)

    return tmp_path


class FakeClock:
    """Clock returning a fixed time that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock fixed at 2024-06-15 12:00."""
    return FakeClock(datetime(2024, 6, 15, 12, 0, 0))


@pytest.fixture
def make_entry():
    """Factory fixture for building entries directly (bypassing the store)."""
    counter = {"n": 0}

    def _make(
        title: str = "Entry",
        media_type: MediaType = MediaType.BOOK,
        status: Status = Status.IN_PROGRESS,
        created_at: datetime | None = None,
        **kwargs,
    ) -> Entry:
        counter["n"] += 1
        if status is Status.IN_PROGRESS:
            kwargs.setdefault("start_date", date(2024, 1, 1))
        elif status is Status.COMPLETED:
            kwargs.setdefault("start_date", date(2024, 1, 1))
            kwargs.setdefault("finish_date", date(2024, 2, 1))
        elif status is Status.COMPLETED_NO_DATES:
            kwargs.setdefault("rating", Rating.NOT_RATED)
        return Entry(
            id=kwargs.pop("id", f"entry-{counter['n']:04d}"),
            title=title,
            type=media_type,
            status=status,
            created_at=created_at or datetime(2024, 1, 1) + timedelta(minutes=counter["n"]),
            **kwargs,
        )

    return _make
