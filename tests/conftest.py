"""Pytest configuration and shared fixtures.

This module provides fixtures for testing booklify, including chapter
lists, progress records, a controllable clock and in-memory databases.
"""

from datetime import datetime, timedelta, timezone

import pytest

from booklify.config import reset_config
from booklify.db.schemas import ChapterCreate
from booklify.db.sqlite import Database, reset_db
from booklify.reading.engine import ReadingProgressEngine
from booklify.reading.schemas import Chapter, ReadingProgress


class FakeClock:
    """Clock returning a settable time."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now = self.now + timedelta(minutes=minutes, seconds=seconds)


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """A clock fixed at 2025-01-15 10:00 UTC."""
    return FakeClock(datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def chapters() -> list[Chapter]:
    """Three chapters A, B, C in spine order."""
    return [
        Chapter(id="ch-a", order=0, href="text/part0001.xhtml", title="Chapter A"),
        Chapter(id="ch-b", order=1, href="text/part0002.xhtml", title="Chapter B"),
        Chapter(id="ch-c", order=2, href="text/part0003.xhtml", title="Chapter C"),
    ]


@pytest.fixture
def progress(clock: FakeClock) -> ReadingProgress:
    """A fresh progress record."""
    return ReadingProgress(
        id="progress-1",
        book_id="book-1",
        user_id="user-1",
        last_read_at=clock.now - timedelta(days=1),
    )


@pytest.fixture
def engine(clock: FakeClock) -> ReadingProgressEngine:
    """Engine with default weights and the fake clock."""
    return ReadingProgressEngine(clock=clock)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    reset_db()
    reset_config()
    database = Database(":memory:")
    database.create_tables()
    yield database
    reset_db()


@pytest.fixture
def stored_chapters(db: Database) -> list[Chapter]:
    """Store three chapters for book-1 and return them."""
    return db.add_chapters(
        "book-1",
        [
            ChapterCreate(title="Chapter A", order=0, href="text/part0001.xhtml"),
            ChapterCreate(title="Chapter B", order=1, href="text/part0002.xhtml"),
            ChapterCreate(title="Chapter C", order=2, href="text/part0003.xhtml"),
        ],
    )
