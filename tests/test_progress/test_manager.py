"""Tests for the reading progress manager."""

import json

import pytest

from booklify.progress.manager import ProgressManager
from booklify.progress.schemas import TrackingRequest
from booklify.reading.engine import ReadingProgressEngine
from booklify.reading.outcome import ErrorKind


@pytest.fixture
def manager(db, engine):
    """Progress manager over the in-memory database."""
    return ProgressManager(db=db, engine=engine)


class TestRecords:
    """Tests for loading and creating progress records."""

    def test_no_progress(self, manager):
        assert manager.get_progress("book-1", "user-1") is None

    def test_open_book_creates_once(self, manager, clock):
        """Test opening a book twice returns the same record."""
        first = manager.open_book("book-1", "user-1")
        second = manager.open_book("book-1", "user-1")

        assert first.id == second.id
        assert first.last_read_at == clock.now
        assert first.overall_progress_percent == 0.0

    def test_per_user(self, manager):
        a = manager.open_book("book-1", "user-1")
        b = manager.open_book("book-1", "user-2")
        assert a.id != b.id


class TestUpdatePosition:
    """Tests for ProgressManager.update_position."""

    def test_saved(self, manager, stored_chapters):
        """Test a successful update is persisted."""
        outcome = manager.update_position("book-1", "user-1", "epubcfi(/4/2)")
        assert outcome.ok

        stored = manager.get_progress("book-1", "user-1")
        assert stored.current_cfi == "epubcfi(/4/2)"
        assert stored.current_chapter_id == stored_chapters[1].id
        assert stored.cfi_progress_percent == outcome.value.cfi_progress_percent

    def test_invalid_cfi_not_saved(self, manager, stored_chapters):
        """Test a failed update leaves the stored record unchanged."""
        manager.update_position("book-1", "user-1", "epubcfi(/4/2)")

        outcome = manager.update_position("book-1", "user-1", "garbage")

        assert outcome.error.kind == ErrorKind.INVALID_CFI
        assert manager.get_progress("book-1", "user-1").current_cfi == "epubcfi(/4/2)"

    def test_failed_update_creates_nothing(self, manager, stored_chapters):
        """Test a failed update on an unopened book stores no record."""
        outcome = manager.update_position("book-1", "user-1", "garbage")

        assert outcome.error.kind == ErrorKind.INVALID_CFI
        assert manager.get_progress("book-1", "user-1") is None

    def test_first_update_creates_record(self, manager, stored_chapters):
        outcome = manager.update_position("book-1", "user-1", "epubcfi(/2/2)")

        stored = manager.get_progress("book-1", "user-1")
        assert stored.id == outcome.value.id
        assert stored.id is not None

    def test_session_minutes(self, manager, stored_chapters):
        manager.update_position("book-1", "user-1", "epubcfi(/2/2)", session_time_minutes=15)
        assert manager.get_progress("book-1", "user-1").total_reading_time_minutes == 15


class TestCompleteChapter:
    """Tests for ProgressManager.complete_chapter."""

    def test_complete(self, manager, stored_chapters):
        chapter_id = stored_chapters[0].id
        outcome = manager.complete_chapter("book-1", "user-1", chapter_id)

        assert outcome.ok
        stored = manager.get_progress("book-1", "user-1")
        assert json.loads(stored.completed_chapter_ids) == [chapter_id]
        assert stored.chapter_progress_percent == 33.33

    def test_unknown_chapter(self, manager, stored_chapters):
        outcome = manager.complete_chapter("book-1", "user-1", "missing")

        assert outcome.error.kind == ErrorKind.CHAPTER_NOT_FOUND
        assert manager.get_progress("book-1", "user-1") is None

    def test_unknown_chapter_keeps_record(self, manager, stored_chapters):
        manager.open_book("book-1", "user-1")
        manager.complete_chapter("book-1", "user-1", "missing")

        assert manager.get_progress("book-1", "user-1").completed_chapter_ids is None

    def test_book_without_chapters(self, manager):
        outcome = manager.complete_chapter("book-9", "user-1", "ch-a")
        assert outcome.error.kind == ErrorKind.INVALID_INPUT
        assert manager.get_progress("book-9", "user-1") is None


class TestSessions:
    """Tests for session persistence."""

    def test_start_stop(self, manager, clock):
        """Test a session survives between calls and adds its time."""
        manager.start_session("book-1", "user-1")
        assert manager.get_progress("book-1", "user-1").session_started_at == clock.now

        clock.advance(minutes=42)
        manager.end_session("book-1", "user-1")

        stored = manager.get_progress("book-1", "user-1")
        assert stored.session_started_at is None
        assert stored.total_reading_time_minutes == 42

    def test_start_twice(self, manager, clock):
        manager.start_session("book-1", "user-1")
        started = manager.get_progress("book-1", "user-1").session_started_at

        clock.advance(minutes=5)
        manager.start_session("book-1", "user-1")

        assert manager.get_progress("book-1", "user-1").session_started_at == started

    def test_stop_idle(self, manager):
        outcome = manager.end_session("book-1", "user-1")
        assert outcome.ok
        assert outcome.value.total_reading_time_minutes == 0
        assert manager.get_progress("book-1", "user-1") is None


class TestTrack:
    """Tests for ProgressManager.track."""

    def request(self, chapter_id, **kwargs) -> TrackingRequest:
        return TrackingRequest(book_id="book-1", user_id="user-1", chapter_id=chapter_id, **kwargs)

    def test_first_access(self, manager, stored_chapters):
        """Test the first report on a chapter creates its row."""
        chapter = stored_chapters[1]
        outcome = manager.track(self.request(chapter.id, current_cfi="epubcfi(/4/2/4)"))

        assert outcome.ok
        response = outcome.value
        assert response.message == "Reading progress tracked successfully"
        assert response.current_chapter_id == chapter.id
        assert response.completed_chapters_count == 0
        assert response.total_chapters_count == 3
        assert response.overall_progress_percent > 0

        rows = manager.chapter_progress("book-1", "user-1")
        assert [row.chapter_id for row in rows] == [chapter.id]
        assert rows[0].current_cfi == "epubcfi(/4/2/4)"

    def test_repeat_access(self, manager, stored_chapters):
        chapter_id = stored_chapters[0].id
        manager.track(self.request(chapter_id))
        outcome = manager.track(self.request(chapter_id))

        assert outcome.value.message == "Reading progress updated successfully"

    def test_completion_is_one_way(self, manager, stored_chapters):
        """Test a later non-completed report keeps the chapter completed."""
        chapter_id = stored_chapters[0].id
        manager.track(self.request(chapter_id, is_completed=True))

        outcome = manager.track(self.request(chapter_id, is_completed=False))

        assert outcome.value.message == (
            "Reading progress updated successfully (chapter already completed)"
        )
        assert outcome.value.completed_chapters_count == 1
        row = manager.chapter_progress("book-1", "user-1")[0]
        assert row.is_completed
        assert row.completed_at is not None

    def test_all_completed(self, manager, stored_chapters):
        for chapter in stored_chapters:
            outcome = manager.track(self.request(chapter.id, is_completed=True))

        assert outcome.value.is_completed
        assert outcome.value.completed_chapters_count == 3
        rows = manager.chapter_progress("book-1", "user-1")
        assert [row.chapter_order for row in rows] == [0, 1, 2]

    def test_invalid_cfi(self, manager, stored_chapters):
        """Test an invalid CFI fails before anything is stored."""
        outcome = manager.track(self.request(stored_chapters[0].id, current_cfi="epubcfi(/6"))

        assert outcome.error.kind == ErrorKind.INVALID_CFI
        assert manager.get_progress("book-1", "user-1") is None

    def test_configured_cfi_length(self, db, clock, stored_chapters):
        """Test the CFI length limit follows the engine setting."""
        long_cfi = "epubcfi(/2" + "/2" * 600 + ")"
        request = self.request(stored_chapters[0].id, current_cfi=long_cfi)

        default = ProgressManager(db=db, engine=ReadingProgressEngine(clock=clock))
        assert default.track(request).error.kind == ErrorKind.INVALID_CFI

        relaxed = ProgressManager(
            db=db, engine=ReadingProgressEngine(max_cfi_length=5000, clock=clock)
        )
        assert relaxed.track(request).ok

    def test_unknown_chapter(self, manager, stored_chapters):
        outcome = manager.track(self.request("missing"))

        assert outcome.error.kind == ErrorKind.CHAPTER_NOT_FOUND
        assert manager.get_progress("book-1", "user-1") is None


class TestStats:
    """Tests for ProgressManager.get_stats."""

    def test_stats(self, manager, stored_chapters):
        manager.complete_chapter("book-1", "user-1", stored_chapters[0].id)
        stats = manager.get_stats("book-1", "user-1").unwrap()

        assert stats.completed_chapters == 1
        assert stats.total_chapters == 3
        assert stats.current_chapter_title == "Chapter A"

    def test_no_record(self, manager):
        with pytest.raises(ValueError, match="Reading progress not found"):
            manager.get_stats("book-1", "user-1")
