"""Manager for reading progress operations.

Loads a progress record and the book's chapters, runs the reading engine
on them, and stores the record again when the operation succeeded.
"""

import logging
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import ChapterRecord
from ..db.sqlite import Database, get_db
from ..reading.cfi import parse_cfi
from ..reading.completion import count_completed, parse_completed_ids
from ..reading.engine import ReadingProgressEngine, ReadingProgressStats
from ..reading.outcome import ErrorKind, Outcome
from ..reading.schemas import Chapter, ReadingProgress
from .models import ChapterReadingProgressRecord, ReadingProgressRecord, to_iso
from .schemas import ChapterProgressResponse, TrackingRequest, TrackingResponse

logger = logging.getLogger(__name__)


class ProgressManager:
    """Manages reading progress records."""

    def __init__(
        self,
        db: Optional[Database] = None,
        engine: Optional[ReadingProgressEngine] = None,
    ):
        """Initialize progress manager.

        Args:
            db: Database instance
            engine: Reading progress engine (default settings if omitted)
        """
        self.db = db or get_db()
        self.engine = engine or ReadingProgressEngine()

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def _get_record(
        self, session: Session, book_id: str, user_id: str
    ) -> Optional[ReadingProgressRecord]:
        stmt = select(ReadingProgressRecord).where(
            ReadingProgressRecord.book_id == book_id,
            ReadingProgressRecord.user_id == user_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _get_or_create_record(
        self, session: Session, book_id: str, user_id: str
    ) -> tuple[ReadingProgressRecord, bool]:
        record = self._get_record(session, book_id, user_id)
        if record:
            return record, False

        record = ReadingProgressRecord(
            book_id=book_id,
            user_id=user_id,
            last_read_at=to_iso(self.engine.clock()),
        )
        session.add(record)
        session.flush()
        logger.info("Created reading progress for book %s, user %s", book_id, user_id)
        return record, True

    def get_progress(self, book_id: str, user_id: str) -> Optional[ReadingProgress]:
        """Get the progress record of a user in a book.

        Returns:
            ReadingProgress or None if the user never opened the book
        """
        with self.db.get_session() as session:
            record = self._get_record(session, book_id, user_id)
            return record.to_schema() if record else None

    def open_book(self, book_id: str, user_id: str) -> ReadingProgress:
        """Get the progress record, creating it on first open."""
        with self.db.get_session() as session:
            record, _ = self._get_or_create_record(session, book_id, user_id)
            return record.to_schema()

    def _run(
        self,
        book_id: str,
        user_id: str,
        operation: Callable[[ReadingProgress, list[Chapter]], Outcome[ReadingProgress]],
        create: bool = True,
    ) -> Outcome[ReadingProgress]:
        """Run an engine operation on a stored record and save it on success.

        A missing record is only created when the operation succeeds and
        ``create`` is set.
        """
        with self.db.get_session() as session:
            record = self._get_record(session, book_id, user_id)
            chapters = self.db.list_chapters(book_id, session=session)
            if record:
                progress = record.to_schema()
            else:
                progress = ReadingProgress(
                    book_id=book_id, user_id=user_id, last_read_at=self.engine.clock()
                )

            outcome = operation(progress, chapters)
            if not outcome.ok:
                logger.info(
                    "Progress for book %s, user %s not updated: %s",
                    book_id, user_id, outcome.error,
                )
                return outcome

            if record is None:
                if not create:
                    return outcome
                record = ReadingProgressRecord(book_id=book_id, user_id=user_id)
                session.add(record)
                logger.info("Created reading progress for book %s, user %s", book_id, user_id)
            record.apply(progress)
            session.flush()
            progress.id = record.id
            return outcome

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def update_position(
        self,
        book_id: str,
        user_id: str,
        cfi: str,
        chapter_id: Optional[str] = None,
        session_time_minutes: Optional[int] = None,
    ) -> Outcome[ReadingProgress]:
        """Move the reader to a new CFI."""
        return self._run(
            book_id,
            user_id,
            lambda progress, chapters: self.engine.update_position(
                progress,
                cfi,
                chapters,
                new_chapter_id=chapter_id,
                session_time_minutes=session_time_minutes,
            ),
        )

    def complete_chapter(self, book_id: str, user_id: str, chapter_id: str) -> Outcome[ReadingProgress]:
        """Mark a chapter completed."""
        return self._run(
            book_id,
            user_id,
            lambda progress, chapters: self.engine.complete_chapter(progress, chapter_id, chapters),
        )

    def start_session(self, book_id: str, user_id: str) -> Outcome[ReadingProgress]:
        """Start a reading session."""
        return self._run(
            book_id, user_id, lambda progress, _: self.engine.start_session(progress)
        )

    def end_session(self, book_id: str, user_id: str) -> Outcome[ReadingProgress]:
        """Stop the reading session and add its time.

        A book that was never opened stays without a record.
        """
        return self._run(
            book_id, user_id, lambda progress, _: self.engine.end_session(progress), create=False
        )

    def track(self, request: TrackingRequest) -> Outcome[TrackingResponse]:
        """Record chapter access, position and completion in one call.

        Chapter completion is one-way: a request with ``is_completed=False``
        never reverts a completed chapter.
        """
        if request.current_cfi:
            parsed = parse_cfi(request.current_cfi, max_length=self.engine.max_cfi_length)
            if not parsed.ok:
                return Outcome.failure(ErrorKind.INVALID_CFI, parsed.error.message)

        with self.db.get_session() as session:
            chapters = self.db.list_chapters(request.book_id, session=session)
            if not any(chapter.id == request.chapter_id for chapter in chapters):
                return Outcome.failure(
                    ErrorKind.CHAPTER_NOT_FOUND,
                    f"Chapter {request.chapter_id} not found in book {request.book_id}",
                )

            record, _ = self._get_or_create_record(session, request.book_id, request.user_id)
            progress = record.to_schema()
            warnings = []

            if request.current_cfi:
                outcome = self.engine.update_position(
                    progress, request.current_cfi, chapters, new_chapter_id=request.chapter_id
                )
                if not outcome.ok:
                    return Outcome.failure(outcome.error.kind, outcome.error.message)
                warnings.extend(outcome.warnings)
            else:
                progress.current_chapter_id = request.chapter_id
                progress.last_read_at = self.engine.clock()

            now = to_iso(self.engine.clock())
            chapter_row = session.execute(
                select(ChapterReadingProgressRecord).where(
                    ChapterReadingProgressRecord.reading_progress_id == record.id,
                    ChapterReadingProgressRecord.chapter_id == request.chapter_id,
                )
            ).scalar_one_or_none()

            if chapter_row is None:
                chapter_row = ChapterReadingProgressRecord(
                    reading_progress_id=record.id,
                    chapter_id=request.chapter_id,
                )
                session.add(chapter_row)
                message = "Reading progress tracked successfully"
            elif chapter_row.is_completed:
                message = "Reading progress updated successfully (chapter already completed)"
            else:
                message = "Reading progress updated successfully"

            if request.current_cfi:
                chapter_row.current_cfi = request.current_cfi.strip()
            chapter_row.last_read_at = now

            if request.is_completed and not chapter_row.is_completed:
                chapter_row.is_completed = True
                chapter_row.completed_at = now
                outcome = self.engine.complete_chapter(progress, request.chapter_id, chapters)
                if not outcome.ok:
                    return Outcome.failure(outcome.error.kind, outcome.error.message)
                warnings.extend(outcome.warnings)

            record.apply(progress)

            completed = count_completed(parse_completed_ids(progress.completed_chapter_ids), chapters)
            response = TrackingResponse(
                id=record.id,
                book_id=record.book_id,
                current_chapter_id=progress.current_chapter_id,
                completed_chapters_count=completed,
                total_chapters_count=len(chapters),
                overall_progress_percent=progress.overall_progress_percent,
                is_completed=bool(chapters) and completed == len(chapters),
                last_read_at=progress.last_read_at,
                message=message,
            )
            return Outcome.success(response, warnings=warnings)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_stats(self, book_id: str, user_id: str) -> Outcome[ReadingProgressStats]:
        """Get a stats snapshot for a user's progress in a book.

        Raises:
            ValueError: If the user has no progress record for the book
        """
        with self.db.get_session() as session:
            record = self._get_record(session, book_id, user_id)
            if not record:
                raise ValueError(f"Reading progress not found: book={book_id}, user={user_id}")
            chapters = self.db.list_chapters(book_id, session=session)
            return self.engine.get_stats(record.to_schema(), chapters)

    def chapter_progress(self, book_id: str, user_id: str) -> list[ChapterProgressResponse]:
        """List per-chapter progress rows in spine order."""
        with self.db.get_session() as session:
            record = self._get_record(session, book_id, user_id)
            if not record:
                return []

            stmt = (
                select(ChapterReadingProgressRecord, ChapterRecord)
                .join(ChapterRecord, ChapterRecord.id == ChapterReadingProgressRecord.chapter_id)
                .where(ChapterReadingProgressRecord.reading_progress_id == record.id)
                .order_by(ChapterRecord.order)
            )

            rows = []
            for row, chapter in session.execute(stmt).all():
                rows.append(
                    ChapterProgressResponse(
                        id=row.id,
                        chapter_id=row.chapter_id,
                        chapter_title=chapter.title or "",
                        chapter_order=chapter.order,
                        current_cfi=row.current_cfi,
                        is_completed=row.is_completed,
                        completed_at=row.completed_at,
                        last_read_at=row.last_read_at,
                    )
                )
            return rows
