"""SQLite database operations.

Handles database connection, session management, and chapter storage.
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..reading.schemas import Chapter
from .models import Base, ChapterRecord
from .schemas import ChapterCreate


class Database:
    """Database connection and operations manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     BOOKLIFY_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = os.environ.get(
                "BOOKLIFY_DB_PATH",
                str(Path.home() / ".booklify" / "booklify.db"),
            )

        self.db_path = Path(db_path).expanduser()
        engine_options = {"connect_args": {"check_same_thread": False}}

        if str(db_path) == ":memory:":
            # All sessions must share the single in-memory connection
            url = "sqlite:///:memory:"
            engine_options["poolclass"] = StaticPool
        else:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{self.db_path}"

        self.engine = create_engine(url, **engine_options)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False)

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import progress models to register them with Base
        from ..progress.models import ChapterReadingProgressRecord, ReadingProgressRecord  # noqa: F401

        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Chapter Operations
    # ========================================================================

    def add_chapter(
        self, book_id: str, chapter: ChapterCreate, session: Optional[Session] = None
    ) -> Chapter:
        """Store one chapter of a book."""

        def _add(s: Session) -> Chapter:
            record = ChapterRecord(
                book_id=book_id,
                title=chapter.title,
                order=chapter.order,
                href=chapter.href,
                cfi_start=chapter.cfi_start,
                cfi_end=chapter.cfi_end,
            )
            s.add(record)
            s.flush()
            return record.to_chapter()

        if session:
            return _add(session)
        else:
            with self.get_session() as s:
                return _add(s)

    def add_chapters(self, book_id: str, chapters: list[ChapterCreate]) -> list[Chapter]:
        """Store the chapters of a book in one transaction."""
        with self.get_session() as s:
            return [self.add_chapter(book_id, chapter, session=s) for chapter in chapters]

    def get_chapter(self, chapter_id: str, session: Optional[Session] = None) -> Optional[Chapter]:
        """Get a chapter by ID."""

        def _get(s: Session) -> Optional[Chapter]:
            record = s.get(ChapterRecord, chapter_id)
            return record.to_chapter() if record else None

        if session:
            return _get(session)
        else:
            with self.get_session() as s:
                return _get(s)

    def list_chapters(self, book_id: str, session: Optional[Session] = None) -> list[Chapter]:
        """Get the chapters of a book in spine order."""

        def _list(s: Session) -> list[Chapter]:
            stmt = (
                select(ChapterRecord)
                .where(ChapterRecord.book_id == book_id)
                .order_by(ChapterRecord.order)
            )
            return [record.to_chapter() for record in s.execute(stmt).scalars().all()]

        if session:
            return _list(session)
        else:
            with self.get_session() as s:
                return _list(s)

    def delete_chapters(self, book_id: str) -> int:
        """Delete all chapters of a book. Returns the number deleted."""
        with self.get_session() as s:
            stmt = select(ChapterRecord).where(ChapterRecord.book_id == book_id)
            records = list(s.execute(stmt).scalars().all())
            for record in records:
                s.delete(record)
            return len(records)


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
