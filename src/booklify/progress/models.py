"""SQLAlchemy models for reading progress."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, generate_uuid, utc_timestamp
from ..reading.schemas import ReadingProgress


def to_iso(moment: Optional[datetime]) -> Optional[str]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat()


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


class ReadingProgressRecord(Base):
    """Reading progress of one user in one book."""

    __tablename__ = "reading_progress"
    __table_args__ = (
        UniqueConstraint("book_id", "user_id", name="uq_reading_progress_book_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # Position
    current_cfi: Mapped[str] = mapped_column(Text, default="")
    current_chapter_id: Mapped[Optional[str]] = mapped_column(String(36))
    completed_chapter_ids: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

    # Percentages
    overall_progress_percent: Mapped[float] = mapped_column(Float, default=0.0)
    cfi_progress_percent: Mapped[float] = mapped_column(Float, default=0.0)
    chapter_progress_percent: Mapped[float] = mapped_column(Float, default=0.0)

    # Time tracking
    total_reading_time_minutes: Mapped[int] = mapped_column(Integer, default=0)
    session_started_at: Mapped[Optional[str]] = mapped_column(String(32))
    last_read_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    updated_at: Mapped[str] = mapped_column(
        String(32), default=utc_timestamp, onupdate=utc_timestamp
    )

    # Relationships
    chapter_progresses: Mapped[list["ChapterReadingProgressRecord"]] = relationship(
        "ChapterReadingProgressRecord",
        back_populates="reading_progress",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return (
            f"<ReadingProgressRecord(id={self.id}, book_id={self.book_id}, "
            f"user_id={self.user_id})>"
        )

    def to_schema(self) -> ReadingProgress:
        """Convert to the ReadingProgress schema used by the engine."""
        return ReadingProgress(
            id=self.id,
            book_id=self.book_id,
            user_id=self.user_id,
            current_cfi=self.current_cfi or "",
            current_chapter_id=self.current_chapter_id,
            completed_chapter_ids=self.completed_chapter_ids,
            overall_progress_percent=self.overall_progress_percent or 0.0,
            cfi_progress_percent=self.cfi_progress_percent or 0.0,
            chapter_progress_percent=self.chapter_progress_percent or 0.0,
            total_reading_time_minutes=self.total_reading_time_minutes or 0,
            session_started_at=from_iso(self.session_started_at),
            last_read_at=from_iso(self.last_read_at) or datetime.now(timezone.utc),
        )

    def apply(self, progress: ReadingProgress) -> None:
        """Copy the mutable fields of a ReadingProgress onto this record."""
        self.current_cfi = progress.current_cfi
        self.current_chapter_id = progress.current_chapter_id
        self.completed_chapter_ids = progress.completed_chapter_ids
        self.overall_progress_percent = progress.overall_progress_percent
        self.cfi_progress_percent = progress.cfi_progress_percent
        self.chapter_progress_percent = progress.chapter_progress_percent
        self.total_reading_time_minutes = progress.total_reading_time_minutes
        self.session_started_at = to_iso(progress.session_started_at)
        self.last_read_at = to_iso(progress.last_read_at)


class ChapterReadingProgressRecord(Base):
    """Per-chapter position and completion within a reading progress."""

    __tablename__ = "chapter_reading_progress"
    __table_args__ = (
        UniqueConstraint(
            "reading_progress_id", "chapter_id", name="uq_chapter_progress_chapter"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    reading_progress_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reading_progress.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chapter_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    current_cfi: Mapped[Optional[str]] = mapped_column(Text)

    # Completion is one-way: once set it is never cleared
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[str]] = mapped_column(String(32))

    last_read_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)
    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    # Relationships
    reading_progress: Mapped["ReadingProgressRecord"] = relationship(
        "ReadingProgressRecord", back_populates="chapter_progresses"
    )

    def __repr__(self) -> str:
        return (
            f"<ChapterReadingProgressRecord(id={self.id}, chapter_id={self.chapter_id}, "
            f"is_completed={self.is_completed})>"
        )
