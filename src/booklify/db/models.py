"""SQLAlchemy ORM models for local SQLite database.

Tables:
- chapters: Spine items of each book, produced by EPUB extraction
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..reading.schemas import Chapter


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_timestamp() -> str:
    """Current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


class ChapterRecord(Base):
    """Chapter model - one spine item of a book."""

    __tablename__ = "chapters"
    __table_args__ = (UniqueConstraint("book_id", "chapter_order", name="uq_chapters_book_order"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), default="")
    order: Mapped[int] = mapped_column("chapter_order", Integer, nullable=False)
    href: Mapped[str] = mapped_column(Text, default="")

    # CFI range covered by the chapter
    cfi_start: Mapped[Optional[str]] = mapped_column(Text)
    cfi_end: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_timestamp)

    def __repr__(self) -> str:
        return f"<ChapterRecord(id={self.id}, book_id={self.book_id}, order={self.order})>"

    def to_chapter(self) -> Chapter:
        """Convert to the Chapter schema used by the reading engine."""
        cfi_range = None
        if self.cfi_start and self.cfi_end:
            cfi_range = (self.cfi_start, self.cfi_end)
        return Chapter(
            id=self.id,
            order=self.order,
            href=self.href or "",
            title=self.title or "",
            cfi_range=cfi_range,
        )
