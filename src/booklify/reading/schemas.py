"""Pydantic schemas for chapters and reading progress records."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """Reading session state of a progress record."""

    IDLE = "idle"
    IN_SESSION = "in_session"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Chapter(BaseModel):
    """A spine item of a book, as produced by the EPUB extraction step."""

    id: str = Field(..., min_length=1)
    order: int = Field(..., ge=0)
    href: str = ""
    title: str = ""
    cfi_range: Optional[tuple[str, str]] = Field(None, description="(start CFI, end CFI)")

    model_config = {"from_attributes": True, "frozen": True}


class ReadingProgress(BaseModel):
    """Reading progress of one user in one book.

    The engine mutates this record in place. ``overall_progress_percent`` is
    only ever written from the other two percentages.
    """

    id: Optional[str] = None
    book_id: str = ""
    user_id: str = ""

    # Position
    current_cfi: str = ""
    current_chapter_id: Optional[str] = None

    # Serialized JSON array of completed chapter ids
    completed_chapter_ids: Optional[str] = None

    # Percentages
    overall_progress_percent: float = Field(0.0, ge=0, le=100)
    cfi_progress_percent: float = Field(0.0, ge=0, le=100)
    chapter_progress_percent: float = Field(0.0, ge=0, le=100)

    # Time tracking
    total_reading_time_minutes: int = Field(0, ge=0)
    session_started_at: Optional[datetime] = None
    last_read_at: datetime = Field(default_factory=utc_now)

    model_config = {"from_attributes": True, "validate_assignment": True}

    @property
    def session_state(self) -> SessionState:
        """IN_SESSION exactly while ``session_started_at`` is set."""
        if self.session_started_at is None:
            return SessionState.IDLE
        return SessionState.IN_SESSION


def find_chapter_order_problem(chapters: Sequence[Chapter]) -> Optional[str]:
    """Check that chapters are sorted by order with unique ids and orders.

    Returns:
        Description of the first problem found, or None
    """
    seen_ids = set()
    previous_order = None
    for chapter in chapters:
        if chapter.id in seen_ids:
            return f"Duplicate chapter id: {chapter.id}"
        seen_ids.add(chapter.id)
        if previous_order is not None and chapter.order <= previous_order:
            return f"Chapters not sorted by unique order at chapter {chapter.id}"
        previous_order = chapter.order
    return None
