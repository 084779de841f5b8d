"""Schemas for reading progress tracking requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# --- Request Schemas ---


class TrackingRequest(BaseModel):
    """A reader's report of the chapter they are in.

    ``is_completed`` can only move a chapter from unread to completed;
    ``False`` on an already completed chapter is ignored. The CFI is checked
    by the manager against the configured length limit.
    """

    book_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    chapter_id: str = Field(..., min_length=1)
    current_cfi: Optional[str] = None
    is_completed: bool = False


# --- Response Schemas ---


class TrackingResponse(BaseModel):
    """Result of a tracking request."""

    id: str
    book_id: str
    current_chapter_id: Optional[str]
    completed_chapters_count: int
    total_chapters_count: int
    overall_progress_percent: float
    is_completed: bool
    last_read_at: datetime
    message: str


class ChapterProgressResponse(BaseModel):
    """Per-chapter progress row."""

    id: str
    chapter_id: str
    chapter_title: str
    chapter_order: int
    current_cfi: Optional[str]
    is_completed: bool
    completed_at: Optional[datetime]
    last_read_at: datetime
