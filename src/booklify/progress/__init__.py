"""Stored reading progress and chapter tracking."""

from .manager import ProgressManager
from .schemas import ChapterProgressResponse, TrackingRequest, TrackingResponse

__all__ = [
    "ProgressManager",
    "ChapterProgressResponse",
    "TrackingRequest",
    "TrackingResponse",
]
