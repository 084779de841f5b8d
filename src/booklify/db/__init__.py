"""Database module for local SQLite storage."""

from .models import Base, ChapterRecord
from .schemas import ChapterCreate
from .sqlite import Database, get_db

__all__ = [
    "Base",
    "ChapterRecord",
    "ChapterCreate",
    "Database",
    "get_db",
]
