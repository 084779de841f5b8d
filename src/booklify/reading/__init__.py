"""EPUB reading position and progress tracking."""

from .cfi import CfiAddress, CfiParseError, CfiStep, is_valid_cfi, parse_cfi
from .completion import (
    completion_percent,
    mark_complete,
    parse_completed_ids,
    serialize_completed_ids,
)
from .engine import ReadingProgressEngine, ReadingProgressStats
from .outcome import ErrorKind, Outcome, OutcomeError, ProgressIssue
from .position import PositionEstimate, estimate_position
from .reconciler import (
    ProgressBreakdown,
    ProgressWeights,
    extract_chapter_id_from_cfi,
    reconcile,
)
from .schemas import Chapter, ReadingProgress, SessionState
from .session import SessionTracker

__all__ = [
    "CfiAddress",
    "CfiParseError",
    "CfiStep",
    "is_valid_cfi",
    "parse_cfi",
    "completion_percent",
    "mark_complete",
    "parse_completed_ids",
    "serialize_completed_ids",
    "ReadingProgressEngine",
    "ReadingProgressStats",
    "ErrorKind",
    "Outcome",
    "OutcomeError",
    "ProgressIssue",
    "PositionEstimate",
    "estimate_position",
    "ProgressBreakdown",
    "ProgressWeights",
    "extract_chapter_id_from_cfi",
    "reconcile",
    "Chapter",
    "ReadingProgress",
    "SessionState",
    "SessionTracker",
]
