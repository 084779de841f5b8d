"""Reading progress engine.

Orchestrates CFI parsing, position estimation, chapter completion and
session tracking against a caller-owned ReadingProgress record. Every
operation returns an Outcome; data problems are reported, never raised.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from .cfi import DEFAULT_MAX_CFI_LENGTH, parse_cfi
from .completion import (
    completion_percent,
    count_completed,
    load_completed_ids,
    mark_complete,
    serialize_completed_ids,
)
from .outcome import ErrorKind, Outcome, ProgressIssue
from .position import DEFAULT_STEP_CEILING, estimate_position
from .reconciler import (
    ProgressBreakdown,
    ProgressWeights,
    extract_chapter_id_from_cfi,
    reconcile,
)
from .schemas import Chapter, ReadingProgress, find_chapter_order_problem, utc_now
from .session import SessionTracker

logger = logging.getLogger(__name__)


@dataclass
class ReadingProgressStats:
    """Snapshot of a reader's progress in one book. Never persisted."""

    # Percentages
    overall_progress: float = 0.0
    cfi_progress: float = 0.0
    chapter_progress: float = 0.0

    # Counts
    completed_chapters: int = 0
    total_chapters: int = 0

    # Time
    total_reading_time_minutes: int = 0
    estimated_time_to_complete_minutes: int = 0
    last_read_at: Optional[datetime] = None

    current_chapter_title: str = ""
    is_completed: bool = False
    in_session: bool = False


class ReadingProgressEngine:
    """Updates reading progress records."""

    def __init__(
        self,
        weights: Optional[ProgressWeights] = None,
        step_ceiling: int = DEFAULT_STEP_CEILING,
        max_cfi_length: int = DEFAULT_MAX_CFI_LENGTH,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the engine.

        Args:
            weights: CFI/completion blend weights
            step_ceiling: Step index treated as the end of a CFI level
            max_cfi_length: Longest accepted CFI string
            clock: Returns the current time (default: UTC now)
        """
        self.weights = weights or ProgressWeights()
        self.step_ceiling = step_ceiling
        self.max_cfi_length = max_cfi_length
        self.clock = clock or utc_now
        self.sessions = SessionTracker(clock=self.clock)

    @classmethod
    def from_config(cls, config, clock: Optional[Callable[[], datetime]] = None) -> "ReadingProgressEngine":
        """Build an engine from a Config instance."""
        return cls(
            weights=ProgressWeights(cfi=config.cfi_weight, completion=config.completion_weight),
            step_ceiling=config.step_ceiling,
            max_cfi_length=config.max_cfi_length,
            clock=clock,
        )

    def _apply(self, progress: ReadingProgress, breakdown: ProgressBreakdown) -> None:
        progress.cfi_progress_percent = breakdown.cfi_percent
        progress.chapter_progress_percent = breakdown.chapter_percent
        progress.overall_progress_percent = breakdown.overall

    # -------------------------------------------------------------------------
    # Position
    # -------------------------------------------------------------------------

    def update_position(
        self,
        progress: ReadingProgress,
        new_cfi: str,
        chapters: Sequence[Chapter],
        new_chapter_id: Optional[str] = None,
        session_time_minutes: Optional[int] = None,
    ) -> Outcome[ReadingProgress]:
        """Move the reader to a new CFI and recompute percentages.

        Args:
            progress: Record to update in place
            new_cfi: New position
            chapters: Book chapters ordered by spine position
            new_chapter_id: Explicit current chapter (else derived from the CFI)
            session_time_minutes: Reading time to add, reported by the client

        Returns:
            Outcome with the record. On failure the record is unchanged.
        """
        parsed = parse_cfi(new_cfi, max_length=self.max_cfi_length)
        if not parsed.ok:
            logger.warning(
                "Ignoring position update for book %s: %s", progress.book_id, parsed.error.message
            )
            return Outcome.failure(ErrorKind.INVALID_CFI, parsed.error.message, value=progress)

        if session_time_minutes is not None and session_time_minutes < 0:
            return Outcome.failure(
                ErrorKind.INVALID_INPUT,
                f"session_time_minutes must not be negative, got {session_time_minutes}",
                value=progress,
            )

        problem = find_chapter_order_problem(chapters)
        if problem:
            return Outcome.failure(ErrorKind.INVALID_INPUT, problem, value=progress)

        address = parsed.value
        warnings = []

        estimate = estimate_position(address, chapters, self.step_ceiling)
        if estimate.out_of_range:
            warnings.append(
                ProgressIssue(
                    ErrorKind.OUT_OF_RANGE_SPINE_INDEX,
                    f"Spine index {address.spine_index} outside {len(chapters)} chapters, "
                    f"clamped to {estimate.spine_index}",
                )
            )

        completed = load_completed_ids(progress.completed_chapter_ids)
        warnings.extend(completed.warnings)

        breakdown = reconcile(
            estimate.fraction,
            completion_percent(completed.value, chapters),
            self.weights,
        )

        progress.current_cfi = address.raw
        if new_chapter_id is not None:
            progress.current_chapter_id = new_chapter_id
        else:
            progress.current_chapter_id = extract_chapter_id_from_cfi(address, chapters)
        self._apply(progress, breakdown)
        if session_time_minutes:
            progress.total_reading_time_minutes += session_time_minutes
        progress.last_read_at = self.clock()

        return Outcome.success(progress, warnings=warnings)

    # -------------------------------------------------------------------------
    # Chapters
    # -------------------------------------------------------------------------

    def complete_chapter(
        self,
        progress: ReadingProgress,
        chapter_id: str,
        chapters: Sequence[Chapter],
    ) -> Outcome[ReadingProgress]:
        """Mark a chapter completed and recompute percentages.

        Completing a chapter twice has the same effect as once.
        """
        if not chapters:
            return Outcome.failure(
                ErrorKind.INVALID_INPUT,
                "Chapter list is empty; completion needs the full chapter list",
                value=progress,
            )

        problem = find_chapter_order_problem(chapters)
        if problem:
            return Outcome.failure(ErrorKind.INVALID_INPUT, problem, value=progress)

        if not any(chapter.id == chapter_id for chapter in chapters):
            logger.warning("Chapter %s not found in book %s", chapter_id, progress.book_id)
            return Outcome.failure(
                ErrorKind.CHAPTER_NOT_FOUND, f"Chapter not found: {chapter_id}", value=progress
            )

        loaded = load_completed_ids(progress.completed_chapter_ids)
        if chapter_id not in loaded.value:
            logger.info("Chapter %s completed in book %s", chapter_id, progress.book_id)
        completed = mark_complete(loaded.value, chapter_id)

        breakdown = reconcile(
            progress.cfi_progress_percent / 100,
            completion_percent(completed, chapters),
            self.weights,
        )

        progress.completed_chapter_ids = serialize_completed_ids(completed)
        progress.current_chapter_id = chapter_id
        self._apply(progress, breakdown)
        progress.last_read_at = self.clock()

        return Outcome.success(progress, warnings=loaded.warnings)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def start_session(self, progress: ReadingProgress) -> Outcome[ReadingProgress]:
        """Open a reading session (no-op if one is open)."""
        return Outcome.success(self.sessions.start_session(progress))

    def end_session(self, progress: ReadingProgress) -> Outcome[ReadingProgress]:
        """Close the reading session (no-op if none is open)."""
        return Outcome.success(self.sessions.end_session(progress))

    # -------------------------------------------------------------------------
    # Stats
    # -------------------------------------------------------------------------

    def get_stats(
        self, progress: ReadingProgress, chapters: Sequence[Chapter]
    ) -> Outcome[ReadingProgressStats]:
        """Build a ReadingProgressStats snapshot.

        The time estimate assumes the remaining share of the book is read at
        the average minutes per completed chapter so far.
        """
        loaded = load_completed_ids(progress.completed_chapter_ids)
        completed = count_completed(loaded.value, chapters)
        total = len(chapters)

        title = ""
        if progress.current_chapter_id is not None:
            title = next(
                (c.title for c in chapters if c.id == progress.current_chapter_id), ""
            )

        overall = progress.overall_progress_percent
        avg_minutes_per_chapter = progress.total_reading_time_minutes / max(1, completed)
        estimated = round((100 - overall) / 100 * avg_minutes_per_chapter * total)

        stats = ReadingProgressStats(
            overall_progress=overall,
            cfi_progress=progress.cfi_progress_percent,
            chapter_progress=progress.chapter_progress_percent,
            completed_chapters=completed,
            total_chapters=total,
            total_reading_time_minutes=progress.total_reading_time_minutes,
            estimated_time_to_complete_minutes=max(0, estimated),
            last_read_at=progress.last_read_at,
            current_chapter_title=title,
            is_completed=total > 0 and completed == total,
            in_session=progress.session_started_at is not None,
        )
        return Outcome.success(stats, warnings=loaded.warnings)
