"""Reading session tracking on a progress record.

A record is IDLE or IN_SESSION, depending on whether
``session_started_at`` is set. Starting twice keeps the original start time
and stopping twice adds nothing, so duplicate client calls never lose or
double count time.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .schemas import ReadingProgress, SessionState, utc_now

logger = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes (as stored by SQLite) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class SessionTracker:
    """Starts and stops reading sessions."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """Initialize session tracker.

        Args:
            clock: Returns the current time (default: UTC now)
        """
        self.clock = clock or utc_now

    def state(self, progress: ReadingProgress) -> SessionState:
        """Get the session state of a record."""
        return progress.session_state

    def start_session(self, progress: ReadingProgress) -> ReadingProgress:
        """Open a session; no-op if one is already open."""
        if progress.session_started_at is not None:
            logger.debug("Session already open for book %s", progress.book_id)
            return progress

        progress.session_started_at = self.clock()
        logger.info("Started reading session for book %s", progress.book_id)
        return progress

    def elapsed_minutes(self, progress: ReadingProgress) -> int:
        """Whole minutes since the session started (0 when idle)."""
        if progress.session_started_at is None:
            return 0
        elapsed = _as_utc(self.clock()) - _as_utc(progress.session_started_at)
        seconds = max(0.0, elapsed.total_seconds())
        return round(seconds / 60)

    def end_session(self, progress: ReadingProgress) -> ReadingProgress:
        """Close the session and add its duration to the total reading time.

        No-op if no session is open.
        """
        if progress.session_started_at is None:
            logger.debug("No open session for book %s", progress.book_id)
            return progress

        minutes = self.elapsed_minutes(progress)
        progress.total_reading_time_minutes += minutes
        progress.session_started_at = None
        progress.last_read_at = self.clock()
        logger.info(
            "Ended reading session for book %s after %d minutes", progress.book_id, minutes
        )
        return progress
