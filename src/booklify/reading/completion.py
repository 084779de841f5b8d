"""Completed-chapter set handling.

The set of completed chapter ids is stored on the progress record as a
JSON array string. This module owns that format.
"""

import json
import logging
from typing import Iterable, Optional, Sequence

from .outcome import ErrorKind, Outcome, ProgressIssue
from .schemas import Chapter

logger = logging.getLogger(__name__)


class MalformedCompletedIds(ValueError):
    """Raised when a stored completed-id string cannot be decoded."""


def _decode(serialized: str) -> frozenset[str]:
    try:
        data = json.loads(serialized)
    except json.JSONDecodeError as e:
        raise MalformedCompletedIds(f"not valid JSON: {e.msg}") from e

    if not isinstance(data, list):
        raise MalformedCompletedIds(f"expected a JSON array, got {type(data).__name__}")

    ids = set()
    for item in data:
        # bool is an int subclass but never a chapter id
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            raise MalformedCompletedIds(f"unexpected item {item!r}")
        item = str(item).strip()
        if item:
            ids.add(item)
    return frozenset(ids)


def load_completed_ids(serialized: Optional[str]) -> Outcome[frozenset[str]]:
    """Decode completed ids, reporting malformed data as a warning.

    Malformed data never fails: the outcome holds an empty set plus a
    MALFORMED_COMPLETED_IDS warning.
    """
    if serialized is None or not serialized.strip():
        return Outcome.success(frozenset())

    try:
        return Outcome.success(_decode(serialized))
    except MalformedCompletedIds as e:
        logger.warning("Discarding malformed completed chapter ids %r: %s", serialized, e)
        issue = ProgressIssue(ErrorKind.MALFORMED_COMPLETED_IDS, str(e))
        return Outcome.success(frozenset(), warnings=[issue])


def parse_completed_ids(serialized: Optional[str]) -> frozenset[str]:
    """Decode completed ids; empty or malformed input gives an empty set."""
    return load_completed_ids(serialized).value


def serialize_completed_ids(ids: Iterable[str]) -> str:
    """Encode completed ids as a sorted, deduplicated JSON array."""
    return json.dumps(sorted({str(i) for i in ids}))


def mark_complete(completed_ids: Iterable[str], chapter_id: str) -> frozenset[str]:
    """Return a new set including ``chapter_id``."""
    return frozenset(completed_ids) | {chapter_id}


def count_completed(completed_ids: Iterable[str], chapters: Sequence[Chapter]) -> int:
    """Count completed ids that belong to ``chapters``."""
    known = {chapter.id for chapter in chapters}
    return len(known.intersection(completed_ids))


def completion_percent(completed_ids: Iterable[str], chapters: Sequence[Chapter]) -> float:
    """Percentage of chapters completed, rounded to 2 decimals.

    Ids not present in ``chapters`` (stale after a chapter list change) are
    ignored. An empty chapter list gives 0.
    """
    if not chapters:
        return 0.0
    completed = count_completed(completed_ids, chapters)
    return round(min(100.0, 100.0 * completed / len(chapters)), 2)
