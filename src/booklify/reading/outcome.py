"""Typed outcomes for reading progress operations.

Every engine operation returns an ``Outcome`` instead of raising, so a
single malformed field never blocks a reader. Callers branch on
``outcome.ok``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Kinds of problems reported by the reading progress core."""

    INVALID_CFI = "invalid_cfi"
    CHAPTER_NOT_FOUND = "chapter_not_found"
    OUT_OF_RANGE_SPINE_INDEX = "out_of_range_spine_index"
    MALFORMED_COMPLETED_IDS = "malformed_completed_ids"
    INVALID_INPUT = "invalid_input"  # Caller programming error

    @property
    def is_data_quality(self) -> bool:
        """Whether this kind comes from bad stored or client data."""
        return self is not ErrorKind.INVALID_INPUT


@dataclass(frozen=True)
class ProgressIssue:
    """A failure reason or warning attached to an outcome."""

    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class OutcomeError(Exception):
    """Raised when unwrapping a failed outcome."""

    def __init__(self, issue: ProgressIssue):
        super().__init__(str(issue))
        self.issue = issue


@dataclass
class Outcome(Generic[T]):
    """Success-with-value or failure-with-reason, plus non-fatal warnings."""

    value: Optional[T] = None
    error: Optional[ProgressIssue] = None
    warnings: list[ProgressIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(
        cls, value: T, warnings: Optional[list[ProgressIssue]] = None
    ) -> "Outcome[T]":
        """Build a successful outcome."""
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        value: Optional[T] = None,
        warnings: Optional[list[ProgressIssue]] = None,
    ) -> "Outcome[T]":
        """Build a failed outcome.

        ``value`` may carry the untouched input (e.g. the unchanged progress
        record) so callers can keep using it.
        """
        return cls(
            value=value,
            error=ProgressIssue(kind, message),
            warnings=list(warnings or []),
        )

    def has_warning(self, kind: ErrorKind) -> bool:
        """Check whether a warning of the given kind was attached."""
        return any(w.kind == kind for w in self.warnings)

    def unwrap(self) -> T:
        """Return the value or raise OutcomeError on failure."""
        if self.error is not None:
            raise OutcomeError(self.error)
        return self.value
