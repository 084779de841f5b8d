"""Blend CFI position and chapter completion into one overall percentage.

Chapter completion gets the larger weight by default: it reflects a
deliberate "I finished this chapter" action, while the CFI position follows
scrolling and can move backwards when a reader revisits earlier pages.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .cfi import CfiAddress
from .schemas import Chapter

DEFAULT_CFI_WEIGHT = 0.3
DEFAULT_COMPLETION_WEIGHT = 0.7


@dataclass(frozen=True)
class ProgressWeights:
    """Weights applied to the CFI and completion percentages."""

    cfi: float = DEFAULT_CFI_WEIGHT
    completion: float = DEFAULT_COMPLETION_WEIGHT

    def __post_init__(self):
        if self.cfi < 0 or self.completion < 0:
            raise ValueError("Progress weights must be non-negative")
        if not math.isclose(self.cfi + self.completion, 1.0, abs_tol=1e-9):
            raise ValueError(
                f"Progress weights must sum to 1, got {self.cfi} + {self.completion}"
            )


@dataclass(frozen=True)
class ProgressBreakdown:
    """Overall percentage together with its two components."""

    overall: float
    cfi_percent: float
    chapter_percent: float


def _clamp_percent(value: float) -> float:
    return round(min(100.0, max(0.0, value)), 2)


def reconcile(
    cfi_fraction: float,
    completion_percent: float,
    weights: Optional[ProgressWeights] = None,
) -> ProgressBreakdown:
    """Combine a CFI fraction in [0, 1) with a completion percentage.

    Args:
        cfi_fraction: Position estimate as a fraction of the book
        completion_percent: Completed chapters as a percentage
        weights: Blend weights (defaults to 30% CFI, 70% completion)

    Returns:
        ProgressBreakdown with every value clamped to [0, 100]
    """
    weights = weights or ProgressWeights()
    cfi_percent = min(100.0, max(0.0, cfi_fraction * 100))
    chapter_percent = min(100.0, max(0.0, completion_percent))
    overall = weights.cfi * cfi_percent + weights.completion * chapter_percent
    return ProgressBreakdown(
        overall=_clamp_percent(overall),
        cfi_percent=_clamp_percent(cfi_percent),
        chapter_percent=_clamp_percent(chapter_percent),
    )


def extract_chapter_id_from_cfi(
    address: CfiAddress, chapters: Sequence[Chapter]
) -> Optional[str]:
    """Return the id of the chapter a CFI points into, if it is in range."""
    index = address.spine_index
    if 0 <= index < len(chapters):
        return chapters[index].id
    return None
