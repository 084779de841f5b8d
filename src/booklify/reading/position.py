"""Approximate reading position from a CFI's structural path.

The content documents are not available here, so the position inside a
chapter is estimated from the step indices alone. The estimate is a
base-``step_ceiling`` expansion of the path: deeper steps refine the
position but can never outweigh a difference at a shallower step. Within a
chapter an earlier CFI therefore never gets a larger fraction than a later
one.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from .cfi import CfiAddress
from .schemas import Chapter

logger = logging.getLogger(__name__)

DEFAULT_STEP_CEILING = 200

# Largest float below 1.0
_BELOW_ONE = math.nextafter(1.0, 0.0)


@dataclass(frozen=True)
class PositionEstimate:
    """Fractional position of a CFI in the book."""

    fraction: float  # [0, 1)
    spine_index: int  # clamped into the chapter list
    out_of_range: bool = False

    @property
    def percent(self) -> float:
        return self.fraction * 100


def normalize_step(index: int, step_ceiling: int = DEFAULT_STEP_CEILING) -> float:
    """Map a step index to [0, 1), saturating at ``step_ceiling - 1``."""
    return min(max(index, 0), step_ceiling - 1) / step_ceiling


def intra_chapter_fraction(
    address: CfiAddress, step_ceiling: int = DEFAULT_STEP_CEILING
) -> float:
    """Estimate how far into its chapter a CFI points, in [0, 1)."""
    fraction = 0.0
    scale = 1.0
    for step in address.path:
        fraction += normalize_step(step.index, step_ceiling) * scale
        if step.index >= step_ceiling - 1:
            # Saturated level: deeper steps no longer count
            break
        scale /= step_ceiling
    return min(fraction, _BELOW_ONE)


def estimate_position(
    address: CfiAddress,
    chapters: Sequence[Chapter],
    step_ceiling: int = DEFAULT_STEP_CEILING,
) -> PositionEstimate:
    """Convert a CFI into a fraction of the whole book.

    Args:
        address: Parsed CFI
        chapters: Chapters ordered by spine position
        step_ceiling: Step index treated as the end of a level

    Returns:
        PositionEstimate; ``out_of_range`` is set when the spine index had
        to be clamped into the chapter list
    """
    if step_ceiling < 2:
        raise ValueError(f"step_ceiling must be at least 2, got {step_ceiling}")

    total = len(chapters)
    if total == 0:
        logger.warning("No chapters to place CFI %s against", address)
        return PositionEstimate(fraction=0.0, spine_index=0, out_of_range=True)

    spine_index = address.spine_index
    clamped = min(max(spine_index, 0), total - 1)
    out_of_range = clamped != spine_index
    if out_of_range:
        logger.warning(
            "CFI %s points at spine index %d but the book has %d chapters",
            address, spine_index, total,
        )

    fraction = (clamped + intra_chapter_fraction(address, step_ceiling)) / total
    fraction = min(max(fraction, 0.0), _BELOW_ONE)
    return PositionEstimate(fraction=fraction, spine_index=clamped, out_of_range=out_of_range)
