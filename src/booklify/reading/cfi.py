"""EPUB Canonical Fragment Identifier (CFI) parsing.

A CFI such as ``epubcfi(/6/4[chap01ref]!/4/2/1:12)`` addresses a location
inside a publication. The first step selects the spine item, the remaining
steps walk down the content document, and the optional ``:N`` suffix is a
character offset in the final text node.

Only the structural path is interpreted here. Side bias, temporal and
spatial offsets are rejected.
"""

import logging
import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Optional

from .outcome import ErrorKind, Outcome

logger = logging.getLogger(__name__)

CFI_PREFIX = "epubcfi("
CFI_SUFFIX = ")"
DEFAULT_MAX_CFI_LENGTH = 1000

# Assertions may escape "]" and "^" with a leading "^"
_ASSERTION = r"(?:\[((?:\^.|[^\]\^])*)\])?"
_STEP_RE = re.compile(r"/(\d+)" + _ASSERTION)
_OFFSET_RE = re.compile(r":(\d+)" + _ASSERTION)


class CfiParseError(ValueError):
    """Raised when a string is not a well-formed CFI."""

    def __init__(self, raw: str, reason: str):
        super().__init__(f"Invalid CFI {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


@dataclass(frozen=True)
class CfiStep:
    """One ``/N[assertion]`` step of a CFI path."""

    index: int
    assertion: Optional[str] = None

    @property
    def is_element(self) -> bool:
        """Even indices address elements, odd ones text or virtual nodes."""
        return self.index % 2 == 0

    def __str__(self) -> str:
        if self.assertion is None:
            return f"/{self.index}"
        return f"/{self.index}[{self.assertion}]"


@total_ordering
@dataclass(frozen=True, eq=False)
class CfiAddress:
    """A parsed CFI.

    Addresses are ordered by spine step, then by successive path step
    indices, then by character offset (a missing offset sorts first).
    Equality follows the same key, so id assertions do not affect it.
    """

    spine_step: int
    path: tuple[CfiStep, ...]
    offset: Optional[int] = None
    raw: str = ""

    @property
    def spine_index(self) -> int:
        """Zero-based position of the addressed item in the spine."""
        return self.spine_step // 2 - 1

    @property
    def sort_key(self) -> tuple:
        offset = -1 if self.offset is None else self.offset
        return (self.spine_step, tuple(step.index for step in self.path), offset)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CfiAddress):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __lt__(self, other: "CfiAddress") -> bool:
        if not isinstance(other, CfiAddress):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __str__(self) -> str:
        return self.raw or self.to_string()

    def is_before(self, other: "CfiAddress") -> bool:
        """Check whether this position comes strictly before ``other``."""
        return self < other

    def is_after(self, other: "CfiAddress") -> bool:
        """Check whether this position comes strictly after ``other``."""
        return self > other

    def to_string(self) -> str:
        """Rebuild a CFI string (indirection markers are not preserved)."""
        steps = "".join(str(step) for step in self.path)
        offset = "" if self.offset is None else f":{self.offset}"
        return f"{CFI_PREFIX}/{self.spine_step}{steps}{offset}{CFI_SUFFIX}"

    @classmethod
    def from_string(
        cls, raw: str, max_length: int = DEFAULT_MAX_CFI_LENGTH
    ) -> "CfiAddress":
        """Parse a CFI string.

        Args:
            raw: CFI string, e.g. ``epubcfi(/6/4!/4/2/1:0)``
            max_length: Longest accepted input

        Returns:
            Parsed CfiAddress

        Raises:
            CfiParseError: If the string is not a valid CFI
        """
        if raw is None:
            raise CfiParseError("", "CFI is empty")
        text = raw.strip()
        if not text:
            raise CfiParseError(raw, "CFI is empty")
        if len(text) > max_length:
            raise CfiParseError(raw, f"CFI exceeds {max_length} characters")
        if not (text.lower().startswith(CFI_PREFIX) and text.endswith(CFI_SUFFIX)):
            raise CfiParseError(raw, "missing epubcfi(...) envelope")

        body = text[len(CFI_PREFIX):-len(CFI_SUFFIX)]
        parts = _split_range(body)
        if len(parts) == 1:
            steps, offset = _parse_path(raw, parts[0])
        elif len(parts) == 3:
            # Range CFI: parent path plus start sub-path; the end is only validated
            parent, start, end = parts
            steps, parent_offset = _parse_path(raw, parent)
            if parent_offset is not None:
                raise CfiParseError(raw, "range parent cannot carry an offset")
            start_steps, offset = _parse_path(raw, start, allow_empty=True)
            _parse_path(raw, end, allow_empty=True)
            steps = steps + start_steps
        else:
            raise CfiParseError(raw, "range CFI must have exactly three parts")

        if not steps:
            raise CfiParseError(raw, "no steps")
        spine, path = steps[0], tuple(steps[1:])
        if spine.index == 0 or not spine.is_element:
            raise CfiParseError(raw, f"spine step {spine.index} must be even and positive")
        if not path:
            raise CfiParseError(raw, "path below the spine step is empty")
        for step in path[:-1]:
            if not step.is_element:
                raise CfiParseError(raw, f"odd step {step.index} is only allowed as the last step")

        return cls(spine_step=spine.index, path=path, offset=offset, raw=text)


def _split_range(body: str) -> list[str]:
    """Split a CFI body on commas that are not inside assertions."""
    parts = []
    depth = 0
    current = []
    escaped = False
    for char in body:
        if escaped:
            escaped = False
        elif char == "^":
            escaped = True
        elif char == "[":
            depth += 1
        elif char == "]" and depth:
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _parse_path(
    raw: str, text: str, allow_empty: bool = False
) -> tuple[list[CfiStep], Optional[int]]:
    """Parse ``/N[id]/N!/N...:offset`` into steps and an optional offset."""
    steps: list[CfiStep] = []
    offset = None
    pos = 0

    while pos < len(text):
        char = text[pos]
        if char == "/":
            match = _STEP_RE.match(text, pos)
            if not match:
                raise CfiParseError(raw, f"malformed step at position {pos}")
            steps.append(CfiStep(int(match.group(1)), match.group(2)))
            pos = match.end()
        elif char == "!":
            if not steps or not text.startswith("/", pos + 1):
                raise CfiParseError(raw, "indirection must sit between two steps")
            pos += 1
        elif char == ":":
            match = _OFFSET_RE.match(text, pos)
            if not match:
                raise CfiParseError(raw, f"malformed character offset at position {pos}")
            offset = int(match.group(1))
            pos = match.end()
            if pos != len(text):
                raise CfiParseError(raw, "character offset must end the path")
        else:
            raise CfiParseError(raw, f"unexpected {char!r} at position {pos}")

    if not steps and not allow_empty:
        raise CfiParseError(raw, "no steps")
    return steps, offset


def parse_cfi(raw: str, max_length: int = DEFAULT_MAX_CFI_LENGTH) -> Outcome[CfiAddress]:
    """Parse a CFI without raising.

    Returns:
        Outcome holding the CfiAddress, or an INVALID_CFI failure
    """
    try:
        return Outcome.success(CfiAddress.from_string(raw, max_length=max_length))
    except CfiParseError as e:
        logger.debug("Rejected CFI: %s", e)
        return Outcome.failure(ErrorKind.INVALID_CFI, str(e))


def is_valid_cfi(raw: str, max_length: int = DEFAULT_MAX_CFI_LENGTH) -> bool:
    """Check whether a string is a valid CFI."""
    return parse_cfi(raw, max_length=max_length).ok
