"""Core types for span extraction and class-string normalization."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, TypeAlias


SpanOrigin: TypeAlias = Literal["pattern", "call"]


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RawPatternRule:
    """Uncompiled pattern rule as it appears in configuration."""

    regex: str
    capture_group: int = 1


@dataclass(frozen=True, slots=True)
class PatternRule:
    """Compiled regex plus the group that holds the class string."""

    regex: re.Pattern[str]
    capture_group: int = 1

    def __post_init__(self) -> None:
        if self.capture_group < 0:
            raise ValueError(f"capture_group must be >= 0, got {self.capture_group}")


@dataclass(frozen=True, slots=True)
class Span:
    """Located class string with absolute offsets into the source document."""

    full_text: str
    class_text: str
    start_offset: int
    class_start_offset: int
    class_end_offset: int
    origin: SpanOrigin = "pattern"

    def __post_init__(self) -> None:
        if self.start_offset < 0 or self.class_start_offset < 0:
            raise ValueError("span offsets must be >= 0")
        if self.class_end_offset < self.class_start_offset:
            raise ValueError(
                "class_end_offset must be >= class_start_offset, got "
                f"{self.class_end_offset} < {self.class_start_offset}",
            )

    @property
    def dedupe_key(self) -> tuple[int, int]:
        return (self.class_start_offset, len(self.class_text))


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class KnownRank:
    """An order value assigned by the oracle."""

    value: int


@dataclass(frozen=True, slots=True)
class UnknownRank:
    """The oracle has no order value for the token."""

    def __repr__(self) -> str:
        return "UNKNOWN"


UNKNOWN = UnknownRank()

Rank: TypeAlias = KnownRank | UnknownRank


def coerce_rank(value: int | None | KnownRank | UnknownRank) -> Rank:
    """Adapt ``int | None`` order values to the two-variant ``Rank`` type."""
    if isinstance(value, (KnownRank, UnknownRank)):
        return value
    if value is None:
        return UNKNOWN
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"rank must be an int or None, got {type(value).__name__}")
    return KnownRank(value)


@dataclass(frozen=True, slots=True)
class RankedToken:
    """A class token, its position in the input list, and its rank."""

    name: str
    index: int
    rank: Rank

    @property
    def is_known(self) -> bool:
        return isinstance(self.rank, KnownRank)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CollapseWhitespace:
    """Per-edge trimming when whitespace collapsing is on.

    ``True`` trims the edge to nothing; ``False`` keeps a single space where
    whitespace was present.
    """

    start: bool = True
    end: bool = True


@dataclass(frozen=True, slots=True)
class NormalizeOptions:
    """Options for ``normalize_class_string``."""

    ignore_first: bool = False
    ignore_last: bool = False
    remove_duplicates: bool = True
    collapse_whitespace: bool | CollapseWhitespace = True

    def resolved_collapse(self) -> CollapseWhitespace | None:
        """Return the collapse edges, or None when whitespace is preserved."""
        if self.collapse_whitespace is True:
            return CollapseWhitespace(start=True, end=True)
        if self.collapse_whitespace is False:
            return None
        return self.collapse_whitespace


# ---------------------------------------------------------------------------
# Output contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SortResult:
    """Outcome of normalizing one class string."""

    original: str
    sorted: str
    changed: bool


@dataclass(frozen=True, slots=True)
class TextEdit:
    """Replacement of ``[start, end)`` in the original document."""

    start: int
    end: int
    original: str
    replacement: str

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"end must be >= start, got {self.end} < {self.start}")
