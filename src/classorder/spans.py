"""Span merging, position filters and offset-to-position helpers."""
from __future__ import annotations

import bisect
from collections.abc import Iterable, Sequence

from classorder.call_arguments import find_call_argument_spans
from classorder.pattern_matcher import find_pattern_spans
from classorder.types import PatternRule, Span


def merge_spans(pattern_spans: Iterable[Span], call_spans: Iterable[Span]) -> list[Span]:
    """Merge extractor output into position-ordered, duplicate-free spans.

    Pattern spans are placed ahead of call spans before the stable sort, so
    when both cover the same ``(class_start_offset, length)`` the pattern
    span is the one kept.
    """
    combined = [*pattern_spans, *call_spans]
    combined.sort(key=lambda span: span.class_start_offset)
    seen: set[tuple[int, int]] = set()
    out: list[Span] = []
    for span in combined:
        key = span.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        out.append(span)
    return out


def find_class_spans(
    text: str,
    rules: Sequence[PatternRule],
    function_names: Sequence[str] = (),
) -> list[Span]:
    """Run both extractors over ``text`` and merge their spans."""
    return merge_spans(
        find_pattern_spans(text, rules),
        find_call_argument_spans(text, function_names),
    )


def spans_at_offset(spans: Iterable[Span], offset: int) -> list[Span]:
    """Spans whose class range contains ``offset`` (both ends inclusive)."""
    return [
        span for span in spans
        if span.class_start_offset <= offset <= span.class_end_offset
    ]


def spans_in_range(spans: Iterable[Span], start: int, end: int) -> list[Span]:
    """Spans whose class range contains, is contained by, or touches ``[start, end]``."""
    if end < start:
        start, end = end, start
    return [
        span for span in spans
        if span.class_start_offset <= end and start <= span.class_end_offset
    ]


def compute_line_starts(text: str) -> list[int]:
    """Char offsets of every line start; position 0 is always one."""
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            starts.append(i + 1)
    return starts


def offset_to_position(line_starts: list[int], offset: int) -> tuple[int, int]:
    """Zero-based (line, column) of ``offset``."""
    line_idx = bisect.bisect_right(line_starts, offset) - 1
    line_idx = max(0, line_idx)
    return line_idx, offset - line_starts[line_idx]
