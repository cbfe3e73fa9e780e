"""Orchestration: raw text to a list of class-string edits.

    text -> pattern rules + call arguments -> merged spans
         -> normalize each span with the cached oracle -> TextEdit list
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from classorder.config import (
    LanguageRegistry,
    SorterConfig,
    build_language_registry,
    normalize_options_for,
)
from classorder.normalizer import normalize_class_string
from classorder.oracle_cache import OracleCache
from classorder.spans import find_class_spans, spans_at_offset, spans_in_range
from classorder.types import SortResult, Span, TextEdit

logger = logging.getLogger(__name__)


class ClassSorterService:
    """Sorts class strings in documents for one configuration and workspace."""

    def __init__(
        self,
        config: SorterConfig,
        workspace_root: Path,
        cache: OracleCache | None = None,
        *,
        strict_rules: bool = False,
    ) -> None:
        self.config = config
        self.workspace_root = workspace_root
        self.cache = cache if cache is not None else OracleCache()
        self.registry: LanguageRegistry = build_language_registry(config, strict=strict_rules)
        self._options = normalize_options_for(config)

    def supports(self, language_id: str) -> bool:
        return self.registry.get(language_id) is not None

    async def sort_classes(self, class_string: str) -> SortResult:
        oracle = await self.cache.get(self.config, self.workspace_root)
        sorted_text = normalize_class_string(class_string, oracle, self._options)
        changed = sorted_text != class_string
        if changed:
            logger.debug("Sorted: %r -> %r", class_string, sorted_text)
        return SortResult(original=class_string, sorted=sorted_text, changed=changed)

    async def needs_sorting(self, class_string: str) -> bool:
        result = await self.sort_classes(class_string)
        return result.changed

    def find_spans(self, text: str, language_id: str) -> list[Span]:
        """Candidate class spans for ``text``; empty for unknown languages."""
        language = self.registry.get(language_id)
        if language is None:
            return []
        return find_class_spans(text, language.rules, self.config.class_functions)

    async def edits_for_spans(self, spans: Sequence[Span]) -> list[TextEdit]:
        """One edit per span whose class string changes.

        Raises:
            OracleBuildError: the oracle could not be built.
        """
        if not spans:
            return []
        oracle = await self.cache.get(self.config, self.workspace_root)
        edits: list[TextEdit] = []
        for span in spans:
            sorted_text = normalize_class_string(span.class_text, oracle, self._options)
            if sorted_text == span.class_text:
                continue
            logger.debug("Sorted: %r -> %r", span.class_text, sorted_text)
            edits.append(TextEdit(
                start=span.class_start_offset,
                end=span.class_end_offset,
                original=span.class_text,
                replacement=sorted_text,
            ))
        return edits

    async def edits_for_text(
        self,
        text: str,
        language_id: str,
        *,
        start: int | None = None,
        end: int | None = None,
    ) -> list[TextEdit]:
        """Edits for a whole document, or for spans touching ``[start, end]``."""
        if not self.config.enable:
            return []
        spans = self.find_spans(text, language_id)
        if start is not None or end is not None:
            lo = 0 if start is None else start
            hi = len(text) if end is None else end
            spans = spans_in_range(spans, lo, hi)
        return await self.edits_for_spans(spans)

    async def edits_at_offset(self, text: str, language_id: str, offset: int) -> list[TextEdit]:
        """Edits for the class strings containing ``offset`` (sort at cursor)."""
        if not self.config.enable:
            return []
        return await self.edits_for_spans(
            spans_at_offset(self.find_spans(text, language_id), offset),
        )


def non_overlapping(edits: Sequence[TextEdit]) -> list[TextEdit]:
    """Order edits by position, dropping any that overlap an earlier one.

    Spans from the two extractors may nest (a ``class="..."`` attribute
    holding a ``cn(...)`` call); the outer, earlier-starting edit wins.
    """
    kept: list[TextEdit] = []
    for edit in sorted(edits, key=lambda e: (e.start, e.end)):
        if kept and edit.start < kept[-1].end:
            logger.warning(
                "Skipping edit %d-%d overlapping %d-%d",
                edit.start, edit.end, kept[-1].start, kept[-1].end,
            )
            continue
        kept.append(edit)
    return kept


def apply_edits(text: str, edits: Sequence[TextEdit]) -> str:
    """Apply edits to ``text`` from the end backwards.

    Raises:
        ValueError: an edit falls outside ``text``.
    """
    out = text
    for edit in reversed(non_overlapping(edits)):
        if edit.end > len(text):
            raise ValueError(f"edit {edit.start}-{edit.end} is outside the text")
        out = out[:edit.start] + edit.replacement + out[edit.end:]
    return out
