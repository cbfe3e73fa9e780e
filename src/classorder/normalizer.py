"""Canonical ordering of a single class string.

Pipeline for one string:

1. Pass through empty strings and strings containing the ``{{`` template
   marker untouched.
2. Split into token/whitespace runs (collapsing runs to one space unless
   whitespace is preserved) and hold aside an immovable first/last token
   when asked to.
3. Rank all remaining tokens with one oracle query and stable-sort them:
   unknown tokens first, known tokens by ascending rank, ellipsis tokens
   last.
4. Drop repeated known tokens, along with the whitespace run that preceded
   each dropped token, and stitch the string back together.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from classorder.oracle import ClassOrderOracle
from classorder.types import KnownRank, NormalizeOptions, RankedToken, coerce_rank
from classorder.whitespace import (
    collapse_runs,
    is_whitespace_only,
    join_class_string,
    split_class_string,
)

logger = logging.getLogger(__name__)

TEMPLATE_MARKER = "{{"
ELLIPSIS_TOKENS: frozenset[str] = frozenset({"...", "…"})

_LEADING_WS_RE = re.compile(r"\A\s+")
_TRAILING_WS_RE = re.compile(r"\s+\Z")


@dataclass(frozen=True, slots=True)
class SortedClassList:
    """Sorted tokens plus the sorted-list positions dropped as duplicates."""

    classes: list[str]
    removed_indices: frozenset[int]


def rank_tokens(classes: Sequence[str], oracle: ClassOrderOracle) -> list[RankedToken]:
    """Query the oracle once for ``classes``.

    Raises:
        ValueError: the oracle did not return exactly one entry per token.
    """
    ranked = oracle.rank(list(classes))
    if len(ranked) != len(classes):
        raise ValueError(
            f"oracle returned {len(ranked)} ranks for {len(classes)} tokens",
        )
    tokens = [
        RankedToken(name=name, index=i, rank=coerce_rank(rank))
        for i, (name, (_, rank)) in enumerate(zip(classes, ranked))
    ]
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Class orders: %s",
            " ".join(
                f"{t.name}:{t.rank.value if isinstance(t.rank, KnownRank) else 'unknown'}"
                for t in tokens
            ),
        )
    return tokens


def _sort_key(token: RankedToken) -> tuple[int, int]:
    if token.name in ELLIPSIS_TOKENS:
        return (2, 0)
    if isinstance(token.rank, KnownRank):
        return (1, token.rank.value)
    return (0, 0)


def order_ranked_tokens(ranked: Sequence[RankedToken]) -> list[RankedToken]:
    """Stable sort: unknown, then known by rank, then ellipsis tokens."""
    return sorted(ranked, key=_sort_key)


def sort_class_list(
    classes: Sequence[str],
    oracle: ClassOrderOracle,
    *,
    remove_duplicates: bool = True,
) -> SortedClassList:
    """Sort ``classes`` and optionally drop repeated known tokens.

    Only tokens with a known rank enter the seen-set, so unknown tokens are
    never treated as duplicates of each other.
    """
    ordered = order_ranked_tokens(rank_tokens(classes, oracle))
    if not remove_duplicates:
        return SortedClassList(classes=[t.name for t in ordered], removed_indices=frozenset())

    seen: set[str] = set()
    kept: list[str] = []
    removed: set[int] = set()
    for index, token in enumerate(ordered):
        if token.name in seen:
            removed.add(index)
            continue
        if token.is_known:
            seen.add(token.name)
        kept.append(token.name)
    return SortedClassList(classes=kept, removed_indices=frozenset(removed))


def normalize_class_string(
    text: str,
    oracle: ClassOrderOracle,
    options: NormalizeOptions | None = None,
) -> str:
    """Return the canonical form of the class string ``text``."""
    opts = options or NormalizeOptions()
    if text == "" or TEMPLATE_MARKER in text:
        return text

    collapse = opts.resolved_collapse()
    if is_whitespace_only(text):
        return " " if collapse is not None else text

    classes, whitespace = split_class_string(text)
    if collapse is not None:
        whitespace = collapse_runs(whitespace)

    prefix = ""
    if opts.ignore_first:
        prefix = (classes.pop(0) if classes else "") + (whitespace.pop(0) if whitespace else "")
    suffix = ""
    if opts.ignore_last:
        suffix = (whitespace.pop() if whitespace else "") + (classes.pop() if classes else "")

    ordered = sort_class_list(classes, oracle, remove_duplicates=opts.remove_duplicates)
    # A dropped token takes the whitespace run in front of it along.
    whitespace = [
        ws for i, ws in enumerate(whitespace) if i + 1 not in ordered.removed_indices
    ]
    result = join_class_string(ordered.classes, whitespace)

    if collapse is not None:
        prefix = _TRAILING_WS_RE.sub(" ", prefix)
        suffix = _LEADING_WS_RE.sub(" ", suffix)
        result = _LEADING_WS_RE.sub("" if collapse.start else " ", result)
        result = _TRAILING_WS_RE.sub("" if collapse.end else " ", result)

    return prefix + result + suffix
