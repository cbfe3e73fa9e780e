"""Tests for classorder.normalizer module."""
from __future__ import annotations

from collections.abc import Sequence

import pytest

from classorder.normalizer import (
    normalize_class_string,
    order_ranked_tokens,
    rank_tokens,
    sort_class_list,
)
from classorder.oracle import RankTableOracle
from classorder.types import (
    UNKNOWN,
    CollapseWhitespace,
    KnownRank,
    NormalizeOptions,
    Rank,
    RankedToken,
)

_CLASS_ORDER = {
    "container": 10, "group": 50, "peer": 51,
    "block": 100, "flex": 103, "inline-flex": 104, "grid": 105, "hidden": 106,
    "absolute": 202, "relative": 203,
    "items-center": 310, "justify-center": 320, "gap-4": 331,
    "p-0": 400, "p-4": 401, "px-4": 402, "py-2": 403, "m-0": 450, "mt-2": 452,
    "w-full": 500,
    "text-sm": 600, "text-red-500": 602, "text-white": 603, "font-bold": 610,
    "uppercase": 620, "lowercase": 621, "underline": 630, "line-through": 631,
    "bg-white": 700, "bg-blue-500": 702, "bg-blue-600": 703,
    "border": 800, "rounded": 810, "shadow": 900, "transition": 1000,
}
_VARIANTS = {
    "sm": 10000, "md": 10000, "lg": 10000,
    "hover": 5000, "focus": 5000, "dark": 5000,
}


def make_oracle() -> RankTableOracle:
    return RankTableOracle(classes=_CLASS_ORDER, variants=_VARIANTS)


class _CountingOracle:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self._inner = make_oracle()

    def rank(self, tokens: Sequence[str]) -> list[tuple[str, Rank]]:
        self.calls.append(list(tokens))
        return self._inner.rank(tokens)


class _ShortOracle:
    def rank(self, tokens: Sequence[str]) -> list[tuple[str, Rank]]:
        return []


class _NullableOracle:
    """Speaks ``int | None`` instead of ``Rank``."""

    def rank(self, tokens: Sequence[str]) -> list[tuple[str, int | None]]:
        return [(t, 1 if t == "a" else None) for t in tokens]


ORACLE = make_oracle()


class TestScenarios:
    def test_base_before_variant(self) -> None:
        assert normalize_class_string("sm:p-0 p-0", ORACLE) == "p-0 sm:p-0"

    def test_collapse_and_trim(self) -> None:
        assert normalize_class_string("  sm:p-0   p-0 ", ORACLE) == "p-0 sm:p-0"

    def test_known_duplicate_removed(self) -> None:
        assert normalize_class_string("flex flex", ORACLE) == "flex"

    def test_unknown_duplicates_preserved(self) -> None:
        result = normalize_class_string("idonotexist sm:p-0 p-0 idonotexist", ORACLE)
        assert result == "idonotexist idonotexist p-0 sm:p-0"

    def test_known_duplicates_after_sort(self) -> None:
        assert normalize_class_string("sm:p-0 p-0 p-0", ORACLE) == "p-0 sm:p-0"

    def test_collapse_default(self) -> None:
        result = normalize_class_string(" underline text-red-500  flex ", ORACLE)
        assert result == "flex text-red-500 underline"

    def test_unknown_classes_first(self) -> None:
        result = normalize_class_string("sm:lowercase uppercase potato text-sm", ORACLE)
        assert result == "potato text-sm uppercase sm:lowercase"


class TestPassThrough:
    def test_empty(self) -> None:
        assert normalize_class_string("", ORACLE) == ""

    def test_template_marker(self) -> None:
        text = "flex {{ dynamic }} p-4"
        assert normalize_class_string(text, ORACLE) == text

    def test_template_marker_skips_oracle(self) -> None:
        oracle = _CountingOracle()
        normalize_class_string("{{ this is ignored }}", oracle)
        assert oracle.calls == []

    def test_whitespace_only_collapsed(self) -> None:
        assert normalize_class_string(" \t\n ", ORACLE) == " "

    def test_whitespace_only_preserved(self) -> None:
        opts = NormalizeOptions(collapse_whitespace=False)
        assert normalize_class_string(" \t ", ORACLE, opts) == " \t "


class TestOrdering:
    def test_ellipsis_last(self) -> None:
        assert normalize_class_string("... sm:p-0 p-0", ORACLE) == "p-0 sm:p-0 ..."

    def test_unicode_ellipsis_from_middle(self) -> None:
        assert normalize_class_string("sm:p-0 … p-0", ORACLE) == "p-0 sm:p-0 …"

    def test_ellipsis_after_unknown(self) -> None:
        assert normalize_class_string("... potato", ORACLE) == "potato ..."

    def test_equal_ranks_stable(self) -> None:
        oracle = RankTableOracle(classes={"b": 1, "a": 1, "c": 0})
        assert normalize_class_string("b a c", oracle) == "c b a"

    def test_order_ranked_tokens(self) -> None:
        tokens = [
            RankedToken("x", 0, KnownRank(5)),
            RankedToken("...", 1, UNKNOWN),
            RankedToken("y", 2, UNKNOWN),
            RankedToken("z", 3, KnownRank(-1)),
        ]
        assert [t.name for t in order_ranked_tokens(tokens)] == ["y", "z", "x", "..."]

    def test_single_oracle_query(self) -> None:
        oracle = _CountingOracle()
        normalize_class_string("p-4 flex mt-2", oracle)
        assert oracle.calls == [["p-4", "flex", "mt-2"]]

    def test_nullable_oracle_adapted(self) -> None:
        assert normalize_class_string("a b", _NullableOracle()) == "b a"

    def test_short_oracle_answer_rejected(self) -> None:
        with pytest.raises(ValueError):
            normalize_class_string("a b", _ShortOracle())


class TestDuplicates:
    def test_preserve_duplicates(self) -> None:
        opts = NormalizeOptions(remove_duplicates=False)
        assert normalize_class_string("flex flex p-4", ORACLE, opts) == "flex flex p-4"

    def test_sort_class_list_removed_indices(self) -> None:
        result = sort_class_list(["flex", "p-4", "flex"], ORACLE)
        assert result.classes == ["flex", "p-4"]
        assert result.removed_indices == frozenset({1})

    def test_sort_class_list_keep_all(self) -> None:
        result = sort_class_list(["flex", "flex"], ORACLE, remove_duplicates=False)
        assert result.classes == ["flex", "flex"]
        assert result.removed_indices == frozenset()

    def test_removed_token_takes_its_whitespace(self) -> None:
        opts = NormalizeOptions(collapse_whitespace=False)
        assert normalize_class_string("flex  flex\tp-4", ORACLE, opts) == "flex\tp-4"


class TestWhitespaceOptions:
    def test_preserve_whitespace_keeps_runs(self) -> None:
        opts = NormalizeOptions(collapse_whitespace=False)
        assert normalize_class_string(" p-4   flex ", ORACLE, opts) == " flex   p-4 "

    def test_collapse_keeps_single_edge_space(self) -> None:
        opts = NormalizeOptions(collapse_whitespace=CollapseWhitespace(start=False, end=False))
        assert normalize_class_string("  p-4 flex   ", ORACLE, opts) == " flex p-4 "

    def test_collapse_start_only(self) -> None:
        opts = NormalizeOptions(collapse_whitespace=CollapseWhitespace(start=True, end=False))
        assert normalize_class_string("  p-4 flex   ", ORACLE, opts) == "flex p-4 "

    def test_collapse_does_not_add_missing_edge_space(self) -> None:
        opts = NormalizeOptions(collapse_whitespace=CollapseWhitespace(start=False, end=False))
        assert normalize_class_string("p-4 flex", ORACLE, opts) == "flex p-4"


class TestIgnoreFirstLast:
    def test_ignore_first(self) -> None:
        opts = NormalizeOptions(ignore_first=True)
        assert normalize_class_string("prefix-class p-4 flex", ORACLE, opts) == "prefix-class flex p-4"

    def test_ignore_last(self) -> None:
        opts = NormalizeOptions(ignore_last=True)
        assert normalize_class_string("p-4 flex suffix-class", ORACLE, opts) == "flex p-4 suffix-class"

    def test_ignore_both(self) -> None:
        opts = NormalizeOptions(ignore_first=True, ignore_last=True)
        assert normalize_class_string("z p-4 flex a", ORACLE, opts) == "z flex p-4 a"

    def test_ignore_first_single_token(self) -> None:
        opts = NormalizeOptions(ignore_first=True)
        assert normalize_class_string("flex", ORACLE, opts) == "flex"


class TestProperties:
    @pytest.mark.parametrize("text", [
        "flex p-4",
        "potato flex items-center p-4 sm:p-0",
        "group p-0 hover:bg-blue-600 ...",
    ])
    def test_idempotent(self, text: str) -> None:
        once = normalize_class_string(text, ORACLE)
        assert once == text
        assert normalize_class_string(once, ORACLE) == once

    def test_multiset_preserved_without_dedupe(self) -> None:
        text = "p-4 flex p-4 x x sm:p-0 ..."
        opts = NormalizeOptions(remove_duplicates=False)
        result = normalize_class_string(text, ORACLE, opts)
        assert sorted(result.split()) == sorted(text.split())

    def test_unknown_before_known(self) -> None:
        result = normalize_class_string("p-4 foo flex bar rounded baz", ORACLE)
        names = result.split()
        unknown_positions = [names.index(n) for n in ("foo", "bar", "baz")]
        known_positions = [names.index(n) for n in ("p-4", "flex", "rounded")]
        assert max(unknown_positions) < min(known_positions)

    def test_rank_tokens_keeps_indices(self) -> None:
        tokens = rank_tokens(["p-4", "potato"], ORACLE)
        assert [(t.name, t.index, t.is_known) for t in tokens] == [
            ("p-4", 0, True), ("potato", 1, False),
        ]
