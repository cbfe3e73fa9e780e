"""String-literal extraction from utility-call argument lists.

Finds calls such as ``cn(...)`` or ``clsx(...)`` and returns every quoted
string literal between the call's parentheses. The scan is lexical: literals
inside nested arrays, nested calls, ternaries and ``&&`` guards are all
emitted, and the role a literal plays in the expression is not modelled.
Backtick template literals are not recognised.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from classorder.types import Span

# Double- or single-quoted literal, backslash escapes honoured.
_STRING_LITERAL_RE = re.compile(
    r""""([^"\\]*(?:\\.[^"\\]*)*)"|'([^'\\]*(?:\\.[^'\\]*)*)'""",
)


@dataclass(frozen=True, slots=True)
class BalancedContent:
    """Text strictly between a matched pair of parentheses."""

    content: str
    end_index: int  # index of the closing paren in the scanned text


@dataclass(frozen=True, slots=True)
class StringLiteral:
    """A quoted literal found inside argument content."""

    value: str
    start: int  # offset of the value (after the opening quote) in content
    full_text: str


def extract_balanced_content(text: str, open_paren_index: int) -> BalancedContent | None:
    """Extract the content of the parenthesised group opening at ``open_paren_index``.

    Parentheses inside single- or double-quoted strings are ignored and a
    backslash escapes the following character. Returns None when the index
    does not point at ``(`` or the text ends before the group closes.
    """
    if open_paren_index < 0 or open_paren_index >= len(text):
        return None
    if text[open_paren_index] != "(":
        return None

    depth = 1
    i = open_paren_index + 1
    in_string: str | None = None
    escaped = False
    n = len(text)

    while i < n and depth > 0:
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif in_string is not None:
            if ch == in_string:
                in_string = None
        elif ch == '"' or ch == "'":
            in_string = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        i += 1

    if depth != 0:
        return None
    return BalancedContent(content=text[open_paren_index + 1:i - 1], end_index=i - 1)


def extract_string_literals(content: str) -> list[StringLiteral]:
    """Return every quoted literal in ``content``, ignoring argument boundaries."""
    literals: list[StringLiteral] = []
    for m in _STRING_LITERAL_RE.finditer(content):
        value = m.group(1) if m.group(1) is not None else m.group(2)
        literals.append(StringLiteral(value=value, start=m.start() + 1, full_text=m.group(0)))
    return literals


def _function_start_re(function_names: Sequence[str]) -> re.Pattern[str]:
    names = "|".join(re.escape(name) for name in function_names)
    return re.compile(rf"(?:{names})\s*\(")


def find_call_argument_spans(text: str, function_names: Sequence[str]) -> list[Span]:
    """Find string-literal arguments of calls to any of ``function_names``.

    Nested calls to configured names are scanned again on their own, so the
    same literal can be reported more than once; ``merge_spans`` removes
    those repeats. A call whose parentheses never balance yields nothing.
    """
    if not function_names:
        return []

    spans: list[Span] = []
    for call in _function_start_re(function_names).finditer(text):
        open_paren = call.end() - 1
        balanced = extract_balanced_content(text, open_paren)
        if balanced is None:
            continue
        content_start = open_paren + 1
        for literal in extract_string_literals(balanced.content):
            if not literal.value or literal.value.strip() == "":
                continue
            class_start = content_start + literal.start
            spans.append(Span(
                full_text=literal.full_text,
                class_text=literal.value,
                start_offset=class_start - 1,
                class_start_offset=class_start,
                class_end_offset=class_start + len(literal.value),
                origin="call",
            ))
    return spans


def extract_call_arguments(text: str, function_names: Sequence[str]) -> list[str]:
    """Return the class-string values found by ``find_call_argument_spans``."""
    return [span.class_text for span in find_call_argument_spans(text, function_names)]
