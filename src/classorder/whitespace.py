"""Split class strings into token/whitespace runs and stitch them back."""
from __future__ import annotations

import re

# Only ASCII layout whitespace separates classes; other characters are token text.
CLASS_WHITESPACE = "\t\r\f\n "

_WHITESPACE_SPLIT_RE = re.compile(r"([\t\r\f\n ]+)")
_WHITESPACE_ONLY_RE = re.compile(r"[\t\r\f\n ]+")


def is_whitespace_only(text: str) -> bool:
    return bool(text) and _WHITESPACE_ONLY_RE.fullmatch(text) is not None


def split_class_string(text: str) -> tuple[list[str], list[str]]:
    """Split a class string into alternating token and whitespace runs.

    ``whitespace[i]`` is the run that follows ``classes[i]``. A leading
    whitespace run yields an empty first token; the empty token produced by
    trailing whitespace is dropped.

    Returns:
        (classes, whitespace)
    """
    parts = _WHITESPACE_SPLIT_RE.split(text)
    classes = parts[0::2]
    whitespace = parts[1::2]
    if classes and classes[-1] == "":
        classes.pop()
    return classes, whitespace


def join_class_string(classes: list[str], whitespace: list[str]) -> str:
    """Concatenate each token with the whitespace run at the same index."""
    out: list[str] = []
    for i, name in enumerate(classes):
        out.append(name)
        if i < len(whitespace):
            out.append(whitespace[i])
    return "".join(out)


def collapse_runs(whitespace: list[str]) -> list[str]:
    """Replace every whitespace run with a single space."""
    return [" " for _ in whitespace]
