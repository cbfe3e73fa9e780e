"""Regex-rule span extraction.

Each rule is a compiled regex plus the index of the group holding the class
string. Rules are compiled once when configuration is loaded; a rule that
fails to compile is reported and skipped so the remaining rules still run.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from classorder.errors import ConfigError, RuleError
from classorder.types import PatternRule, RawPatternRule, Span

logger = logging.getLogger(__name__)


def compile_pattern_rules(
    raw_rules: Sequence[RawPatternRule],
    *,
    language_id: str = "",
    strict: bool = False,
) -> tuple[list[PatternRule], list[RuleError]]:
    """Compile configured rules into ``PatternRule`` objects.

    Args:
        raw_rules: Rules in configuration order.
        language_id: Used only to label errors.
        strict: Raise ``ConfigError`` instead of skipping invalid rules.

    Returns:
        (rules, errors) where rules keeps the order of the valid inputs.
    """
    rules: list[PatternRule] = []
    errors: list[RuleError] = []
    for raw in raw_rules:
        if raw.capture_group < 0:
            errors.append(RuleError(
                regex=raw.regex,
                capture_group=raw.capture_group,
                message=f"capture_group must be >= 0, got {raw.capture_group}",
                language_id=language_id,
            ))
            continue
        try:
            compiled = re.compile(raw.regex)
        except re.error as exc:
            errors.append(RuleError(
                regex=raw.regex,
                capture_group=raw.capture_group,
                message=f"invalid regex: {exc}",
                language_id=language_id,
            ))
            continue
        if raw.capture_group > compiled.groups:
            # Still usable: every match will be discarded individually.
            logger.warning(
                "Rule %r has %d group(s); capture_group %d never participates",
                raw.regex, compiled.groups, raw.capture_group,
            )
        rules.append(PatternRule(regex=compiled, capture_group=raw.capture_group))

    for err in errors:
        logger.warning(
            "Skipping pattern rule %r%s: %s",
            err.regex,
            f" ({err.language_id})" if err.language_id else "",
            err.message,
        )
    if strict and errors:
        raise ConfigError(
            f"{len(errors)} invalid pattern rule(s)", rule_errors=tuple(errors),
        )
    return rules, errors


def _capture(match: re.Match[str], group: int) -> str | None:
    if group > (match.re.groups or 0):
        return None
    return match.group(group)


def find_pattern_spans(text: str, rules: Sequence[PatternRule]) -> list[Span]:
    """Run every rule over ``text`` and return the candidate spans.

    Matches whose capture group is absent, empty or whitespace-only are
    discarded. The capture's position is located by searching for its text
    inside the full match, so a capture value that also occurs earlier in
    the same match resolves to that earlier occurrence.
    """
    spans: list[Span] = []
    for rule in rules:
        for match in rule.regex.finditer(text):
            class_text = _capture(match, rule.capture_group)
            if not class_text or class_text.strip() == "":
                continue
            full = match.group(0)
            offset_in_match = full.find(class_text)
            if offset_in_match < 0:
                continue
            start = match.start()
            class_start = start + offset_in_match
            spans.append(Span(
                full_text=full,
                class_text=class_text,
                start_offset=start,
                class_start_offset=class_start,
                class_end_offset=class_start + len(class_text),
                origin="pattern",
            ))
    return spans
