"""Sorter configuration, built-in language rules and the compiled registry.

Configuration is a JSON object (see ``config_from_dict`` for keys). Rules for
every effective language are compiled once into a ``LanguageRegistry``;
invalid rules are logged and skipped unless ``strict`` is requested.
"""
from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from classorder.errors import ConfigError, RuleError
from classorder.io_utils import dumps_canonical, load_json
from classorder.pattern_matcher import compile_pattern_rules
from classorder.types import (
    CollapseWhitespace,
    NormalizeOptions,
    PatternRule,
    RawPatternRule,
)

DEFAULT_CONFIG_FILENAME = ".classorder.json"

DEFAULT_CLASS_FUNCTIONS: tuple[str, ...] = (
    "cn",
    "clsx",
    "twMerge",
    "twJoin",
    "cva",
    "cx",
    "merge",
    "tw",
)


@dataclass(frozen=True, slots=True)
class LanguageConfig:
    """Pattern rules for one language id."""

    language_id: str
    patterns: tuple[RawPatternRule, ...]


def _rules(*pairs: tuple[str, int]) -> tuple[RawPatternRule, ...]:
    return tuple(RawPatternRule(regex=regex, capture_group=group) for regex, group in pairs)


_HTML_RULES = _rules(
    (r'class="([^"]+)"', 1),
    (r"class='([^']+)'", 1),
)

_JSX_RULES = _rules(
    (r'className="([^"]+)"', 1),
    (r"className='([^']+)'", 1),
    (r"className=\{`([^`]+)`\}", 1),
    (r'className=\{"([^"]+)"\}', 1),
    (r"className=\{'([^']+)'\}", 1),
)

BUILTIN_LANGUAGES: tuple[LanguageConfig, ...] = (
    LanguageConfig("ruby", _rules(
        (r"""class:\s*["']([^"']+)["']""", 1),
        (r"""classes:\s*["']([^"']+)["']""", 1),
        (r"class:\s*%w\[([^\]]+)\]", 1),
    )),
    LanguageConfig("erb", _HTML_RULES),
    LanguageConfig("html", _HTML_RULES),
    LanguageConfig("javascriptreact", _JSX_RULES),
    LanguageConfig("typescriptreact", _JSX_RULES),
    LanguageConfig("vue", _rules(
        (r'class="([^"]+)"', 1),
        (':class="\'([^\']+)\'"', 1),
    )),
)

_SUFFIX_LANGUAGES: dict[str, str] = {
    ".rb": "ruby",
    ".erb": "erb",
    ".html": "html",
    ".htm": "html",
    ".jsx": "javascriptreact",
    ".tsx": "typescriptreact",
    ".vue": "vue",
}


@dataclass(frozen=True, slots=True)
class SorterConfig:
    """User-facing sorter settings."""

    enable: bool = True
    rank_table_path: str = ""
    preserve_duplicates: bool = False
    preserve_whitespace: bool = False
    enabled_languages: tuple[str, ...] = ()
    custom_languages: tuple[LanguageConfig, ...] = ()
    class_functions: tuple[str, ...] = DEFAULT_CLASS_FUNCTIONS


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_BOOL_KEYS = ("enable", "preserve_duplicates", "preserve_whitespace")
_KNOWN_KEYS = frozenset({
    *_BOOL_KEYS,
    "rank_table_path",
    "enabled_languages",
    "custom_languages",
    "class_functions",
})


def _string_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"{key!r} must be a list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"{key!r} entries must be non-empty strings, got {item!r}")
        out.append(item)
    return out


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def _pattern_from_dict(raw: Any, language_id: str) -> RawPatternRule:
    if not isinstance(raw, dict) or not isinstance(raw.get("regex"), str):
        raise ConfigError(f"Pattern in language {language_id!r} needs a string 'regex'")
    group = raw.get("capture_group", 1)
    if isinstance(group, bool) or not isinstance(group, int):
        raise ConfigError(
            f"capture_group must be an integer in language {language_id!r}, got {group!r}",
        )
    return RawPatternRule(regex=raw["regex"], capture_group=group)


def _language_from_dict(raw: Any) -> LanguageConfig:
    if not isinstance(raw, dict):
        raise ConfigError("custom_languages entries must be objects")
    language_id = raw.get("language_id")
    if not isinstance(language_id, str) or not language_id:
        raise ConfigError("custom language needs a non-empty 'language_id'")
    patterns = raw.get("patterns", [])
    if not isinstance(patterns, list):
        raise ConfigError(f"'patterns' must be a list in language {language_id!r}")
    return LanguageConfig(
        language_id=language_id,
        patterns=tuple(_pattern_from_dict(p, language_id) for p in patterns),
    )


def config_from_dict(payload: dict[str, Any]) -> SorterConfig:
    """Build a ``SorterConfig`` from a decoded JSON object.

    Keys beginning with ``_`` are ignored; any other unknown key, or a value
    of the wrong type, raises ``ConfigError``.
    """
    payload = {
        k: v for k, v in payload.items()
        if not (isinstance(k, str) and k.startswith("_"))
    }
    unknown = sorted(set(payload) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    kwargs: dict[str, Any] = {}
    for key in _BOOL_KEYS:
        if key in payload:
            if not isinstance(payload[key], bool):
                raise ConfigError(f"{key!r} must be a boolean")
            kwargs[key] = payload[key]
    if "rank_table_path" in payload:
        if not isinstance(payload["rank_table_path"], str):
            raise ConfigError("'rank_table_path' must be a string")
        kwargs["rank_table_path"] = payload["rank_table_path"]
    if "enabled_languages" in payload:
        kwargs["enabled_languages"] = _unique(
            _string_list(payload["enabled_languages"], "enabled_languages"),
        )
    if "class_functions" in payload:
        kwargs["class_functions"] = _unique(
            _string_list(payload["class_functions"], "class_functions"),
        )
    if "custom_languages" in payload:
        raw_languages = payload["custom_languages"]
        if not isinstance(raw_languages, list):
            raise ConfigError("'custom_languages' must be a list")
        kwargs["custom_languages"] = tuple(_language_from_dict(r) for r in raw_languages)
    return SorterConfig(**kwargs)


def load_config(path: Path) -> SorterConfig:
    """Load a JSON config file."""
    try:
        payload = load_json(path)
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc
    except ValueError as exc:
        raise ConfigError(f"Config is not valid JSON: {path} ({exc})") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Config payload must be a JSON object: {path}")
    return config_from_dict(payload)


# ---------------------------------------------------------------------------
# Languages
# ---------------------------------------------------------------------------

def effective_languages(config: SorterConfig) -> list[LanguageConfig]:
    """Built-ins filtered by ``enabled_languages``, then custom overrides/additions."""
    languages = list(BUILTIN_LANGUAGES)
    if config.enabled_languages:
        enabled = set(config.enabled_languages)
        languages = [lang for lang in languages if lang.language_id in enabled]
    for custom in config.custom_languages:
        for i, lang in enumerate(languages):
            if lang.language_id == custom.language_id:
                languages[i] = custom
                break
        else:
            languages.append(custom)
    return languages


def language_for_path(path: Path) -> str | None:
    """Map a file suffix to a built-in language id."""
    return _SUFFIX_LANGUAGES.get(path.suffix.lower())


@dataclass(frozen=True, slots=True)
class CompiledLanguage:
    """A language with its rules compiled."""

    language_id: str
    rules: tuple[PatternRule, ...]
    errors: tuple[RuleError, ...] = ()


@dataclass(frozen=True, slots=True)
class LanguageRegistry:
    """Compiled rules for every effective language, keyed by id."""

    languages: dict[str, CompiledLanguage] = field(default_factory=dict)

    def get(self, language_id: str) -> CompiledLanguage | None:
        return self.languages.get(language_id)

    def language_ids(self) -> list[str]:
        return list(self.languages)

    @property
    def errors(self) -> list[RuleError]:
        return [err for lang in self.languages.values() for err in lang.errors]


def build_language_registry(config: SorterConfig, *, strict: bool = False) -> LanguageRegistry:
    """Compile the rules of every effective language."""
    compiled: dict[str, CompiledLanguage] = {}
    all_errors: list[RuleError] = []
    for lang in effective_languages(config):
        rules, errors = compile_pattern_rules(lang.patterns, language_id=lang.language_id)
        all_errors.extend(errors)
        compiled[lang.language_id] = CompiledLanguage(
            language_id=lang.language_id,
            rules=tuple(rules),
            errors=tuple(errors),
        )
    if strict and all_errors:
        raise ConfigError(
            f"{len(all_errors)} invalid pattern rule(s)", rule_errors=tuple(all_errors),
        )
    return LanguageRegistry(languages=compiled)


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

def normalize_options_for(config: SorterConfig) -> NormalizeOptions:
    return NormalizeOptions(
        remove_duplicates=not config.preserve_duplicates,
        collapse_whitespace=(
            False if config.preserve_whitespace else CollapseWhitespace(start=True, end=True)
        ),
    )


def config_fingerprint(config: SorterConfig, workspace_root: Path) -> str:
    """Hash of the settings that decide which oracle is built."""
    payload = {
        "rank_table_path": config.rank_table_path,
        "preserve_duplicates": config.preserve_duplicates,
        "preserve_whitespace": config.preserve_whitespace,
        "workspace_root": str(workspace_root.resolve()),
    }
    return hashlib.sha256(dumps_canonical(payload)).hexdigest()
