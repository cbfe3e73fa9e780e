"""Exception types raised by the class-order engine."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RuleError:
    """A pattern rule that could not be compiled."""

    regex: str
    capture_group: int
    message: str
    language_id: str = ""


class ClassOrderError(Exception):
    """Base class for every error raised by classorder."""


class ConfigError(ClassOrderError, ValueError):
    """Configuration payload or rule set is invalid."""

    def __init__(self, message: str, rule_errors: tuple[RuleError, ...] = ()) -> None:
        super().__init__(message)
        self.rule_errors = rule_errors


class OracleBuildError(ClassOrderError):
    """The class-order oracle could not be constructed."""
