"""Class-order oracles.

An oracle answers one question for a batch of class tokens: what order
value does each have, if any. ``RankTableOracle`` is the bundled
implementation, backed by a JSON table of base-class ranks and variant
offsets::

    {
      "classes": {"flex": 103, "p-0": 400, "sm:p-0": 10400},
      "variants": {"sm": 10000, "hover": 5000}
    }

A token found verbatim in ``classes`` takes that rank. Otherwise leading
``variant:`` prefixes are peeled off while each is a known variant, their
offsets are summed, and the remainder is looked up as a base class.

Ranks are arbitrary-precision integers. JSON numbers wider than 64 bits do
not survive decoding, so such ranks are written as decimal strings
(``"flex": "340282366920938463463374607431768211456"``). Plain integers and
decimal strings are accepted; anything else is rejected.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from classorder.errors import OracleBuildError
from classorder.io_utils import load_json
from classorder.types import UNKNOWN, KnownRank, Rank

if TYPE_CHECKING:
    from classorder.config import SorterConfig

logger = logging.getLogger(__name__)

# Probed in order when no rank table path is configured.
COMMON_RANK_TABLE_LOCATIONS: tuple[str, ...] = (
    "class-order.json",
    ".classorder/class-order.json",
    "config/class-order.json",
    "app/assets/tailwind/class-order.json",
    "src/styles/class-order.json",
    "styles/class-order.json",
)


class ClassOrderOracle(Protocol):
    """Anything that can rank a batch of class tokens."""

    def rank(self, tokens: Sequence[str]) -> list[tuple[str, Rank]]:
        """Return one ``(token, rank)`` pair per input token, order preserved."""
        ...


@dataclass(frozen=True, slots=True)
class RankTableOracle:
    """Oracle backed by in-memory rank and variant-offset tables."""

    classes: Mapping[str, int]
    variants: Mapping[str, int] = field(default_factory=dict)

    def rank_one(self, token: str) -> Rank:
        if not token:
            return UNKNOWN
        direct = self.classes.get(token)
        if direct is not None:
            return KnownRank(direct)

        offset = 0
        rest = token
        while ":" in rest:
            variant, remainder = rest.split(":", 1)
            variant_offset = self.variants.get(variant)
            if variant_offset is None:
                break
            offset += variant_offset
            rest = remainder
            base = self.classes.get(rest)
            if base is not None:
                return KnownRank(base + offset)
        return UNKNOWN

    def rank(self, tokens: Sequence[str]) -> list[tuple[str, Rank]]:
        return [(token, self.rank_one(token)) for token in tokens]


_DECIMAL_RE = re.compile(r"-?[0-9]+")


def _parse_rank(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _DECIMAL_RE.fullmatch(value):
        return int(value)
    return None


def _int_table(payload: Any, key: str, path: Path) -> dict[str, int]:
    raw = payload.get(key, {})
    if not isinstance(raw, dict):
        raise ValueError(f"{key!r} must be an object in {path}")
    out: dict[str, int] = {}
    for name, value in raw.items():
        rank = _parse_rank(value)
        if rank is None:
            hint = " (write ranks wider than 64 bits as decimal strings)" if isinstance(value, float) else ""
            raise ValueError(f"{key}[{name!r}] must be an integer in {path}{hint}")
        out[str(name)] = rank
    return out


def load_rank_table(path: Path) -> RankTableOracle:
    """Load a ``RankTableOracle`` from a JSON rank table file."""
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"Rank table must be a JSON object: {path}")
    return RankTableOracle(
        classes=_int_table(payload, "classes", path),
        variants=_int_table(payload, "variants", path),
    )


def find_rank_table(workspace_root: Path) -> Path | None:
    """Return the first conventional rank table location that exists."""
    for rel in COMMON_RANK_TABLE_LOCATIONS:
        candidate = workspace_root / rel
        if candidate.is_file():
            return candidate
    return None


def resolve_rank_table_path(configured: str, workspace_root: Path) -> Path | None:
    """Resolve a configured path against the workspace, falling back to discovery."""
    if configured:
        path = Path(configured)
        return path if path.is_absolute() else workspace_root / path
    return find_rank_table(workspace_root)


def build_rank_table_oracle(config: SorterConfig, workspace_root: Path) -> RankTableOracle:
    """Construct the oracle for ``config``.

    Raises:
        OracleBuildError: no table could be located, read, or parsed.
    """
    path = resolve_rank_table_path(config.rank_table_path, workspace_root)
    if path is None:
        raise OracleBuildError(
            f"No rank table configured and none found under {workspace_root}",
        )
    logger.info("Loading class order from %s", path)
    try:
        oracle = load_rank_table(path)
    except (OSError, ValueError) as exc:
        raise OracleBuildError(f"Failed to load rank table {path}: {exc}") from exc
    logger.info(
        "Class order loaded: %d classes, %d variants",
        len(oracle.classes), len(oracle.variants),
    )
    return oracle
