"""orjson-backed JSON I/O for configuration, rank tables and CLI reports."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON with sorted keys."""
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def dumps_canonical(obj: Any) -> bytes:
    """Compact, key-sorted JSON bytes; stable input for hashing."""
    return orjson.dumps(obj, option=orjson.OPT_SORT_KEYS)


def dump_json(obj: Any) -> None:
    """Write indented JSON to stdout."""
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")
