#!/usr/bin/env python3
"""Sort utility classes in source files into canonical order.

Usage:
    python3 scripts/sort_classes.py --workspace . app/views/index.html.erb
    python3 scripts/sort_classes.py --config .classorder.json --check src/**/*.tsx
    python3 scripts/sort_classes.py --language html --write templates/page.tpl
    python3 scripts/sort_classes.py --at 120 --write app/components/Button.tsx

Language ids come from ``--language`` or the file suffix. Without ``--write``
nothing is modified; ``--check`` exits 1 when any file has unsorted classes.
Unreadable or non-UTF-8 files are listed under ``failed`` and the run exits 2.

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from classorder.config import (
    DEFAULT_CONFIG_FILENAME,
    SorterConfig,
    language_for_path,
    load_config,
)
from classorder.errors import ConfigError, OracleBuildError
from classorder.io_utils import dump_json
from classorder.service import ClassSorterService, apply_edits, non_overlapping
from classorder.spans import compute_line_starts, offset_to_position

EXIT_OK = 0
EXIT_UNSORTED = 1
EXIT_ERROR = 2


def log(msg: str) -> None:
    print(msg, file=sys.stderr)


def resolve_config(config_path: Path | None, workspace: Path) -> SorterConfig:
    """Explicit --config, else the workspace default file, else built-in defaults."""
    if config_path is not None:
        return load_config(config_path)
    default = workspace / DEFAULT_CONFIG_FILENAME
    if default.is_file():
        return load_config(default)
    return SorterConfig()


async def process_file(
    service: ClassSorterService,
    path: Path,
    language_id: str,
    *,
    write: bool,
    offset_range: tuple[int, int] | None = None,
    at: int | None = None,
) -> dict[str, Any]:
    """Sort one file and describe the edits it needs.

    Raises:
        OSError: the file cannot be read or written.
        UnicodeDecodeError: the file is not UTF-8.
    """
    text = path.read_text(encoding="utf-8")
    if at is not None:
        found = await service.edits_at_offset(text, language_id, at)
    else:
        start, end = offset_range if offset_range is not None else (None, None)
        found = await service.edits_for_text(text, language_id, start=start, end=end)
    edits = non_overlapping(found)
    line_starts = compute_line_starts(text)

    rows: list[dict[str, Any]] = []
    for edit in edits:
        line, column = offset_to_position(line_starts, edit.start)
        rows.append({
            "line": line + 1,
            "column": column + 1,
            "start": edit.start,
            "end": edit.end,
            "original": edit.original,
            "sorted": edit.replacement,
        })

    written = False
    if write and edits:
        path.write_text(apply_edits(text, edits), encoding="utf-8")
        written = True
    return {
        "path": str(path),
        "language": language_id,
        "edits": rows,
        "written": written,
    }


async def run(args: argparse.Namespace) -> int:
    workspace: Path = args.workspace.resolve()
    try:
        config = resolve_config(args.config, workspace)
        service = ClassSorterService(config, workspace, strict_rules=args.strict_rules)
    except ConfigError as exc:
        log(f"ERROR: {exc}")
        for err in exc.rule_errors:
            log(f"  {err.language_id or '-'}: {err.regex!r}: {err.message}")
        return EXIT_ERROR

    if not config.enable:
        log("Class sorting is disabled in config")

    offset_range = tuple(args.range) if args.range else None
    reports: list[dict[str, Any]] = []
    skipped: list[str] = []
    failed: list[dict[str, str]] = []
    for path in args.files:
        language_id = args.language or language_for_path(path)
        if language_id is None or not service.supports(language_id):
            log(f"Skipping {path}: language not configured")
            skipped.append(str(path))
            continue
        if not path.is_file():
            log(f"Skipping {path}: not a file")
            skipped.append(str(path))
            continue
        try:
            report = await process_file(
                service, path, language_id,
                write=args.write, offset_range=offset_range, at=args.at,
            )
        except OracleBuildError as exc:
            log(f"ERROR: {exc}")
            return EXIT_ERROR
        except (OSError, UnicodeDecodeError) as exc:
            log(f"ERROR: {path}: {exc}")
            failed.append({"path": str(path), "error": str(exc)})
            continue
        if report["edits"]:
            verb = "Sorted" if report["written"] else "Unsorted"
            log(f"{verb} {len(report['edits'])} class attribute(s) in {path}")
        reports.append(report)

    changed_files = sum(1 for r in reports if r["edits"])
    dump_json({
        "mode": "check" if args.check else ("write" if args.write else "report"),
        "files": reports,
        "skipped": skipped,
        "failed": failed,
        "changed_files": changed_files,
        "total_edits": sum(len(r["edits"]) for r in reports),
    })
    if failed:
        return EXIT_ERROR
    if args.check and changed_files:
        return EXIT_UNSORTED
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sort utility classes in source files into canonical order.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="Files to process")
    parser.add_argument(
        "--config", type=Path, default=None,
        help=f"JSON config (default: <workspace>/{DEFAULT_CONFIG_FILENAME} if present)",
    )
    parser.add_argument(
        "--workspace", type=Path, default=Path.cwd(),
        help="Workspace root used to resolve the rank table (default: cwd)",
    )
    parser.add_argument(
        "--language", default=None,
        help="Language id for every file (default: inferred from suffix)",
    )
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--range", type=int, nargs=2, metavar=("START", "END"), default=None,
        help="Only sort class strings touching this character offset range",
    )
    scope.add_argument(
        "--at", type=int, metavar="OFFSET", default=None,
        help="Only sort the class strings containing this character offset",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--check", action="store_true", help="Exit 1 if any file is unsorted")
    mode.add_argument("--write", action="store_true", help="Rewrite files in place")
    parser.add_argument(
        "--strict-rules", action="store_true",
        help="Fail on invalid pattern rules instead of skipping them",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging to stderr")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
