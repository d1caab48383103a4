#!/usr/bin/env python3
"""Compile a YAMD source file and emit the document graph as JSON.

Usage::

    python3 scripts/yamd_compile.py notes.yaml
    python3 scripts/yamd_compile.py notes.yaml --output build/notes.json --compact
    python3 scripts/yamd_compile.py notes.yaml --no-segments -v

Exit status is 1 when compilation fails (negative result code).
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from yamd.compiler import CompileOptions, compile_result_to_dict, compile_yamd
from yamd.flatten import DEFAULT_ID_PREFIX, DEFAULT_ID_WIDTH
from yamd.io_utils import dumps_json, load_source_text, save_json


def log(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def dump_json(obj: object, *, pretty: bool = True) -> None:
    sys.stdout.buffer.write(dumps_json(obj, pretty=pretty))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compile a YAMD document to JSON")
    parser.add_argument("input", type=Path, help="YAMD source file")
    parser.add_argument("--output", type=Path, default=None, help="Write the record here instead of stdout")
    parser.add_argument("--no-segments", action="store_true", help="Skip inline segmentation and asset scan")
    parser.add_argument("--no-resolve-refs", action="store_true", help="Leave empty-label refs unresolved")
    parser.add_argument("--id-prefix", default=DEFAULT_ID_PREFIX)
    parser.add_argument("--id-width", type=int, default=DEFAULT_ID_WIDTH)
    parser.add_argument("--compact", action="store_true", help="Single-line JSON")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    if not args.input.exists():
        log(f"Error: input not found: {args.input}")
        return 1

    try:
        options = CompileOptions(
            id_prefix=args.id_prefix,
            id_width=args.id_width,
            process_segments=not args.no_segments,
            resolve_refs=not args.no_resolve_refs,
        )
    except ValueError as exc:
        log(f"Error: {exc}")
        return 1
    result = compile_yamd(load_source_text(args.input), options=options)
    record = compile_result_to_dict(result)

    if not result.ok:
        log(f"Error: {result.message} (code {result.code})")
        dump_json(record, pretty=not args.compact)
        return 1

    if args.output is None:
        dump_json(record, pretty=not args.compact)
        return 0

    save_json(record, args.output, pretty=not args.compact)
    assert result.data is not None
    log(f"Wrote {len(result.data.nodes)} nodes to {args.output}")
    dump_json(
        {
            "code": result.code,
            "output": str(args.output),
            "nodes": len(result.data.nodes),
            "assets": len(result.data.assets),
            "refs": len(result.data.refs),
            "bibs": len(result.data.bibs),
        },
        pretty=not args.compact,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
