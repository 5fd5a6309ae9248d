#!/usr/bin/env python3
"""CLI: Recognize idioms in a TypeScript/TSX file and print the diagram as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from idiomgraph import config
from idiomgraph.diagram.generator import DiagramGenerator
from idiomgraph.engine.registry import OutOfRangeError
from idiomgraph.matchers import build_registry
from idiomgraph.syntax.parser import TypeScriptParser
from idiomgraph.syntax.tree import from_dict

logger = logging.getLogger("idiomgraph.cli")


def _load(parser: argparse.ArgumentParser, args: argparse.Namespace):
    """Return (tree, source_text) from the file, stdin, or a Babel JSON tree."""
    if args.ast is not None:
        try:
            data = json.loads(args.ast.read_text())
        except (OSError, json.JSONDecodeError) as e:
            parser.error(f"cannot read syntax tree {args.ast}: {e}")
        if isinstance(data, dict) and data.get("type") == "File":
            data = data.get("program", data)
        source = args.source.read_text() if args.source is not None else ""
        try:
            return from_dict(data), source
        except ValueError as e:
            parser.error(str(e))

    ts = TypeScriptParser()
    if args.source is None:
        text = sys.stdin.read()
        try:
            return ts.parse(text, suffix=args.suffix), text
        except ValueError as e:
            parser.error(str(e))

    if not args.source.is_file():
        parser.error(f"{args.source} is not a file")
    try:
        return ts.parse_file(args.source)
    except ValueError as e:
        parser.error(str(e))


def main() -> None:
    parser = argparse.ArgumentParser(description="Recognize idioms and emit a diagram")
    parser.add_argument(
        "source",
        type=Path,
        nargs="?",
        default=None,
        help="Source file to analyze (default: read stdin)",
    )
    parser.add_argument(
        "--suffix",
        type=str,
        default=".tsx",
        help="Grammar to use for stdin input (default: .tsx)",
    )
    parser.add_argument(
        "--ast",
        type=Path,
        default=None,
        help="Load a Babel/ESTree JSON syntax tree instead of parsing; "
             "SOURCE then only supplies context snippets",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help=f"Confidence threshold in [0, 1] (default: {config.CONFIDENCE_THRESHOLD})",
    )
    parser.add_argument(
        "--records",
        action="store_true",
        help="Print the recognized idiom records instead of the diagram",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        registry = build_registry(args.threshold)
    except OutOfRangeError as e:
        parser.error(str(e))

    tree, source = _load(parser, args)
    records = registry.recognize(tree, source)
    logger.info("Recognized %d idioms", len(records))

    if args.records:
        print(json.dumps([r.to_dict() for r in records], indent=2))
        return

    diagram = DiagramGenerator().generate(records)
    print(json.dumps(diagram.to_dict(), indent=2))


if __name__ == "__main__":
    main()
