#!/usr/bin/env python3
"""
Convert stored content between block documents (JSON) and HTML.

Usage:
    python scripts/convert_content.py to-html post.json -o post.html
    python scripts/convert_content.py to-blocks post.html

Output goes to stdout unless -o is given.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from blockdoc.config import setup_logging
from htmlcodec.assembler import blocks_to_html, html_to_blocks
from htmlcodec.exceptions import BlockDocError

logger = logging.getLogger(__name__)


def to_html(source: str) -> str:
    try:
        doc = json.loads(source)
    except json.JSONDecodeError as e:
        raise BlockDocError("Input is not JSON", str(e)) from e
    return blocks_to_html(doc)


def to_blocks(source: str) -> str:
    doc = html_to_blocks(source)
    return json.dumps(doc.model_dump(), indent=2, ensure_ascii=False)


COMMANDS = {
    "to-html": to_html,
    "to-blocks": to_blocks,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert content between block JSON and HTML")
    parser.add_argument("command", choices=sorted(COMMANDS), help="Direction of the conversion")
    parser.add_argument("input", type=Path, help="Block document JSON or HTML file")
    parser.add_argument("-o", "--output", type=Path, help="Write here instead of stdout")
    return parser


def main(argv=None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    source = args.input.read_text(encoding="utf-8")
    try:
        result = COMMANDS[args.command](source)
    except BlockDocError as e:
        logger.error(f"Could not convert {args.input}: {e}")
        return 1

    if args.output:
        args.output.write_text(result, encoding="utf-8")
        logger.info(f"Wrote {args.output}")
    else:
        sys.stdout.write(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
