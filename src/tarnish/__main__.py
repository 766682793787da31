"""
Reads sums like `3+4-2` from stdin, one per line, and prints their totals.
"""

from __future__ import annotations
from typing import TextIO, Sequence

import argparse
import logging
import sys

from tarnish.main import Cursor, ParseError, parse
from tarnish.general import calculator


logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    """Returns 1 if any line was rejected, 0 otherwise."""
    arg_parser = argparse.ArgumentParser(prog="tarnish-calc", description=__doc__)
    arg_parser.add_argument("--full", action="store_true", help="reject lines with anything after the sum")
    arg_parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    args = arg_parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout

    expr = calculator()
    cursor = Cursor()
    status = 0
    for lineno, line in enumerate(stdin, start=1):
        text = line.rstrip("\r\n")
        try:
            total = parse(expr, text, cursor=cursor, consume_all=args.full)
        except ParseError as e:
            logger.warning("Line %d rejected at position %d: %s", lineno, e.pos, e.msg)
            status = 1
            continue
        print(total, file=stdout)
    return status


if __name__ == "__main__":
    sys.exit(main())
