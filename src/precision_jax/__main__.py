"""Run a Python script with a different default float precision.

Usage: python -m precision_jax --target float32 script.py
"""

from __future__ import annotations

import argparse
import ast
import logging
from pathlib import Path

from .runtime import evaluate, prelude
from .rewriter import rewrite_source


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m precision_jax", description=__doc__)
    parser.add_argument("script", help="Python file to rewrite and run.")
    parser.add_argument("--target", default="float32", help="Target precision (default: float32).")
    parser.add_argument("--show", action="store_true", help="Print the rewritten source instead of running it.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log rewrite and inclusion details.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    path = Path(args.script)
    source = path.read_text(encoding="utf-8")
    if args.show:
        print(ast.unparse(rewrite_source(args.target, source, str(path))))
        return 0

    scope = prelude()
    scope["__name__"] = "__main__"
    scope["__file__"] = str(path)
    evaluate(args.target, source, scope, filename=str(path))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
