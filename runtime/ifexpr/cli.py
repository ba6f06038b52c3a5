"""
IFExpr command line runner

    ifexpr -e 'sum {1 2 3}'
    ifexpr program.ifx --json
    echo 'dbg product {2 3}' | ifexpr -
"""

from decimal import Decimal
from typing import List, Optional
import argparse
import json
import os
import sys

from dotenv import load_dotenv

from .config import load_config
from .engine import IFExprError, render
from .logging_setup import configure_logging, get_logger
from .parse import Value
from .runtime import IFExprRuntime


log = get_logger("ifexpr.cli")


def _to_json(value: Value):
    if isinstance(value, tuple):
        return [_to_json(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ifexpr", description="Run an IFExpr program.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("-e", "--expr", help="Program text to run.")
    source.add_argument("path", nargs="?", help="Program file, or '-' for stdin.")
    parser.add_argument("--json", action="store_true", help="Print the final stack as JSON.")
    parser.add_argument("--max-depth", type=int, help="Nested dispatch limit.")
    parser.add_argument("--log-level", help="Log level for the ifexpr logger.")
    return parser


def _read_source(args: argparse.Namespace) -> str:
    if args.expr is not None:
        return args.expr
    if args.path == "-":
        return sys.stdin.read()
    with open(args.path, "r", encoding="utf-8") as f:
        return f.read()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    config = load_config()
    if args.max_depth is not None:
        if args.max_depth < 1:
            parser.error("--max-depth must be positive")
        config.max_depth = args.max_depth
    if args.log_level:
        config.log_level = args.log_level
    configure_logging(config.log_level)

    if args.path not in (None, "-") and not os.path.exists(args.path):
        print(f"Error: File '{args.path}' not found.", file=sys.stderr)
        return 1
    try:
        source = _read_source(args)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: cannot read '{args.path}': {e}", file=sys.stderr)
        return 1

    runtime = IFExprRuntime(config=config, out=sys.stderr)
    try:
        stack = runtime.execute(source)
    except IFExprError as e:
        log.debug("program failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        try:
            payload = json.dumps([_to_json(v) for v in stack])
        except RecursionError:
            print("Error: stack is nested too deeply for JSON output", file=sys.stderr)
            return 1
        print(payload)
    else:
        for value in stack:
            print(render(value))
    return 0


if __name__ == "__main__":
    sys.exit(main())
