#!/usr/bin/env python3
"""
Command line runner for xmas programs.

Usage:
    python -m xmas run FILE.xmas [--input INPUT.txt] [--debug]
    python -m xmas check FILE.xmas
    python -m xmas tokens FILE.xmas

FILE may be '-' to read the program from stdin.

Environment:
    XMAS_DEBUG       Trace execution to stderr, as with --debug (1/true/yes/on)
    XMAS_LOG_LEVEL   Logging level for the xmas loggers (default WARNING)

Examples:
    # Run a program against a puzzle input
    python -m xmas run examples/sum_digits.xmas --input examples/sum_digits.txt

    # Watch every assignment, operator, condition and loop iteration
    python -m xmas run examples/countdown.xmas --debug
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

TRUTHY = ("1", "true", "yes", "on")


def env_flag(name: str) -> bool:
    """Read a boolean flag from the environment."""
    return os.environ.get(name, "").strip().lower() in TRUTHY


def configure_logging() -> None:
    level_name = os.environ.get("XMAS_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def read_source(path_arg: str) -> Optional[str]:
    """Read program source from a path or stdin ('-'). None if missing."""
    if path_arg == "-":
        return sys.stdin.read()
    source_path = Path(path_arg)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text()


def cmd_run(args):
    """Run a program and print its final value."""
    from . import compile_and_run, StreamTraceSink

    source = read_source(args.file)
    if source is None:
        return 1

    input_text = None
    if args.input:
        input_path = Path(args.input)
        if not input_path.exists():
            print(f"Error: Input file not found: {input_path}", file=sys.stderr)
            return 1
        input_text = input_path.read_text()

    trace = None
    if args.debug or env_flag("XMAS_DEBUG"):
        trace = StreamTraceSink(sys.stderr)

    filename = None if args.file == "-" else args.file
    result = compile_and_run(source, input_text, trace=trace, filename=filename)

    if not result.success:
        print(result.error_message, file=sys.stderr)
        return 1

    output = result.output
    if output:
        print(output)
    return 0


def cmd_check(args):
    """Check a program for lexer and parser errors."""
    from . import tokenize, parse, XmasError

    source = read_source(args.file)
    if source is None:
        return 1

    name = "<stdin>" if args.file == "-" else Path(args.file).name
    try:
        program = parse(tokenize(source, name), filename=name, source=source)
    except XmasError as e:
        print(str(e), file=sys.stderr)
        return 1

    print(f"OK: {name} - {len(program.statements)} statement(s)")
    return 0


def cmd_tokens(args):
    """Print the token stream of a program."""
    from . import Lexer, XmasError

    source = read_source(args.file)
    if source is None:
        return 1

    try:
        for token in Lexer(source):
            print(f"{token.span.start.line}:{token.span.start.column}\t{token}")
    except XmasError as e:
        print(str(e), file=sys.stderr)
        return 1
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m xmas',
        description='Run and inspect xmas programs',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    # run command
    run_parser = subparsers.add_parser('run', help='Run a program')
    run_parser.add_argument('file', help="Program source file ('-' for stdin)")
    run_parser.add_argument('-i', '--input', metavar='FILE',
                            help='Input text exposed to the program as `input`')
    run_parser.add_argument('-d', '--debug', action='store_true',
                            help='Trace execution to stderr')

    # check command
    check_parser = subparsers.add_parser('check', help='Check a program for syntax errors')
    check_parser.add_argument('file', help="Program source file ('-' for stdin)")

    # tokens command
    tokens_parser = subparsers.add_parser('tokens', help='Print the token stream')
    tokens_parser.add_argument('file', help="Program source file ('-' for stdin)")

    args = parser.parse_args(argv)
    configure_logging()

    if args.action == 'run':
        return cmd_run(args)
    elif args.action == 'check':
        return cmd_check(args)
    elif args.action == 'tokens':
        return cmd_tokens(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
