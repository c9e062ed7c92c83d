"""Smoke entry point and REPL wiring."""

from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from interpreter import (
    BOUNDS_FAULT,
    BOUNDS_POLICIES,
    DEFAULT_TAPE_SIZE,
    Interpreter,
    SmokeRuntimeError,
    TracebackFormatter,
)
from lexer import SmokeSyntaxError
from parser import parse_source
from session import Session


__version__ = "1.0.0"

FILE_SUFFIX = ".sk"
PROMPT = ">>> "

BANNER = f"Smoke {__version__} Hello, nice to meet you >_ !"

HELP_TEXT = """
  Welcome to Smoke's help utility !

    <  move the pointer left (stops at cell 0)
    >  move the pointer right
    +  increment the current cell
    -  decrement the current cell
    [  loop while the cell selected on entry is nonzero
    ]  end of loop body
    .  print the current cell as a character
    *  print the current cell as a number
    ,  read a number into the current cell
    !  dump the tape, 50 cells per page
    #  comment until the end of the line

  The tape and pointer persist between lines. Type "exit" to leave.
"""

COPYRIGHT_TEXT = """
  Copyright [2019] [Turaiiao]

  Licensed under the Apache License, Version 2.0.
  You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0
"""

LICENSE_TEXT = """
  Smoke is open source ! More information to type "copyright".
"""

META_COMMANDS = {
    "help": HELP_TEXT,
    "copyright": COPYRIGHT_TEXT,
    "license": LICENSE_TEXT,
}


def run_repl(*, tape_size: int = DEFAULT_TAPE_SIZE, bounds: str = BOUNDS_FAULT, verbose: bool = False) -> int:
    print(BANNER)
    print('Type "help", "copyright", "license" for more information.')
    session = Session(tape_size=tape_size, bounds=bounds, verbose=verbose)

    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            print()
            break

        command = line.rstrip()
        if not command:
            continue
        if command == "exit":
            break
        if command in META_COMMANDS:
            print(META_COMMANDS[command])
            continue
        session.execute(line)

    return 0


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke tape interpreter")
    parser.add_argument("program", nargs="?", help=f"Source file path ({FILE_SUFFIX}) or literal source with -source")
    parser.add_argument("-source", "--source", dest="source_mode", action="store_true", help="Treat program argument as literal source text")
    parser.add_argument("--tape-size", type=int, default=DEFAULT_TAPE_SIZE, help=f"Number of tape cells (default {DEFAULT_TAPE_SIZE})")
    parser.add_argument("--bounds", choices=BOUNDS_POLICIES, default=BOUNDS_FAULT, help="What '>' does at the last cell")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Emit tape snapshots in tracebacks")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback")
    args = parser.parse_args(argv)

    if args.tape_size < 1:
        parser.error("--tape-size must be at least 1")

    if args.program is None:
        if args.source_mode:
            print("-source requires a program string", file=sys.stderr)
            return 1
        return run_repl(tape_size=args.tape_size, bounds=args.bounds, verbose=args.verbose)

    if args.source_mode:
        source_text = args.program
        filename = "<string>"
    else:
        filename = args.program
        if not filename.endswith(FILE_SUFFIX):
            print(f"You should use {FILE_SUFFIX} file suffix only !", file=sys.stderr)
            return 1
        try:
            with open(filename, "r", encoding="utf-8") as handle:
                source_text = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            print(f"Failed to read {filename}: {exc}", file=sys.stderr)
            return 1

    try:
        program = parse_source(source_text, filename)
    except SmokeSyntaxError as error:
        print(f"SyntaxErr: {error}", file=sys.stderr)
        return 1

    interpreter = Interpreter(program, tape_size=args.tape_size, bounds=args.bounds, verbose=args.verbose)
    try:
        interpreter.run()
    except SmokeRuntimeError as error:
        formatter = TracebackFormatter(interpreter)
        print(formatter.format_text(error, verbose=args.verbose), file=sys.stderr)
        if args.traceback_json:
            print(formatter.to_json(error), file=sys.stderr)
        return 1
    return 0


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
