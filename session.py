"""REPL session state carried between accepted input lines."""

from __future__ import annotations
import sys
from typing import Callable, Optional, TextIO

from interpreter import (
    BOUNDS_FAULT,
    DEFAULT_TAPE_SIZE,
    Interpreter,
    SmokeRuntimeError,
    Tape,
    TracebackFormatter,
    new_tape,
)
from lexer import SmokeSyntaxError, tokenize
from parser import Parser


REPL_FILENAME = "<stdin>"


class Session:
    """Owns the tape and pointer for an interactive run.

    Every line runs in a fresh :class:`Interpreter` seeded with a copy of the
    session tape. The copy is adopted only when the line finishes without
    error, so a failing line leaves no partial writes behind.
    """

    def __init__(
        self,
        *,
        tape_size: int = DEFAULT_TAPE_SIZE,
        bounds: str = BOUNDS_FAULT,
        verbose: bool = False,
        input_provider: Optional[Callable[[], str]] = None,
        output_sink: Optional[Callable[[str], None]] = None,
        error_stream: Optional[TextIO] = None,
    ) -> None:
        self.tape: Tape = new_tape(tape_size)
        self.pointer = 0
        self.bounds = bounds
        self.verbose = verbose
        self.input_provider = input_provider
        self.output_sink = output_sink
        self.error_stream = error_stream
        self.last_interpreter: Optional[Interpreter] = None

    def execute(self, line: str) -> bool:
        errors = self.error_stream or sys.stderr
        ok, tokens = tokenize(line, REPL_FILENAME, errors)
        if not ok:
            return False
        try:
            program = Parser(tokens, REPL_FILENAME, line.splitlines()).parse()
        except SmokeSyntaxError as error:
            print(f"SyntaxErr: {error}", file=errors)
            return False

        interpreter = Interpreter(
            program,
            tape=self.tape.copy(),
            pointer=self.pointer,
            repl_mode=True,
            bounds=self.bounds,
            verbose=self.verbose,
            input_provider=self.input_provider,
            output_sink=self.output_sink,
        )
        self.last_interpreter = interpreter
        try:
            interpreter.run()
        except SmokeRuntimeError as error:
            formatter = TracebackFormatter(interpreter)
            print(formatter.format_text(error, verbose=self.verbose), file=errors)
            return False

        self.tape = interpreter.tape
        self.pointer = interpreter.pointer
        return True
