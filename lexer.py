from __future__ import annotations
import sys
from dataclasses import dataclass
from typing import List, Optional, TextIO, Tuple


class SmokeError(Exception):
    """Base class for interpreter errors."""


class SmokeSyntaxError(SmokeError):
    """Raised when tokenizing or bracket matching fails."""

    def __init__(self, message: str, *, filename: str = "<string>", line: int = 0, column: int = 0) -> None:
        super().__init__(f"{message} at {filename}:{line}:{column}")
        self.message = message
        self.filename = filename
        self.line = line
        self.column = column


@dataclass(frozen=True)
class Token:
    type: str
    value: str
    line: int
    column: int


SYMBOLS = {
    "<": "MOVE_LEFT",
    ">": "MOVE_RIGHT",
    "+": "INCREMENT",
    "-": "DECREMENT",
    "[": "LOOP_START",
    "]": "LOOP_END",
    ".": "PRINT_CHAR",
    "*": "PRINT_INT",
    ",": "READ_INPUT",
    "!": "DUMP_MEMORY",
}


class Lexer:
    def __init__(self, text: str, filename: str) -> None:
        self.text = text
        self.filename = filename
        self.index = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        tokens_append = tokens.append
        _advance = self._advance
        symbols = SYMBOLS
        text = self.text
        n = len(text)

        while self.index < n:
            ch: str = text[self.index]
            if ch == " " or ch == "\t" or ch == "\r" or ch == "\n":
                _advance()
                continue
            if ch == "#":
                self._consume_comment()
                continue
            if ch in symbols:
                tokens_append(Token(symbols[ch], ch, self.line, self.column))
                _advance()
                continue
            raise SmokeSyntaxError(
                f"unknown char: {ch}", filename=self.filename, line=self.line, column=self.column
            )
        tokens_append(Token("EOF", "", self.line, self.column))
        return tokens

    def _consume_comment(self) -> None:
        # The terminating newline belongs to the comment.
        text = self.text
        n = len(text)
        _advance = self._advance
        while self.index < n:
            ch = text[self.index]
            _advance()
            if ch == "\n":
                break

    def _advance(self) -> None:
        if self.text[self.index] == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.index += 1


def tokenize(text: str, filename: str = "<string>", errors: Optional[TextIO] = None) -> Tuple[bool, List[Token]]:
    """Tokenize ``text`` and report success as a flag.

    On failure the diagnostic goes to ``errors`` (stderr by default), the
    partial token list is dropped and an empty list returned, so callers
    never see a prefix of a bad program.
    """
    try:
        return True, Lexer(text, filename).tokenize()
    except SmokeSyntaxError as error:
        print(f"SyntaxErr: {error}", file=errors or sys.stderr)
        return False, []
