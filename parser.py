from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from lexer import Lexer, SmokeSyntaxError, Token


@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int
    column: int
    statement: str


@dataclass(frozen=True)
class Instruction:
    op: str
    location: SourceLocation


@dataclass(frozen=True)
class Program:
    instructions: Tuple[Instruction, ...]
    # LOOP_START index <-> LOOP_END index, both directions.
    jumps: Dict[int, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.instructions)


class Parser:
    def __init__(self, tokens: List[Token], filename: str, source_lines: List[str]):
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines
        self.index = 0

    def parse(self) -> Program:
        instructions: List[Instruction] = []
        jumps: Dict[int, int] = {}
        open_loops: List[Tuple[int, Token]] = []

        while self._peek().type != "EOF":
            token = self._advance()
            position = len(instructions)
            if token.type == "LOOP_START":
                open_loops.append((position, token))
            elif token.type == "LOOP_END" and open_loops:
                start, _ = open_loops.pop()
                jumps[start] = position
                jumps[position] = start
            # An unmatched LOOP_END gets no entry and runs as a no-op.
            instructions.append(Instruction(op=token.type, location=self._location_from_token(token)))

        if open_loops:
            _, token = open_loops[-1]
            raise SmokeSyntaxError(
                "expect right bracket that program was end",
                filename=self.filename,
                line=token.line,
                column=token.column,
            )
        return Program(instructions=tuple(instructions), jumps=jumps)

    def _peek(self) -> Token:
        if self.index >= len(self.tokens):
            # Tolerate token lists built without the trailing EOF marker.
            last = self.tokens[-1] if self.tokens else None
            return Token("EOF", "", last.line if last else 1, last.column if last else 1)
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _location_from_token(self, token: Token) -> SourceLocation:
        line_index = token.line - 1
        statement = ""
        if 0 <= line_index < len(self.source_lines):
            statement = self.source_lines[line_index].strip()
        return SourceLocation(file=self.filename, line=token.line, column=token.column, statement=statement)


def parse_source(text: str, filename: str) -> Program:
    tokens = Lexer(text, filename).tokenize()
    return Parser(tokens, filename, text.splitlines()).parse()
