from __future__ import annotations
import json
import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from lexer import SmokeError
from parser import Instruction, Program, SourceLocation


DEFAULT_TAPE_SIZE = 10000
DUMP_PAGE_SIZE = 50
DUMP_PROMPT = 'Press "n" to next and press other to quit.'

BOUNDS_FAULT = "fault"
BOUNDS_SATURATE = "saturate"
BOUNDS_WRAP = "wrap"
BOUNDS_POLICIES = (BOUNDS_FAULT, BOUNDS_SATURATE, BOUNDS_WRAP)

CELL_DTYPE = np.int32
CELL_MIN = int(np.iinfo(CELL_DTYPE).min)
CELL_MAX = int(np.iinfo(CELL_DTYPE).max)

# ASCII digits only; int() alone also takes "1_000" and non-ASCII digits.
INTEGER_INPUT = re.compile(r"[+-]?[0-9]+")

# Cells captured on each side of the pointer in verbose step logs.
SNAPSHOT_RADIUS = 5

Tape = NDArray[np.int32]


class SmokeRuntimeError(SmokeError):
    """Raised for runtime faults."""

    def __init__(
        self,
        message: str,
        *,
        location: Optional[SourceLocation] = None,
        rule: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.rule = rule
        self.step_index: Optional[int] = None


class SmokeInputError(SmokeRuntimeError):
    """Raised when READ_INPUT receives something other than an int32."""


class SmokeBoundsError(SmokeRuntimeError):
    """Raised when the pointer leaves the tape under the fault policy."""


def new_tape(size: int = DEFAULT_TAPE_SIZE) -> Tape:
    if size < 1:
        raise ValueError(f"tape size must be at least 1, got {size}")
    return np.zeros(size, dtype=CELL_DTYPE)


@dataclass
class StateEntry:
    step_index: int
    state_id: str
    source_location: Optional[SourceLocation]
    statement: Optional[str]
    rule: str
    pointer: int
    tape_snapshot: Optional[Dict[int, int]]


class StateLogger:
    def __init__(self, verbose: bool, history: int = 1000) -> None:
        self.verbose = verbose
        self.entries: Deque[StateEntry] = deque(maxlen=history)
        self.next_state_index = 0

    def record(
        self,
        *,
        location: Optional[SourceLocation],
        rule: str,
        pointer: int,
        tape_snapshot: Optional[Dict[int, int]] = None,
    ) -> StateEntry:
        step_index = self.next_state_index
        entry = StateEntry(
            step_index=step_index,
            state_id=f"s_{step_index:06d}",
            source_location=location,
            statement=location.statement if location else None,
            rule=rule,
            pointer=pointer,
            tape_snapshot=tape_snapshot,
        )
        self.entries.append(entry)
        self.next_state_index += 1
        return entry

    @property
    def last_entry(self) -> Optional[StateEntry]:
        return self.entries[-1] if self.entries else None


class Interpreter:
    def __init__(
        self,
        program: Program,
        *,
        tape: Optional[Tape] = None,
        pointer: int = 0,
        tape_size: int = DEFAULT_TAPE_SIZE,
        repl_mode: bool = False,
        bounds: str = BOUNDS_FAULT,
        verbose: bool = False,
        history: int = 1000,
        input_provider: Optional[Callable[[], str]] = None,
        output_sink: Optional[Callable[[str], None]] = None,
    ) -> None:
        if bounds not in BOUNDS_POLICIES:
            raise ValueError(f"unknown bounds policy '{bounds}', expected one of {', '.join(BOUNDS_POLICIES)}")
        self.program = program
        # The engine owns this array; callers that need the old state pass a copy.
        self.tape: Tape = tape if tape is not None else new_tape(tape_size)
        if not 0 <= pointer < self.tape.size:
            raise ValueError(f"pointer {pointer} outside tape of {self.tape.size} cells")
        self.pointer = pointer
        self.cursor = 0
        self.repl_mode = repl_mode
        self.bounds = bounds
        self.verbose = verbose
        self.input_provider = input_provider or (lambda: input())
        self.output_sink = output_sink or (lambda text: print(text, end="", flush=True))
        self.logger = StateLogger(verbose=verbose, history=history)
        # Active loops, innermost last: (LOOP_START index, condition address).
        self.loops: List[Tuple[int, int]] = []

        self._handlers: Dict[str, Callable[[Instruction], None]] = {
            "MOVE_LEFT": self._move_left,
            "MOVE_RIGHT": self._move_right,
            "INCREMENT": self._increment,
            "DECREMENT": self._decrement,
            "LOOP_START": self._loop_start,
            "LOOP_END": self._loop_end,
            "PRINT_CHAR": self._print_char,
            "PRINT_INT": self._print_int,
            "READ_INPUT": self._read_input,
            "DUMP_MEMORY": self._dump_memory,
        }

    @property
    def separator(self) -> str:
        return "\n" if self.repl_mode else " "

    @property
    def current_cell(self) -> int:
        return int(self.tape[self.pointer])

    def run(self) -> None:
        instructions = self.program.instructions
        handlers = self._handlers
        log_step = self._log_step
        try:
            while self.cursor < len(instructions):
                instruction = instructions[self.cursor]
                log_step(instruction)
                handlers[instruction.op](instruction)
                self.cursor += 1
        except SmokeRuntimeError as error:
            if self.logger.last_entry is not None:
                error.step_index = self.logger.last_entry.step_index
            raise
        except Exception as exc:
            # Surface Python-level faults as runtime errors so callers can format them.
            last = self.logger.last_entry
            wrapped = SmokeRuntimeError(
                f"Internal interpreter error: {exc}",
                location=last.source_location if last else None,
                rule="internal",
            )
            if last is not None:
                wrapped.step_index = last.step_index
            raise wrapped from exc

    def snapshot(self) -> Dict[int, int]:
        low = max(0, self.pointer - SNAPSHOT_RADIUS)
        high = min(self.tape.size, self.pointer + SNAPSHOT_RADIUS + 1)
        return {index: int(value) for index, value in zip(range(low, high), self.tape[low:high])}

    def _log_step(self, instruction: Instruction) -> None:
        self.logger.record(
            location=instruction.location,
            rule=instruction.op,
            pointer=self.pointer,
            tape_snapshot=self.snapshot() if self.verbose else None,
        )

    # ------------- Instructions -------------

    def _move_left(self, _: Instruction) -> None:
        if self.pointer > 0:
            self.pointer -= 1

    def _move_right(self, instruction: Instruction) -> None:
        if self.pointer + 1 < self.tape.size:
            self.pointer += 1
            return
        if self.bounds == BOUNDS_SATURATE:
            return
        if self.bounds == BOUNDS_WRAP:
            self.pointer = 0
            return
        raise SmokeBoundsError(
            f"pointer moved past the last cell ({self.tape.size - 1})",
            location=instruction.location,
            rule=instruction.op,
        )

    def _increment(self, _: Instruction) -> None:
        # Slice arithmetic keeps int32 wraparound without scalar overflow warnings.
        self.tape[self.pointer : self.pointer + 1] += 1

    def _decrement(self, _: Instruction) -> None:
        self.tape[self.pointer : self.pointer + 1] -= 1

    def _loop_start(self, _: Instruction) -> None:
        start = self.cursor
        address = self.pointer
        if self.tape[address] == 0:
            self.cursor = self.program.jumps[start]
            return
        self.loops.append((start, address))

    def _loop_end(self, _: Instruction) -> None:
        start = self.program.jumps.get(self.cursor)
        if start is None or not self.loops or self.loops[-1][0] != start:
            return
        _, address = self.loops[-1]
        if self.tape[address] != 0:
            self.cursor = start
            return
        self.loops.pop()

    def _print_char(self, _: Instruction) -> None:
        self.output_sink(chr(self.current_cell & 0xFF) + self.separator)

    def _print_int(self, _: Instruction) -> None:
        self.output_sink(str(self.current_cell) + self.separator)

    def _read_input(self, instruction: Instruction) -> None:
        try:
            text = self.input_provider()
        except EOFError:
            raise SmokeInputError("Unexpected end of input.", location=instruction.location, rule=instruction.op)
        text = text.strip()
        if not INTEGER_INPUT.fullmatch(text):
            raise SmokeInputError("Please input a number.", location=instruction.location, rule=instruction.op)
        value = int(text)
        if not CELL_MIN <= value <= CELL_MAX:
            raise SmokeInputError("Please input a number.", location=instruction.location, rule=instruction.op)
        self.tape[self.pointer] = value

    def _dump_memory(self, _: Instruction) -> None:
        size = self.tape.size
        skip = 0
        while skip < size:
            page = self.tape[skip : skip + DUMP_PAGE_SIZE]
            self.output_sink("".join(f"{int(value)} " for value in page) + "\n")
            skip += DUMP_PAGE_SIZE
            if skip >= size:
                break
            self.output_sink(DUMP_PROMPT + "\n")
            try:
                answer = self.input_provider()
            except EOFError:
                break
            if answer.rstrip() != "n":
                break


@dataclass
class TracebackFrame:
    name: str
    location: Optional[SourceLocation]
    statement: Optional[str]
    state_entry: Optional[StateEntry]


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter) -> None:
        self.interpreter = interpreter

    def build_frames(self, error: SmokeRuntimeError) -> List[TracebackFrame]:
        entry = self.interpreter.logger.last_entry
        location = error.location or (entry.source_location if entry else None)
        return [
            TracebackFrame(
                name="<top-level>",
                location=location,
                statement=location.statement if location else None,
                state_entry=entry,
            )
        ]

    def format_text(self, error: SmokeRuntimeError, verbose: bool) -> str:
        lines = ["Traceback (most recent call last):"]
        for frame in self.build_frames(error):
            if frame.location:
                lines.append(
                    f"  File \"{frame.location.file}\", line {frame.location.line}, column {frame.location.column}, in {frame.name}"
                )
                if frame.statement:
                    lines.append(f"    {frame.statement}")
            else:
                lines.append(f"  <unknown location> in {frame.name}")
            if frame.state_entry:
                lines.append(
                    f"    State log index: {frame.state_entry.step_index}  State id: {frame.state_entry.state_id}"
                )
                if verbose and frame.state_entry.tape_snapshot is not None:
                    cells = ", ".join(f"{k}={v}" for k, v in frame.state_entry.tape_snapshot.items())
                    lines.append(f"    Tape window: {cells} (pointer {frame.state_entry.pointer})")
        rule = error.rule or "runtime"
        lines.append(f"{error.__class__.__name__}: {error.message} (op: {rule})")
        return "\n".join(lines)

    def to_json(self, error: SmokeRuntimeError) -> str:
        frames_json: List[Dict[str, Any]] = []
        for index, frame in enumerate(self.build_frames(error)):
            entry: Dict[str, Any] = {"frame_index": index, "name": frame.name}
            if frame.location:
                entry["source_location"] = {
                    "file": frame.location.file,
                    "line": frame.location.line,
                    "column": frame.location.column,
                    "statement": frame.location.statement,
                }
            if frame.state_entry:
                entry["state_id"] = frame.state_entry.state_id
                entry["step_index"] = frame.state_entry.step_index
                entry["pointer"] = frame.state_entry.pointer
                if frame.state_entry.tape_snapshot is not None:
                    entry["tape_snapshot"] = {str(k): v for k, v in frame.state_entry.tape_snapshot.items()}
            frames_json.append(entry)
        data = {
            "error": {
                "type": error.__class__.__name__,
                "message": error.message,
                "failing_step_index": error.step_index,
            },
            "traceback": frames_json,
        }
        return json.dumps(data, indent=2)
