from __future__ import annotations
import json
import os
import sys
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np
from numpy.typing import NDArray

from errors import (
    BFRuntimeError,
    ExcessiveLoopDepth,
    TapePointerOutOfBounds,
    UnmatchedLoopEnd,
    UnmatchedLoopStart,
    build_context,
)
from lexer import Command, Lexer
from parser import Parser, Program, SourceLocation, split_source_lines


TAPE_SIZE = 30000
CELL_MASK = 0xFFFFFFFF
MAX_LOOP_DEPTH = 32767
# Value stored by ',' once the input provider is exhausted.
EOF_VALUE = 0
MAX_CODE_POINT = 0x10FFFF
SURROGATE_FIRST = 0xD800
SURROGATE_LAST = 0xDFFF
REPLACEMENT_CHAR = "\ufffd"

DEFAULT_HISTORY = 32
TAPE_WINDOW_RADIUS = 8


def _new_tape() -> NDArray[np.uint32]:
    return np.zeros(TAPE_SIZE, dtype=np.uint32)


@dataclass
class MachineState:
    tape: NDArray[np.uint32] = field(default_factory=_new_tape)
    pointer: int = 0
    loop_stack: List[int] = field(default_factory=list)
    cursor: int = 0

    def cell(self) -> int:
        return int(self.tape[self.pointer])

    def window(self, radius: int = TAPE_WINDOW_RADIUS) -> Dict[str, Any]:
        start = max(0, self.pointer - radius)
        end = min(TAPE_SIZE, self.pointer + radius + 1)
        return {"start": start, "cells": self.tape[start:end].tolist()}

    def nonzero_cells(self, limit: int = 64) -> Dict[int, int]:
        indices = np.flatnonzero(self.tape)[:limit]
        return {int(i): int(self.tape[i]) for i in indices}

    def reset_control(self) -> None:
        """Drop loop/cursor bookkeeping but keep tape contents and pointer."""
        self.loop_stack.clear()
        self.cursor = 0


@dataclass
class StepEntry:
    step_index: int
    command: Command
    location: Optional[SourceLocation]
    pointer: int
    cell: int


class StateLogger:
    def __init__(self, history: int = DEFAULT_HISTORY) -> None:
        self.entries: Deque[StepEntry] = deque(maxlen=max(1, history))
        self.step_count = 0

    def record(self, *, command: Command, location: Optional[SourceLocation], pointer: int, cell: int) -> StepEntry:
        entry = StepEntry(
            step_index=self.step_count,
            command=command,
            location=location,
            pointer=pointer,
            cell=cell,
        )
        self.entries.append(entry)
        return entry


class Interpreter:
    def __init__(
        self,
        *,
        source: str,
        filename: str,
        verbose: bool = False,
        input_provider: Optional[Callable[[], str]] = None,
        output_sink: Optional[Callable[[str], None]] = None,
        skip_newlines: bool = False,
        history: int = DEFAULT_HISTORY,
    ) -> None:
        self.source = source
        self._source_lines = split_source_lines(source)
        self.filename = filename if filename.startswith("<") else os.path.abspath(filename)
        self.verbose = verbose
        self.input_provider = input_provider or (lambda: sys.stdin.read(1))
        self.output_sink = output_sink or _stdout_sink
        self.skip_newlines = skip_newlines
        self.history = history
        self.logger = StateLogger(history=history)
        self.state: Optional[MachineState] = None

    def parse(self) -> Program:
        commands = Lexer(self.source, self.filename).tokenize()
        return Parser(commands, self.filename, self._source_lines).parse()

    def run(self, state: Optional[MachineState] = None) -> MachineState:
        state = state if state is not None else MachineState()
        self.state = state
        program = self.parse()
        return self.execute(program, state)

    def execute(self, program: Program, state: MachineState) -> MachineState:
        self.state = state
        self.logger = StateLogger(history=self.history)
        state.reset_control()
        try:
            self._dispatch(program, state)
        except BFRuntimeError as error:
            if error.step_index is None:
                error.step_index = self.logger.step_count
            raise
        except Exception as exc:
            # Surface unexpected Python-level failures as located runtime errors
            # so the CLI can format them like any other fault.
            loc = None
            if 0 <= state.cursor < len(program.commands):
                loc = program.location_of(state.cursor)
            wrapped = BFRuntimeError(f"Internal interpreter error: {exc}", location=loc)
            wrapped.step_index = self.logger.step_count
            raise wrapped from exc
        if state.loop_stack:
            raise UnmatchedLoopStart(
                "Loop still open at end of program",
                location=program.location_of(state.loop_stack[-1]),
            )
        return state

    def _dispatch(self, program: Program, state: MachineState) -> None:
        commands = program.commands
        jumps = program.jumps
        n = len(commands)
        tape = state.tape
        loop_stack = state.loop_stack
        logger = self.logger
        verbose = self.verbose
        output_sink = self.output_sink

        while state.cursor < n:
            i = state.cursor
            command = commands[i]
            kind = command.type
            if verbose:
                logger.record(
                    command=command,
                    location=program.location_of(i),
                    pointer=state.pointer,
                    cell=int(tape[state.pointer]),
                )

            if kind == "INCREMENT":
                tape[state.pointer] = (int(tape[state.pointer]) + 1) & CELL_MASK
            elif kind == "DECREMENT":
                tape[state.pointer] = (int(tape[state.pointer]) - 1) & CELL_MASK
            elif kind == "MOVE_RIGHT":
                if state.pointer + 1 >= TAPE_SIZE:
                    raise TapePointerOutOfBounds(
                        f"Pointer moved past the last cell ({TAPE_SIZE - 1})",
                        location=program.location_of(i),
                    )
                state.pointer += 1
            elif kind == "MOVE_LEFT":
                if state.pointer == 0:
                    raise TapePointerOutOfBounds(
                        "Pointer moved before the first cell (0)",
                        location=program.location_of(i),
                    )
                state.pointer -= 1
            elif kind == "LOOP_START":
                if int(tape[state.pointer]) == 0:
                    state.cursor = jumps[i] + 1
                    logger.step_count += 1
                    continue
                if len(loop_stack) >= MAX_LOOP_DEPTH:
                    raise ExcessiveLoopDepth(
                        f"More than {MAX_LOOP_DEPTH} nested loops are open",
                        location=program.location_of(i),
                    )
                loop_stack.append(i)
            elif kind == "LOOP_END":
                if not loop_stack:
                    raise UnmatchedLoopEnd(
                        "Unmatched ']' has no open '['",
                        location=program.location_of(i),
                    )
                if int(tape[state.pointer]) != 0:
                    state.cursor = loop_stack[-1] + 1
                    logger.step_count += 1
                    continue
                loop_stack.pop()
            elif kind == "OUTPUT":
                output_sink(_cell_to_char(int(tape[state.pointer])))
            elif kind == "INPUT":
                try:
                    tape[state.pointer] = self._read_input()
                except UnicodeDecodeError as exc:
                    raise BFRuntimeError(
                        f"Input is not valid text: {exc.reason}",
                        location=program.location_of(i),
                    ) from exc

            state.cursor = i + 1
            logger.step_count += 1

    def _read_input(self) -> int:
        text = self.input_provider()
        while self.skip_newlines and text == "\n":
            text = self.input_provider()
        if not text:
            return EOF_VALUE
        return ord(text[0])


def _cell_to_char(value: int) -> str:
    if value > MAX_CODE_POINT or SURROGATE_FIRST <= value <= SURROGATE_LAST:
        return REPLACEMENT_CHAR
    return chr(value)


def _stdout_sink(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


class TracebackFormatter:
    def __init__(self, interpreter: Interpreter) -> None:
        self.interpreter = interpreter

    def format_text(self, error: BFRuntimeError, verbose: bool) -> str:
        lines: List[str] = []
        loc = error.location
        if loc is not None:
            lines.append(f"  File \"{loc.file}\", line {loc.line}, column {loc.column}")
            context = build_context(self.interpreter._source_lines, loc.line, loc.column)
            if context:
                lines.append(context)
        if error.step_index is not None:
            lines.append(f"Step: {error.step_index}")
        state = self.interpreter.state
        if verbose and state is not None:
            window = state.window()
            cells = " ".join(str(v) for v in window["cells"])
            lines.append(f"Pointer: {state.pointer}  Loop depth: {len(state.loop_stack)}")
            lines.append(f"Tape[{window['start']}:]: {cells}")
            entries = list(self.interpreter.logger.entries)
            if entries:
                lines.append("Recent steps:")
                for entry in entries:
                    where = f"{entry.location.line}:{entry.location.column}" if entry.location else "?"
                    lines.append(
                        f"  #{entry.step_index} {entry.command.value} at {where}  ptr={entry.pointer} cell={entry.cell}"
                    )
        lines.append(f"{error.kind}: {error.message}{_position_suffix(loc)}")
        return "\n".join(lines)

    def to_json(self, error: BFRuntimeError) -> str:
        loc = error.location
        data: Dict[str, Any] = {
            "error": {
                "type": error.kind,
                "message": error.message,
                "failing_step_index": error.step_index,
            },
        }
        if loc is not None:
            data["error"]["source_location"] = {
                "file": loc.file,
                "line": loc.line,
                "column": loc.column,
            }
        state = self.interpreter.state
        if state is not None:
            data["state"] = {
                "pointer": state.pointer,
                "loop_depth": len(state.loop_stack),
                "window": state.window(),
                "nonzero_cells": {str(k): v for k, v in state.nonzero_cells().items()},
            }
        return json.dumps(data, indent=2)


def _position_suffix(loc: Optional[SourceLocation]) -> str:
    if loc is None:
        return ""
    return f" (line {loc.line}, column {loc.column})"
