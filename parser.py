from __future__ import annotations
from dataclasses import dataclass
from typing import List

from errors import UnmatchedLoopEnd, UnmatchedLoopStart
from lexer import Command


@dataclass
class SourceLocation:
    file: str
    line: int
    column: int
    text: str


@dataclass
class Program:
    filename: str
    commands: List[Command]
    # Parallel to commands: partner index for brackets, -1 otherwise.
    jumps: List[int]
    source_lines: List[str]

    def location_of(self, index: int) -> SourceLocation:
        return location_from_command(self.commands[index], self.filename, self.source_lines)


def location_from_command(command: Command, filename: str, source_lines: List[str]) -> SourceLocation:
    line_index = command.line - 1
    text = ""
    if 0 <= line_index < len(source_lines):
        text = source_lines[line_index]
    return SourceLocation(file=filename, line=command.line, column=command.column, text=text)


def split_source_lines(text: str) -> List[str]:
    # Only "\n" starts a new line for the lexer, so str.splitlines() would
    # disagree on "\r", "\x0b" and "\u2028".
    return [line.rstrip("\r") for line in text.split("\n")]


class Parser:
    def __init__(self, commands: List[Command], filename: str, source_lines: List[str]) -> None:
        self.commands = commands
        self.filename = filename
        self.source_lines = source_lines

    def parse(self) -> Program:
        return Program(
            filename=self.filename,
            commands=self.commands,
            jumps=self._resolve_brackets(),
            source_lines=self.source_lines,
        )

    def _resolve_brackets(self) -> List[int]:
        commands = self.commands
        jumps: List[int] = [-1] * len(commands)
        open_stack: List[int] = []
        for index, command in enumerate(commands):
            if command.type == "LOOP_START":
                open_stack.append(index)
            elif command.type == "LOOP_END":
                if not open_stack:
                    raise UnmatchedLoopEnd(
                        "Unmatched ']' has no open '['",
                        location=self._location(command),
                    )
                start = open_stack.pop()
                jumps[start] = index
                jumps[index] = start
        if open_stack:
            # Report the outermost unclosed loop; it is the first one execution would reach.
            raise UnmatchedLoopStart(
                "Unmatched '[' is never closed",
                location=self._location(commands[open_stack[0]]),
            )
        return jumps

    def _location(self, command: Command) -> SourceLocation:
        return location_from_command(command, self.filename, self.source_lines)
