from __future__ import annotations
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Command:
    type: str
    value: str
    line: int
    column: int


COMMANDS = {
    ">": "MOVE_RIGHT",
    "<": "MOVE_LEFT",
    "+": "INCREMENT",
    "-": "DECREMENT",
    ".": "OUTPUT",
    ",": "INPUT",
    "[": "LOOP_START",
    "]": "LOOP_END",
}


class Lexer:
    def __init__(self, text: str, filename: str) -> None:
        self.text = text
        self.filename = filename
        self.index = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> List[Command]:
        commands: List[Command] = []
        commands_append = commands.append
        _advance = self._advance
        symbols = COMMANDS
        text = self.text
        n = len(text)

        while self.index < n:
            ch: str = text[self.index]
            kind = symbols.get(ch)
            if kind is not None:
                commands_append(Command(kind, ch, self.line, self.column))
            # Everything else is a comment, but still counts toward line/column.
            _advance()
        return commands

    def _advance(self) -> None:
        if self.text[self.index] == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.index += 1
