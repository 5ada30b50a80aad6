from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from parser import SourceLocation


class BFError(Exception):
    """Base class for interpreter errors."""


class SourceReadFailure(BFError):
    """Raised when the program file cannot be opened or decoded."""

    kind = "SourceReadFailure"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to read {path}: {reason}")
        self.path = path
        self.reason = reason


class BFRuntimeError(BFError):
    """Raised for fatal faults tied to a source position."""

    kind = "RuntimeError"

    def __init__(self, message: str, *, location: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.step_index: Optional[int] = None

    def __str__(self) -> str:
        loc = self.location
        if loc is None:
            return self.message
        return f"{self.message} at {loc.file}:{loc.line}:{loc.column}"


class UnmatchedLoopStart(BFRuntimeError):
    kind = "UnmatchedLoopStart"


class UnmatchedLoopEnd(BFRuntimeError):
    kind = "UnmatchedLoopEnd"


class ExcessiveLoopDepth(BFRuntimeError):
    kind = "ExcessiveLoopDepth"


class TapePointerOutOfBounds(BFRuntimeError):
    kind = "TapePointerOutOfBounds"


def build_context(lines: List[str], line: int, column: int, *, context: int = 2) -> str:
    if not lines:
        return ""
    idx = min(max(1, line), len(lines))
    start = max(1, idx - context)
    end = min(len(lines), idx + context)

    out: List[str] = []
    for i in range(start, end + 1):
        marker = ">" if i == idx else " "
        gutter = f"{marker} {i:4d} | "
        text = lines[i - 1]
        out.append(f"{gutter}{text}")
        if i == idx and idx == line:
            # Tabs are copied so the caret lines up however the terminal expands them.
            lead = "".join("\t" if ch == "\t" else " " for ch in text[: max(0, column - 1)])
            out.append(" " * len(gutter) + lead + "^")
    return "\n".join(out)
