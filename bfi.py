"""bfi entry point and REPL wiring."""

from __future__ import annotations
import argparse
import os
import sys
from typing import List, Optional

from errors import BFRuntimeError, SourceReadFailure
from interpreter import Interpreter, MachineState, TracebackFormatter


def read_source(path: str) -> str:
    if not os.path.exists(path):
        raise SourceReadFailure(path, "path does not exist")
    if not os.path.isfile(path):
        raise SourceReadFailure(path, "target is not a file")
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceReadFailure(path, str(exc)) from exc


def _needs_more(buffer: List[str]) -> bool:
    text = "\n".join(buffer)
    return text.count("[") > text.count("]")


def run_repl(verbose: bool, skip_newlines: bool = False) -> int:
    print("\x1b[38;2;153;221;255mbfi\033[0m REPL. Enter commands, blank line to flush an open loop.") # "bfi" in light blue
    had_output = False
    def _output_sink(text: str) -> None:
        nonlocal had_output
        had_output = True
        sys.stdout.write(text)
        sys.stdout.flush()

    # One tape for the whole session; each chunk gets its own Interpreter.
    state = MachineState()
    buffer: List[str] = []

    while True:
        prompt = "\x1b[38;2;153;221;255m>>>\033[0m " if not buffer else "\x1b[38;2;153;221;255m..>\033[0m " # light blue
        if had_output:
            # Ensure prompt starts on a fresh line if the program printed anything
            print()
            had_output = False
        try:
            line = input(prompt)
        except EOFError:
            print()
            break

        if line.strip() != "":
            buffer.append(line)
            if _needs_more(buffer):
                continue
        elif not buffer:
            continue

        source_text = "\n".join(buffer)
        buffer.clear()
        interpreter = Interpreter(
            source=source_text,
            filename="<repl>",
            verbose=verbose,
            output_sink=_output_sink,
            skip_newlines=skip_newlines,
        )
        try:
            interpreter.run(state)
        except BFRuntimeError as error:
            formatter = TracebackFormatter(interpreter)
            print(formatter.format_text(error, verbose=verbose), file=sys.stderr)

    return 0


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Tape-machine interpreter for the eight-command language")
    parser.add_argument("program", nargs="?", help="Source file path or literal source with -source")
    parser.add_argument("-source", "--source", dest="source_mode", action="store_true", help="Treat program argument as literal source text")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Emit tape window and recent steps in diagnostics")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON diagnostic")
    parser.add_argument("--skip-newlines", action="store_true", help="Make ',' ignore newline characters on input")
    args = parser.parse_args(argv)

    if args.program is None:
        if args.source_mode:
            print("-source requires a program string", file=sys.stderr)
            return 1
        return run_repl(verbose=args.verbose, skip_newlines=args.skip_newlines)

    if args.source_mode:
        source_text = args.program
        filename = "<string>"
    else:
        filename = args.program
        try:
            source_text = read_source(filename)
        except SourceReadFailure as error:
            print(f"{error.kind}: {error}", file=sys.stderr)
            return 1

    interpreter = Interpreter(
        source=source_text,
        filename=filename,
        verbose=args.verbose,
        skip_newlines=args.skip_newlines,
    )
    try:
        interpreter.run()
    except BFRuntimeError as error:
        formatter = TracebackFormatter(interpreter)
        # Program output may not end with a newline; keep the report on its own line.
        sys.stdout.flush()
        print(file=sys.stderr)
        print(formatter.format_text(error, verbose=args.verbose), file=sys.stderr)
        if args.traceback_json:
            print(formatter.to_json(error), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(run_cli())
