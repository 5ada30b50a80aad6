import io
import json

import pytest

import bfi
from errors import SourceReadFailure


def test_runs_program_file(tmp_path, capsys):
    path = tmp_path / "hello.bf"
    path.write_text("print A: " + "+" * 65 + ".", encoding="utf-8")
    assert bfi.run_cli([str(path)]) == 0
    assert capsys.readouterr().out == "A"


def test_literal_source_mode(capsys):
    assert bfi.run_cli(["-source", "+" * 66 + "."]) == 0
    assert capsys.readouterr().out == "B"


def test_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("hi"))
    assert bfi.run_cli(["-source", ",[.,]"]) == 0
    assert capsys.readouterr().out == "hi"


def test_skip_newlines_flag(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("\nq"))
    assert bfi.run_cli(["--skip-newlines", "-source", ",."]) == 0
    assert capsys.readouterr().out == "q"


def test_fatal_error_exit_status_and_report(capsys):
    assert bfi.run_cli(["-source", "+.\n]"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    last = captured.err.strip().splitlines()[-1]
    assert last.startswith("UnmatchedLoopEnd: ")
    assert last.endswith("(line 2, column 1)")


def test_runtime_error_after_output(capsys):
    assert bfi.run_cli(["-source", "+" * 72 + ".<"]) == 1
    captured = capsys.readouterr()
    assert captured.out == "H"
    assert "TapePointerOutOfBounds" in captured.err
    assert "(line 1, column 74)" in captured.err


def test_traceback_json(capsys):
    assert bfi.run_cli(["--traceback-json", "-source", "<"]) == 1
    err = capsys.readouterr().err
    payload = json.loads(err[err.index("{"):])
    assert payload["error"]["type"] == "TapePointerOutOfBounds"
    assert payload["error"]["source_location"]["column"] == 1


def test_missing_file(tmp_path, capsys):
    assert bfi.run_cli([str(tmp_path / "nope.bf")]) == 1
    err = capsys.readouterr().err
    assert err.startswith("SourceReadFailure: ")
    assert "path does not exist" in err


def test_directory_is_not_a_file(tmp_path):
    with pytest.raises(SourceReadFailure) as info:
        bfi.read_source(str(tmp_path))
    assert info.value.reason == "target is not a file"


def test_undecodable_file(tmp_path):
    path = tmp_path / "bad.bf"
    path.write_bytes(b"+\xff\xfe")
    with pytest.raises(SourceReadFailure):
        bfi.read_source(str(path))


def test_source_flag_needs_program(capsys):
    assert bfi.run_cli(["-source"]) == 1
    assert "-source requires a program string" in capsys.readouterr().err


def test_repl_keeps_tape_between_chunks(monkeypatch, capsys):
    lines = iter(["+" * 67, ".", "[", ">+<-", "]", ">.", "]", ""])

    def fake_input(prompt=""):
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)
    assert bfi.run_cli([]) == 0
    captured = capsys.readouterr()
    assert "CC" in captured.out.replace("\n", "")
    assert "UnmatchedLoopEnd" in captured.err


def test_repl_blank_line_flushes_open_loop(monkeypatch, capsys):
    lines = iter(["+[", ""])

    def fake_input(prompt=""):
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)
    assert bfi.run_cli([]) == 0
    assert "UnmatchedLoopStart" in capsys.readouterr().err
