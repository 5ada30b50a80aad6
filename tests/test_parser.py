import pytest

from errors import UnmatchedLoopEnd, UnmatchedLoopStart
from lexer import Lexer
from parser import Parser, split_source_lines


def _parse(text):
    commands = Lexer(text, "<test>").tokenize()
    return Parser(commands, "<test>", split_source_lines(text)).parse()


def test_jump_table_links_partners_both_ways():
    program = _parse("+[>[-]<]")
    # indices: + 0, [ 1, > 2, [ 3, - 4, ] 5, < 6, ] 7
    assert program.jumps == [-1, 7, -1, 5, -1, 3, -1, 1]


def test_lone_close_bracket():
    with pytest.raises(UnmatchedLoopEnd) as info:
        _parse("]")
    assert (info.value.location.line, info.value.location.column) == (1, 1)


def test_first_unmatched_close_is_reported():
    with pytest.raises(UnmatchedLoopEnd) as info:
        _parse("[]\n x ] ]")
    assert (info.value.location.line, info.value.location.column) == (2, 4)


def test_outermost_unclosed_open_is_reported():
    with pytest.raises(UnmatchedLoopStart) as info:
        _parse("+\n[[]\n[")
    loc = info.value.location
    assert (loc.line, loc.column) == (2, 1)
    assert loc.text == "[[]"


def test_deep_unclosed_nesting_fails_at_first_bracket():
    with pytest.raises(UnmatchedLoopStart) as info:
        _parse("[" * 32768)
    assert (info.value.location.line, info.value.location.column) == (1, 1)


def test_error_string_carries_file_and_position():
    with pytest.raises(UnmatchedLoopEnd) as info:
        _parse("  ]")
    assert str(info.value).endswith("at <test>:1:3")


def test_split_source_lines_only_breaks_on_newline():
    assert split_source_lines("a\r\nb\x0bc\n") == ["a", "b\x0bc", ""]
