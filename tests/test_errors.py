from errors import build_context


def test_caret_under_column():
    text = build_context(["ab+"], 1, 3)
    assert text.splitlines() == [
        ">    1 | ab+",
        " " * 11 + "^",
    ]


def test_caret_follows_wide_line_numbers():
    lines = ["x"] * 10001 + ["  ]"]
    out = build_context(lines, 10002, 3).splitlines()
    source_line = next(l for l in out if l.startswith(">"))
    caret_line = out[out.index(source_line) + 1]
    assert source_line == "> 10002 |   ]"
    assert caret_line.index("^") == source_line.index("]")


def test_caret_keeps_tabs_from_source():
    out = build_context(["\t\t["], 1, 3).splitlines()
    assert out[1] == " " * len(">    1 | ") + "\t\t^"


def test_context_window_and_out_of_range_line():
    lines = ["a", "b", "c", "d", "e"]
    out = build_context(lines, 3, 1).splitlines()
    assert [l[:6] for l in out if "|" in l] == ["     1", "     2", ">    3", "     4", "     5"]
    assert build_context([], 1, 1) == ""
    assert "^" not in build_context(lines, 9, 1)
