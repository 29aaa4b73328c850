from NoteTree.inlines import (
    Emphasis,
    Run,
    build,
    flatten,
    has_emphasis,
    insert_text,
    join_inlines,
    set_emphasis,
    split_inlines,
    text_of,
)
from NoteTree.model import Bold, InlineLink, InlineText, Italic, Paragraph


def test_build_nests_italic_inside_bold():
    runs = [Run("a", bold=True), Run("b", bold=True, italic=True), Run("c")]
    assert build(runs) == [Bold([InlineText("a"), Italic([InlineText("b")])]), InlineText("c")]


def test_flatten_and_build_are_inverse_on_canonical_spans():
    spans = [InlineText("see "), Italic([InlineLink("docs", "http://example.com")]), InlineText(".")]
    runs = flatten(spans)
    assert runs == [Run("see "), Run("docs", italic=True, url="http://example.com"), Run(".")]
    assert build(runs) == spans


def test_build_merges_equal_runs_and_trims_emphasis_whitespace():
    assert build([Run("ab"), Run("cd")]) == [InlineText("abcd")]
    assert build([Run("bold ", bold=True), Run("text")]) == [Bold([InlineText("bold")]), InlineText(" text")]
    assert build([Run(" x ", italic=True)]) == [InlineText(" "), Italic([InlineText("x")]), InlineText(" ")]


def test_split_keeps_formatting_on_both_halves():
    spans = [InlineText("hello "), Bold([InlineText("world")])]
    left, right = split_inlines(spans, 8)
    assert left == [InlineText("hello "), Bold([InlineText("wo")])]
    assert right == [Bold([InlineText("rld")])]
    assert split_inlines(spans, 0) == ([], spans)
    assert split_inlines(spans, 99) == (spans, [])


def test_join_and_insert():
    assert join_inlines([InlineText("a")], [InlineText("b")]) == [InlineText("ab")]
    assert insert_text([Bold([InlineText("ab")])], 1, "X") == [Bold([InlineText("aXb")])]
    assert insert_text([Bold([InlineText("ab")])], 2, "\n") == [Bold([InlineText("ab")]), InlineText("\n")]


def test_emphasis_toggling_helpers():
    spans = set_emphasis([InlineText("hello world")], 0, 5, Emphasis.BOLD, True)
    assert spans == [Bold([InlineText("hello")]), InlineText(" world")]
    assert has_emphasis(spans, 0, 5, Emphasis.BOLD)
    assert has_emphasis(spans, 0, 6, Emphasis.BOLD)
    assert not has_emphasis(spans, 0, 7, Emphasis.BOLD)
    assert not has_emphasis(spans, 0, 5, Emphasis.ITALIC)
    assert set_emphasis(spans, 0, 5, Emphasis.BOLD, False) == [InlineText("hello world")]


def test_text_of_paragraph():
    paragraph = Paragraph(inline=[InlineText("a "), Bold([Italic([InlineText("b")])]), InlineLink("c", "u")])
    assert text_of(paragraph) == "a bc"
