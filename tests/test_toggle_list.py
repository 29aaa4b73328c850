from NoteTree.inlines import Emphasis
from NoteTree.list_editing import ToggleEmphasis, ToggleList, apply_command
from NoteTree.list_styles import MarkerKind
from NoteTree.markdown_parser import parse_markdown
from NoteTree.model import Bold, Document, InlineText, ListBlock, ListItem, Paragraph
from NoteTree.positions import Position


def _para(text: str) -> Paragraph:
    return Paragraph(inline=[InlineText(text)] if text else [])


def _item(text: str, *nested) -> ListItem:
    return ListItem(blocks=[_para(text), *nested])


def test_mixed_selection_becomes_one_list():
    doc = parse_markdown("- one\n\ntwo\n\nthree\n\nfour\n")
    result = apply_command(doc, ToggleList(MarkerKind.BULLET, end=Position((3,), 4)), Position((0, 0, 0), 0))
    assert result.handled
    assert len(doc.blocks) == 1
    list_block = doc.blocks[0]
    assert list_block.kind == MarkerKind.BULLET
    assert [item.blocks for item in list_block.items] == [[_para(t)] for t in ("one", "two", "three", "four")]
    assert list_block.layout.hanging
    assert result.position == Position((0, 0, 0), 0)


def test_toggle_on_plain_paragraph():
    doc = Document(blocks=[_para("solo")])
    result = apply_command(doc, ToggleList(MarkerKind.DECIMAL), Position((0,), 2))
    assert doc.blocks[0].kind == MarkerKind.DECIMAL
    assert doc.blocks[0].items == [_item("solo")]
    assert result.position == Position((0, 0, 0), 2)


def test_toggle_strips_list_when_all_items_match():
    doc = Document(blocks=[ListBlock(kind=MarkerKind.BULLET, items=[_item("a"), _item("b")])])
    result = apply_command(doc, ToggleList(MarkerKind.BULLET, end=Position((0, 1, 0), 1)), Position((0, 0, 0), 0))
    assert doc.blocks == [_para("a"), _para("b")]
    assert result.position == Position((0,), 0)


def test_toggle_converts_other_kind():
    doc = Document(blocks=[ListBlock(kind=MarkerKind.BULLET, items=[_item("a"), _item("b")])])
    apply_command(doc, ToggleList(MarkerKind.DECIMAL, end=Position((0, 1, 0), 1)), Position((0, 0, 0), 0))
    assert doc.blocks == [ListBlock(kind=MarkerKind.DECIMAL, items=[_item("a"), _item("b")])]


def test_nested_item_matches_by_level_marker():
    nested = ListBlock(kind=MarkerKind.CIRCLE, items=[_item("x")])
    doc = Document(blocks=[ListBlock(kind=MarkerKind.BULLET, items=[_item("a", nested)])])
    apply_command(doc, ToggleList(MarkerKind.BULLET), Position((0, 0, 1, 0, 0), 0))
    assert doc.blocks == [ListBlock(kind=MarkerKind.BULLET, items=[_item("a")]), _para("x")]


def test_toggle_emphasis_on_and_off():
    doc = Document(blocks=[_para("hello world")])
    command = ToggleEmphasis(Emphasis.BOLD, end=Position((0,), 5))
    apply_command(doc, command, Position((0,), 0))
    assert doc.blocks[0].inline == [Bold([InlineText("hello")]), InlineText(" world")]
    apply_command(doc, command, Position((0,), 0))
    assert doc.blocks[0].inline == [InlineText("hello world")]


def test_toggle_emphasis_needs_a_range():
    doc = Document(blocks=[_para("hello")])
    result = apply_command(doc, ToggleEmphasis(Emphasis.ITALIC), Position((0,), 2))
    assert not result.handled
    assert doc.blocks == [_para("hello")]


def test_toggle_emphasis_across_blocks():
    doc = Document(blocks=[_para("ab"), ListBlock(kind=MarkerKind.BULLET, items=[_item("cd")])])
    apply_command(doc, ToggleEmphasis(Emphasis.BOLD, end=Position((1, 0, 0), 1)), Position((0,), 1))
    assert doc.blocks[0].inline == [InlineText("a"), Bold([InlineText("b")])]
    assert doc.blocks[1].items[0].blocks[0].inline == [Bold([InlineText("c")]), InlineText("d")]
