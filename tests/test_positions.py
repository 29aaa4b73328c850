import logging

import pytest

from NoteTree.list_styles import MarkerKind
from NoteTree.model import Document, InlineText, ListBlock, ListItem, Paragraph, TreeError
from NoteTree.positions import (
    Position,
    Selection,
    character_index,
    insertion_positions,
    path_of,
    position_at,
    position_in,
    resolve_block,
    restore_caret,
)


def _para(text: str) -> Paragraph:
    return Paragraph(inline=[InlineText(text)] if text else [])


@pytest.fixture
def doc() -> Document:
    nested = ListBlock(kind=MarkerKind.CIRCLE, items=[ListItem([_para("ef")])])
    top = ListBlock(kind=MarkerKind.BULLET, items=[ListItem([_para("cd"), nested])])
    return Document(blocks=[_para("ab"), top, _para("g")])


def test_paths_resolve_to_text_blocks(doc):
    deep = doc.blocks[1].items[0].blocks[1].items[0].blocks[0]
    assert path_of(doc, deep) == (1, 0, 1, 0, 0)
    assert resolve_block(doc, Position((1, 0, 1, 0, 0), 1)) is deep
    assert position_in(doc, deep, 10) == Position((1, 0, 1, 0, 0), 2)
    with pytest.raises(TreeError):
        resolve_block(doc, Position((1,), 0))
    with pytest.raises(TreeError):
        resolve_block(doc, Position((5,), 0))


def test_character_index_round_trip(doc):
    assert character_index(doc, Position((1, 0, 0), 1)) == 4
    assert position_at(doc, 4) == Position((1, 0, 0), 1)
    assert position_at(doc, 3) == Position((1, 0, 0), 0)
    assert position_at(doc, 2) == Position((0,), 2)
    assert position_at(doc, 100) == Position((2,), 1)
    assert position_at(doc, -5) == Position((0,), 0)


def test_selection_orders_endpoints():
    later = Position((2,), 0)
    earlier = Position([0], 1)
    selection = Selection(later, earlier)
    assert selection.start == Position((0,), 1)
    assert selection.end == later
    assert not selection.collapsed


def test_insertion_positions_skip_inside_clusters():
    assert insertion_positions("abc") == [0, 1, 2, 3]
    assert insertion_positions("a\r\nb") == [0, 1, 3, 4]
    assert insertion_positions("e\u0301x") == [0, 2, 3]


def test_restore_caret_accepts_small_drift(doc):
    block = _para("hello world")
    doc.blocks.append(block)
    assert restore_caret(doc, block, 6, "hello ") == Position((3,), 6)
    assert restore_caret(doc, block, 6, "hello w") == Position((3,), 7)


def test_restore_caret_falls_back_to_offset(doc, caplog):
    block = doc.blocks[0]
    with caplog.at_level(logging.DEBUG, logger="NoteTree.positions"):
        position = restore_caret(doc, block, 50, "something else")
    assert position == Position((0,), 2)
    assert "prefix mismatch" in caplog.text
