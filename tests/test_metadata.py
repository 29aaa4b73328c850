import logging
import textwrap

import pytest

from NoteTree.list_styles import MarkerKind
from NoteTree.metadata import (
    MetadataError,
    apply_metadata,
    extract_metadata_comments,
    format_metadata_comment,
    is_metadata_comment,
    metadata_tokens,
    parse_metadata,
)
from NoteTree.model import BlockLayout, ListBlock, ListItem, Paragraph


def test_parse_metadata_pairs_and_flags():
    assert parse_metadata("space-before:20 hanging color:red") == {
        "space-before": "20",
        "hanging": "true",
        "color": "red",
    }
    assert parse_metadata("") == {}
    with pytest.raises(MetadataError):
        parse_metadata(":5")


def test_is_metadata_comment():
    assert is_metadata_comment("  <!-- nm:indent:4 -->  ")
    assert is_metadata_comment("<!-- nm: -->")
    assert not is_metadata_comment("<!-- note -->")


def test_extract_indexes_by_following_content_line(caplog):
    markdown = textwrap.dedent(
        """\
        <!-- nm:space-before:20 -->
        First

        <!-- nm:: -->
        <!-- nm:hanging -->
        - item
        """
    )
    with caplog.at_level(logging.WARNING):
        lines, metadata = extract_metadata_comments(markdown)
    assert lines == ["First", "", "- item", ""]
    assert metadata == {1: {"space-before": "20"}, 2: {"hanging": "true"}}
    assert "Skipping metadata comment on line 4" in caplog.text


def test_apply_metadata_to_paragraph():
    paragraph = Paragraph()
    apply_metadata(paragraph, {"space-before": "20", "indent": "1.5", "color": "red"})
    assert paragraph.layout == BlockLayout(space_before=20.0, indent=1.5, extra={"color": "red"})


def test_apply_metadata_to_list():
    list_block = ListBlock(kind=MarkerKind.BULLET, items=[ListItem([Paragraph()])])
    apply_metadata(list_block, {"list-spacing": "4,8", "list-indent": "12", "hanging": "true"})
    assert list_block.layout.list_spacing == (4.0, 8.0)
    assert list_block.layout.list_indent == 12.0
    assert list_block.layout.hanging
    apply_metadata(list_block, {"hanging": "false"})
    assert not list_block.layout.hanging


def test_apply_metadata_ignores_bad_numbers(caplog):
    paragraph = Paragraph()
    with caplog.at_level(logging.WARNING):
        apply_metadata(paragraph, {"space-after": "lots"})
    assert paragraph.layout.is_default()
    assert "Ignoring metadata space-after:lots" in caplog.text


def test_tokens_and_comment_format():
    paragraph = Paragraph(layout=BlockLayout(space_before=20.0, extra={"color": "red", "keep": "true"}))
    assert metadata_tokens(paragraph) == ["space-before:20", "color:red", "keep"]
    assert format_metadata_comment(["space-before:20", "color:red"]) == "<!-- nm:space-before:20 color:red -->"
    assert format_metadata_comment([]) == "<!-- nm: -->"

    list_block = ListBlock(
        kind=MarkerKind.DECIMAL,
        items=[],
        layout=BlockLayout(list_spacing=(4.0, 8.5), list_indent=12.0, hanging=True),
    )
    assert metadata_tokens(list_block) == ["list-spacing:4,8.5", "list-indent:12", "hanging"]
