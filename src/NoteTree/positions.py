"""Caret positions expressed as index paths into the document tree.

A :class:`Position` never holds a node reference. Its ``path`` alternates
block and item indices from the root, e.g. ``(2, 0, 1, 3, 0)`` is
``doc.blocks[2].items[0].blocks[1].items[3].blocks[0]``, and always ends at a
Paragraph or Heading. ``offset`` counts characters of that block's plain
text.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import List, Tuple

from .inlines import text_of
from .model import (
    Document,
    Heading,
    Paragraph,
    TextBlock,
    TreeError,
    ancestors_of,
    children_of,
    index_of,
    iter_text_blocks,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class Position:
    path: Tuple[int, ...]
    offset: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", tuple(self.path))


@dataclass(frozen=True)
class Selection:
    anchor: Position
    focus: Position

    @property
    def start(self) -> Position:
        return min(self.anchor, self.focus)

    @property
    def end(self) -> Position:
        return max(self.anchor, self.focus)

    @property
    def collapsed(self) -> bool:
        return self.anchor == self.focus


def resolve(doc: Document, path: Tuple[int, ...]):
    node = doc
    for step in path:
        if isinstance(node, (Paragraph, Heading)):
            raise TreeError(f"path {path} descends into a text block")
        children = children_of(node)
        if not 0 <= step < len(children):
            raise TreeError(f"path {path} is out of range at index {step}")
        node = children[step]
    return node


def resolve_block(doc: Document, position: Position) -> TextBlock:
    node = resolve(doc, tuple(position.path))
    if not isinstance(node, (Paragraph, Heading)):
        raise TreeError(f"path {position.path} ends at {type(node).__name__}, not a text block")
    return node


def path_of(doc: Document, block) -> Tuple[int, ...]:
    chain = ancestors_of(doc, block) + [block]
    return tuple(index_of(children_of(parent), child) for parent, child in zip(chain, chain[1:]))


def position_in(doc: Document, block: TextBlock, offset: int) -> Position:
    length = len(text_of(block))
    return Position(path_of(doc, block), min(max(offset, 0), length))


def character_index(doc: Document, position: Position) -> int:
    """Absolute offset of ``position`` with text blocks joined by one newline."""
    target = resolve_block(doc, position)
    total = 0
    for block in iter_text_blocks(doc):
        length = len(text_of(block))
        if block is target:
            return total + min(max(position.offset, 0), length)
        total += length + 1
    raise TreeError("position does not point at a text block of this document")


def position_at(doc: Document, index: int) -> Position:
    blocks = list(iter_text_blocks(doc))
    if not blocks:
        raise TreeError("document has no text blocks")
    remaining = max(index, 0)
    for block in blocks:
        length = len(text_of(block))
        if remaining <= length:
            return Position(path_of(doc, block), remaining)
        remaining -= length + 1
    last = blocks[-1]
    return Position(path_of(doc, last), len(text_of(last)))


def insertion_positions(text: str) -> List[int]:
    """Offsets a caret may stop at; ``\\r\\n`` and combining marks are not split."""
    stops = [0]
    for idx in range(1, len(text) + 1):
        if idx < len(text):
            if text[idx - 1] == "\r" and text[idx] == "\n":
                continue
            if unicodedata.combining(text[idx]):
                continue
        stops.append(idx)
    return stops


def _search_order(tolerance: int) -> List[int]:
    order = [0]
    for delta in range(1, tolerance + 1):
        order.extend((-delta, delta))
    return order


def restore_caret(
    doc: Document,
    block: TextBlock,
    offset: int,
    expected_before: str = "",
    tolerance: int = 2,
) -> Position:
    """Place the caret in ``block`` near ``offset``.

    Insertion positions within ``tolerance`` characters of ``offset`` are
    tried nearest first; the first one whose preceding text equals
    ``expected_before`` wins. Otherwise the offset alone is clamped to the
    closest insertion position at or before it.
    """
    text = text_of(block)
    stops = insertion_positions(text)
    for delta in _search_order(tolerance):
        candidate = offset + delta
        if candidate in stops and text[:candidate] == expected_before:
            return Position(path_of(doc, block), candidate)
    clamped = max((stop for stop in stops if stop <= max(offset, 0)), default=0)
    logger.debug(
        "restore_caret: prefix mismatch near offset %d (expected %r); clamped to %d",
        offset,
        expected_before[-10:],
        clamped,
    )
    return Position(path_of(doc, block), clamped)
