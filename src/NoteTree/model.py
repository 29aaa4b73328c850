from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from .list_styles import FONT_NAME, FONT_SIZE_PT, MarkerKind

logger = logging.getLogger(__name__)


class TreeError(Exception):
    """Raised when a node or path cannot be resolved inside a document."""


@dataclass
class BlockLayout:
    """Layout hints that plain markdown cannot carry (see :mod:`NoteTree.metadata`)."""

    space_before: float | None = None
    space_after: float | None = None
    indent: float | None = None
    list_spacing: Tuple[float, float] | None = None
    list_indent: float | None = None
    hanging: bool = False
    extra: dict[str, str] = field(default_factory=dict)

    def is_default(self) -> bool:
        return self == BlockLayout()


@dataclass
class Block:
    """Base class for block-level nodes."""


@dataclass
class InlineElement:
    """Base class for inline nodes."""


@dataclass
class InlineText(InlineElement):
    text: str


@dataclass
class Bold(InlineElement):
    children: List[InlineElement]


@dataclass
class Italic(InlineElement):
    children: List[InlineElement]


@dataclass
class InlineLink(InlineElement):
    text: str
    url: str


@dataclass
class Paragraph(Block):
    inline: List[InlineElement] = field(default_factory=list)
    layout: BlockLayout = field(default_factory=BlockLayout)


@dataclass
class Heading(Block):
    level: int
    inline: List[InlineElement] = field(default_factory=list)
    layout: BlockLayout = field(default_factory=BlockLayout)


@dataclass
class ListItem:
    blocks: List[Block] = field(default_factory=list)


@dataclass
class ListBlock(Block):
    kind: MarkerKind
    items: List[ListItem] = field(default_factory=list)
    layout: BlockLayout = field(default_factory=BlockLayout)


@dataclass
class Document:
    blocks: List[Block] = field(default_factory=list)
    font_family: str = FONT_NAME
    font_size: float = FONT_SIZE_PT
    # Last markdown loaded or saved successfully; not part of the structure.
    last_markdown: str | None = field(default=None, compare=False, repr=False)


TextBlock = Union[Paragraph, Heading]
Container = Union[Document, ListBlock, ListItem]
Node = Union[Block, ListItem]


def children_of(container: Container) -> list:
    if isinstance(container, ListBlock):
        return container.items
    return container.blocks


def index_of(seq: list, node) -> int:
    """Identity-based ``list.index``; -1 when absent."""
    for idx, candidate in enumerate(seq):
        if candidate is node:
            return idx
    return -1


def iter_nodes(container: Container) -> Iterator[tuple[Container, Node]]:
    """Yield ``(parent, node)`` pairs depth-first in document order."""
    for child in children_of(container):
        yield container, child
        if isinstance(child, (ListBlock, ListItem)):
            yield from iter_nodes(child)


def iter_text_blocks(doc: Document) -> Iterator[TextBlock]:
    for _, node in iter_nodes(doc):
        if isinstance(node, (Paragraph, Heading)):
            yield node


def parent_of(doc: Document, node: Node) -> Optional[Container]:
    if index_of(doc.blocks, node) >= 0:
        return doc
    for parent, candidate in iter_nodes(doc):
        if candidate is node:
            return parent
    return None


def sibling_collection_of(doc: Document, node: Node) -> Optional[list]:
    parent = parent_of(doc, node)
    if parent is None:
        return None
    return children_of(parent)


def ancestors_of(doc: Document, node: Node) -> list[Container]:
    """Containers from the document root down to the direct parent of ``node``."""
    chain: list[Container] = []
    current: Node | Container = node
    while True:
        parent = parent_of(doc, current)
        if parent is None:
            break
        chain.append(parent)
        if parent is doc:
            break
        current = parent
    if not chain or chain[-1] is not doc:
        raise TreeError(f"{type(node).__name__} is not part of the document")
    chain.reverse()
    return chain


def nesting_level(doc: Document, list_block: ListBlock) -> int:
    """1 for a top-level list, +1 for every enclosing List→ListItem hop."""
    return 1 + sum(1 for ancestor in ancestors_of(doc, list_block) if isinstance(ancestor, ListBlock))


def insert_before(doc: Document, anchor: Node, node: Node, *, repair: bool = True) -> None:
    _insert(doc, anchor, node, 0, repair)


def insert_after(doc: Document, anchor: Node, node: Node, *, repair: bool = True) -> None:
    _insert(doc, anchor, node, 1, repair)


def _insert(doc: Document, anchor: Node, node: Node, shift: int, repair: bool) -> None:
    siblings = sibling_collection_of(doc, anchor)
    if siblings is None:
        logger.warning("Anchor %s has no parent; appending %s at document end", type(anchor).__name__, type(node).__name__)
        doc.blocks.append(node)
    else:
        siblings.insert(index_of(siblings, anchor) + shift, node)
    if repair:
        normalize(doc)


def remove(doc: Document, node: Node, *, repair: bool = True) -> bool:
    siblings = sibling_collection_of(doc, node)
    if siblings is None:
        logger.warning("Cannot remove %s: not attached to the document", type(node).__name__)
        return False
    del siblings[index_of(siblings, node)]
    if repair:
        normalize(doc)
    return True


def replace(doc: Document, old: Node, new: Node, *, repair: bool = True) -> bool:
    siblings = sibling_collection_of(doc, old)
    if siblings is None:
        logger.warning("Cannot replace %s: not attached; appending replacement", type(old).__name__)
        doc.blocks.append(new)
        if repair:
            normalize(doc)
        return False
    siblings[index_of(siblings, old)] = new
    if repair:
        normalize(doc)
    return True


def normalize(doc: Document) -> int:
    """Repair structural invariants in place and return the number of fixes.

    * every list has at least one item (empty top-level lists become an empty
      paragraph, empty nested lists are dropped);
    * every list item starts with a paragraph;
    * adjacent lists inside one item are merged into the first;
    * the document has at least one block.
    """
    fixes = _repair_blocks(doc.blocks, top_level=True)
    if not doc.blocks:
        doc.blocks.append(Paragraph())
        fixes += 1
    if fixes:
        logger.debug("normalize: repaired %d structural issue(s)", fixes)
    return fixes


def _repair_blocks(blocks: list, top_level: bool) -> int:
    fixes = 0
    idx = 0
    while idx < len(blocks):
        block = blocks[idx]
        if isinstance(block, ListBlock):
            for item in block.items:
                fixes += _repair_item(item)
            if not block.items:
                fixes += 1
                if top_level:
                    blocks[idx] = Paragraph()
                else:
                    del blocks[idx]
                    continue
            elif not top_level and idx > 0 and isinstance(blocks[idx - 1], ListBlock):
                blocks[idx - 1].items.extend(block.items)
                del blocks[idx]
                fixes += 1
                continue
        idx += 1
    return fixes


def _repair_item(item: ListItem) -> int:
    fixes = _repair_blocks(item.blocks, top_level=False)
    if not item.blocks or not isinstance(item.blocks[0], Paragraph):
        item.blocks.insert(0, Paragraph())
        fixes += 1
    return fixes


def is_valid(doc: Document) -> bool:
    """True when every list has items and every item starts with a paragraph."""
    if not doc.blocks:
        return False
    for _, node in iter_nodes(doc):
        if isinstance(node, ListBlock) and not node.items:
            return False
        if isinstance(node, ListItem) and (not node.blocks or not isinstance(node.blocks[0], Paragraph)):
            return False
    return True
