"""List-aware structural editing.

Every command is a small frozen dataclass. :func:`apply_command` resolves the
caret, runs the matching handler against the live tree and works out where
the caret lands afterwards. Handlers return ``None`` (without touching the
tree) when the command does not apply at the caret; the host then falls back
to its default behaviour.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .inlines import Emphasis, has_emphasis, insert_text, join_inlines, set_emphasis, split_inlines, text_of
from .list_styles import MAX_LIST_DEPTH, MarkerKind, effective_marker, marker_family
from .model import (
    BlockLayout,
    Document,
    InlineText,
    ListBlock,
    ListItem,
    Paragraph,
    TextBlock,
    TreeError,
    index_of,
    iter_text_blocks,
    nesting_level,
    normalize,
    parent_of,
)
from .positions import Position, Selection, character_index, path_of, position_at, resolve_block, restore_caret

logger = logging.getLogger(__name__)

CARET_TOLERANCE = 2


@dataclass(frozen=True)
class ContinueList:
    """Split the item at the caret; the tail becomes the next item."""


@dataclass(frozen=True)
class ExitList:
    """Turn the item at the caret into a plain paragraph."""


@dataclass(frozen=True)
class Indent:
    pass


@dataclass(frozen=True)
class Outdent:
    pass


@dataclass(frozen=True)
class MergeWithPrevious:
    pass


@dataclass(frozen=True)
class MergeWithNext:
    pass


@dataclass(frozen=True)
class RemoveListFormatting:
    """Backspace at the start of a first item: drop it if empty, else lift it out."""


@dataclass(frozen=True)
class InsertLineBreak:
    pass


@dataclass(frozen=True)
class ToggleList:
    kind: MarkerKind
    end: Position | None = None


@dataclass(frozen=True)
class ToggleEmphasis:
    kind: Emphasis
    end: Position | None = None


Command = (
    ContinueList
    | ExitList
    | Indent
    | Outdent
    | MergeWithPrevious
    | MergeWithNext
    | RemoveListFormatting
    | InsertLineBreak
    | ToggleList
    | ToggleEmphasis
)


class Key(str, Enum):
    ENTER = "enter"
    SHIFT_ENTER = "shift-enter"
    TAB = "tab"
    SHIFT_TAB = "shift-tab"
    BACKSPACE = "backspace"
    DELETE = "delete"


@dataclass
class CommandResult:
    handled: bool
    document: Document
    position: Position
    message: str = ""


@dataclass
class _Caret:
    block: TextBlock
    offset: int
    # Text expected before the caret; None keeps what preceded it before the edit.
    expected_before: str | None = None


def _caret_at(block: TextBlock, offset: int, expected_before: str | None = None) -> _Caret:
    offset = min(max(offset, 0), len(text_of(block)))
    return _Caret(block, offset, expected_before)


def apply_command(doc: Document, command: Command, position: Position, tolerance: int = CARET_TOLERANCE) -> CommandResult:
    name = type(command).__name__
    handler = _HANDLERS.get(type(command))
    if handler is None:
        return CommandResult(False, doc, position, f"unsupported command {name}")
    try:
        block = resolve_block(doc, position)
        before = character_index(doc, position)
        prefix = text_of(block)[: max(position.offset, 0)]
    except TreeError as exc:
        logger.warning("%s: %s", name, exc)
        return CommandResult(False, doc, position, str(exc))

    snapshot = copy.deepcopy(doc.blocks)
    try:
        caret = handler(doc, command, position, block)
        if caret is None:
            return CommandResult(False, doc, position, f"{name} does not apply here")
        normalize(doc)
        new_position = _place_caret(doc, caret, before, prefix, tolerance)
    except Exception:
        logger.exception("%s failed; restoring the document", name)
        doc.blocks[:] = snapshot
        return CommandResult(False, doc, position, f"{name} failed")
    logger.debug("%s: caret %s -> %s", name, position, new_position)
    return CommandResult(True, doc, new_position)


def _place_caret(doc: Document, caret: _Caret, before: int, prefix: str, tolerance: int) -> Position:
    try:
        path_of(doc, caret.block)
    except TreeError:
        logger.debug("Caret block left the document; falling back to character index %d", before)
        return position_at(doc, before)
    expected = prefix if caret.expected_before is None else caret.expected_before
    return restore_caret(doc, caret.block, caret.offset, expected, tolerance)


def _item_context(doc: Document, block: TextBlock) -> Optional[Tuple[ListItem, ListBlock]]:
    """The item and list of ``block`` when it is the first paragraph of an item."""
    item = parent_of(doc, block)
    if not isinstance(item, ListItem) or not item.blocks or item.blocks[0] is not block:
        return None
    list_block = parent_of(doc, item)
    if not isinstance(list_block, ListBlock):
        return None
    return item, list_block


def relevel(list_block: ListBlock, old_level: int, new_level: int) -> None:
    """Move ``list_block`` (and lists nested in it) from one nesting level to another.

    Lists showing the automatic marker for their level get the automatic
    marker of the new level; explicitly chosen kinds are left alone.
    """
    family = marker_family(list_block.kind)
    if list_block.kind == effective_marker(family, old_level):
        list_block.kind = effective_marker(family, new_level)
    for item in list_block.items:
        for child in item.blocks:
            if isinstance(child, ListBlock):
                relevel(child, old_level + 1, new_level + 1)


def _depth_below(item: ListItem) -> int:
    """Number of list levels nested under ``item``."""
    depth = 0
    for child in item.blocks:
        if isinstance(child, ListBlock):
            depth = max(depth, 1 + max((_depth_below(grandchild) for grandchild in child.items), default=0))
    return depth


def _trailing_list(item: ListItem) -> ListBlock | None:
    if len(item.blocks) > 1 and isinstance(item.blocks[-1], ListBlock):
        return item.blocks[-1]
    return None


# -- continue / exit -------------------------------------------------------


def _continue_list(doc: Document, command: ContinueList, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    left, right = split_inlines(block.inline, position.offset)
    block.inline = left
    new_item = ListItem([Paragraph(inline=right)] + item.blocks[1:])
    del item.blocks[1:]
    list_block.items.insert(index_of(list_block.items, item) + 1, new_item)
    logger.debug("continue: split item at offset %d", position.offset)
    return _Caret(new_item.blocks[0], 0, "")


def _exit_list(doc: Document, command: ExitList, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    if nesting_level(doc, list_block) > 1:
        return _outdent_item(doc, item, list_block, position.offset)
    if index_of(list_block.items, item) == 0 and not text_of(block).strip() and len(item.blocks) == 1:
        list_index = index_of(doc.blocks, list_block)
        previous = doc.blocks[list_index - 1] if list_index > 0 else None
        if isinstance(previous, Paragraph) and text_of(previous):
            del list_block.items[0]
            if not list_block.items:
                del doc.blocks[list_index]
            logger.debug("exit: dropped empty first item; caret to preceding paragraph")
            text = text_of(previous)
            return _Caret(previous, len(text), text)
    return _lift_item(doc, item, list_block, position.offset)


def _lift_item(doc: Document, item: ListItem, list_block: ListBlock, offset: int) -> _Caret:
    """Replace a top-level item by its blocks, splitting the list around them."""
    list_index = index_of(doc.blocks, list_block)
    if list_index < 0:
        raise TreeError("only items of top-level lists can be lifted")
    item_index = index_of(list_block.items, item)
    head = list_block.items[:item_index]
    tail = list_block.items[item_index + 1 :]
    paragraph = item.blocks[0]
    extras = item.blocks[1:]
    for extra in extras:
        if isinstance(extra, ListBlock):
            relevel(extra, 2, 1)

    replacement: list = []
    if head:
        list_block.items[:] = head
        replacement.append(list_block)
    replacement.append(paragraph)
    replacement.extend(extras)
    if tail:
        replacement.append(ListBlock(kind=list_block.kind, items=tail, layout=copy.deepcopy(list_block.layout)))
    doc.blocks[list_index : list_index + 1] = replacement
    logger.debug("lift: item %d of %d became a paragraph", item_index, len(head) + len(tail) + 1)
    return _caret_at(paragraph, offset)


# -- indent / outdent ------------------------------------------------------


def _indent(doc: Document, command: Indent, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    level = nesting_level(doc, list_block)
    if level + 1 + _depth_below(item) > MAX_LIST_DEPTH:
        logger.debug("indent: level %d is the deepest list level", MAX_LIST_DEPTH)
        return None
    item_index = index_of(list_block.items, item)
    if item_index == 0:
        list_block.items.insert(0, ListItem([Paragraph()]))
        item_index = 1
    previous = list_block.items[item_index - 1]
    nested = _trailing_list(previous)
    if nested is None:
        nested = ListBlock(kind=effective_marker(marker_family(list_block.kind), level + 1))
        previous.blocks.append(nested)
    del list_block.items[item_index]
    nested.items.append(item)
    for child in item.blocks[1:]:
        if isinstance(child, ListBlock):
            relevel(child, level + 1, level + 2)
    logger.debug("indent: moved item to level %d", level + 1)
    return _caret_at(block, position.offset)


def _outdent(doc: Document, command: Outdent, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    return _outdent_item(doc, item, list_block, position.offset)


def _outdent_item(doc: Document, item: ListItem, list_block: ListBlock, offset: int) -> _Caret:
    level = nesting_level(doc, list_block)
    if level == 1:
        return _lift_item(doc, item, list_block, offset)
    parent_item = parent_of(doc, list_block)
    grand_list = parent_of(doc, parent_item)
    if not isinstance(parent_item, ListItem) or not isinstance(grand_list, ListBlock):
        raise TreeError("nested list is not inside a list item")

    item_index = index_of(list_block.items, item)
    followers = list_block.items[item_index + 1 :]
    del list_block.items[item_index:]
    for child in item.blocks[1:]:
        if isinstance(child, ListBlock):
            relevel(child, level + 1, level)
    if followers:
        own = _trailing_list(item)
        if own is None:
            own = ListBlock(kind=list_block.kind)
            item.blocks.append(own)
        own.items.extend(followers)
    if not list_block.items:
        del parent_item.blocks[index_of(parent_item.blocks, list_block)]

    grand_list.items.insert(index_of(grand_list.items, parent_item) + 1, item)
    hollow = not parent_item.blocks or (
        len(parent_item.blocks) == 1
        and isinstance(parent_item.blocks[0], Paragraph)
        and not text_of(parent_item.blocks[0])
    )
    if hollow:
        del grand_list.items[index_of(grand_list.items, parent_item)]
    logger.debug("outdent: moved item to level %d (%d follower(s) adopted)", level - 1, len(followers))
    return _caret_at(item.blocks[0], offset)


# -- merging ---------------------------------------------------------------


def _join_paragraphs(target: TextBlock, source: TextBlock) -> str:
    """Append ``source``'s content to ``target`` and return the text before the seam."""
    left, right = text_of(target), text_of(source)
    separator = " " if left and right and not left[-1].isspace() and not right[0].isspace() else ""
    target.inline = join_inlines(target.inline, [InlineText(separator)], source.inline)
    return left + separator


def _merge_items(survivor: ListItem, absorbed: ListItem) -> str:
    head = _join_paragraphs(survivor.blocks[0], absorbed.blocks[0])
    for child in absorbed.blocks[1:]:
        trailing = _trailing_list(survivor)
        if isinstance(child, ListBlock) and trailing is not None:
            trailing.items.extend(child.items)
        else:
            survivor.blocks.append(child)
    del absorbed.blocks[:]
    return head


def _merge_with_previous(doc: Document, command: MergeWithPrevious, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    item_index = index_of(list_block.items, item)
    if item_index == 0:
        return None
    survivor = list_block.items[item_index - 1]
    head = _merge_items(survivor, item)
    del list_block.items[item_index]
    logger.debug("merge: item %d joined the previous item", item_index)
    return _caret_at(survivor.blocks[0], len(head), head)


def _merge_with_next(doc: Document, command: MergeWithNext, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    text = text_of(block)
    end = len(text)
    item_index = index_of(list_block.items, item)
    if item_index + 1 < len(list_block.items):
        _merge_items(item, list_block.items[item_index + 1])
        del list_block.items[item_index + 1]
        logger.debug("merge: next item joined item %d", item_index)
        return _caret_at(block, end, text)
    list_index = index_of(doc.blocks, list_block)
    if list_index < 0 or list_index + 1 >= len(doc.blocks):
        return None
    following = doc.blocks[list_index + 1]
    if not isinstance(following, Paragraph):
        return None
    _join_paragraphs(block, following)
    del doc.blocks[list_index + 1]
    logger.debug("merge: paragraph after the list joined its last item")
    return _caret_at(block, end, text)


def _remove_list_formatting(doc: Document, command: RemoveListFormatting, position: Position, block: TextBlock) -> _Caret | None:
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    if nesting_level(doc, list_block) > 1:
        return _outdent_item(doc, item, list_block, position.offset)
    if not text_of(block).strip() and len(item.blocks) == 1 and len(list_block.items) > 1:
        item_index = index_of(list_block.items, item)
        del list_block.items[item_index]
        following = list_block.items[min(item_index, len(list_block.items) - 1)]
        return _caret_at(following.blocks[0], 0, "")
    return _lift_item(doc, item, list_block, position.offset)


def _insert_line_break(doc: Document, command: InsertLineBreak, position: Position, block: TextBlock) -> _Caret | None:
    if not isinstance(block, Paragraph):
        return None
    text = text_of(block)
    offset = min(max(position.offset, 0), len(text))
    block.inline = insert_text(block.inline, offset, "\n")
    return _caret_at(block, offset + 1, text[:offset] + "\n")


# -- toggles ---------------------------------------------------------------


def _blocks_between(doc: Document, start: Position, end: Position) -> List[TextBlock]:
    low, high = tuple(start.path), tuple(end.path)
    return [block for block in iter_text_blocks(doc) if low <= path_of(doc, block) <= high]


def _list_paragraphs(doc: Document, start: Position, end: Position) -> List[Paragraph]:
    """Paragraphs in range that are top-level or the first paragraph of an item."""
    chosen: List[Paragraph] = []
    for block in _blocks_between(doc, start, end):
        if not isinstance(block, Paragraph):
            continue
        if index_of(doc.blocks, block) >= 0 or _item_context(doc, block) is not None:
            chosen.append(block)
    return chosen


def _unlist(doc: Document, paragraph: Paragraph) -> None:
    context = _item_context(doc, paragraph)
    while context is not None:
        item, list_block = context
        _outdent_item(doc, item, list_block, 0)
        context = _item_context(doc, paragraph)


def _wrap_runs(doc: Document, paragraphs: List[Paragraph], kind: MarkerKind) -> int:
    positions = sorted(index_of(doc.blocks, paragraph) for paragraph in paragraphs)
    runs: List[List[int]] = []
    for index in positions:
        if index < 0:
            continue
        if runs and runs[-1][-1] == index - 1:
            runs[-1].append(index)
        else:
            runs.append([index])
    for run in reversed(runs):
        items = []
        for index in run:
            paragraph = doc.blocks[index]
            paragraph.layout = BlockLayout()
            items.append(ListItem([paragraph]))
        new_list = ListBlock(kind=effective_marker(kind, 1), items=items, layout=BlockLayout(hanging=True))
        doc.blocks[run[0] : run[-1] + 1] = [new_list]
    return len(runs)


def _toggle_list(doc: Document, command: ToggleList, position: Position, block: TextBlock) -> _Caret | None:
    try:
        selection = Selection(position, command.end or position)
        resolve_block(doc, selection.end)
    except TreeError as exc:
        logger.warning("toggle list: %s", exc)
        return None
    paragraphs = _list_paragraphs(doc, selection.start, selection.end)
    if not paragraphs:
        return None

    target: List[Paragraph] = []
    other: List[Paragraph] = []
    plain: List[Paragraph] = []
    for paragraph in paragraphs:
        context = _item_context(doc, paragraph)
        if context is None:
            plain.append(paragraph)
        elif context[1].kind == effective_marker(command.kind, nesting_level(doc, context[1])):
            target.append(paragraph)
        else:
            other.append(paragraph)

    if (not other and not plain) or len(target) > len(other) + len(plain):
        for paragraph in target + other:
            _unlist(doc, paragraph)
        logger.debug("toggle list: stripped %d item(s)", len(target) + len(other))
    elif len(target) + len(other) < len(plain):
        for paragraph in target + other:
            _unlist(doc, paragraph)
        runs = _wrap_runs(doc, paragraphs, command.kind)
        logger.debug("toggle list: wrapped %d paragraph(s) into %d list(s)", len(paragraphs), runs)
    else:
        converted = 0
        for paragraph in other:
            list_block = _item_context(doc, paragraph)[1]
            wanted = effective_marker(command.kind, nesting_level(doc, list_block))
            if list_block.kind != wanted:
                list_block.kind = wanted
                converted += 1
        runs = _wrap_runs(doc, plain, command.kind)
        logger.debug("toggle list: converted %d list(s), wrapped %d run(s)", converted, runs)
    return _caret_at(block, position.offset)


def _toggle_emphasis(doc: Document, command: ToggleEmphasis, position: Position, block: TextBlock) -> _Caret | None:
    if command.end is None or command.end == position:
        return None
    try:
        selection = Selection(position, command.end)
        first = resolve_block(doc, selection.start)
        last = resolve_block(doc, selection.end)
    except TreeError as exc:
        logger.warning("toggle emphasis: %s", exc)
        return None
    segments = []
    for candidate in _blocks_between(doc, selection.start, selection.end):
        length = len(text_of(candidate))
        start = selection.start.offset if candidate is first else 0
        end = selection.end.offset if candidate is last else length
        start, end = max(start, 0), min(end, length)
        if start < end:
            segments.append((candidate, start, end))
    if not segments:
        return None
    enable = not all(has_emphasis(b.inline, s, e, command.kind) for b, s, e in segments)
    for candidate, start, end in segments:
        candidate.inline = set_emphasis(candidate.inline, start, end, command.kind, enable)
    logger.debug("toggle %s: %s over %d block(s)", command.kind.value, "on" if enable else "off", len(segments))
    return _caret_at(block, position.offset)


_HANDLERS: Dict[type, Callable[..., Optional[_Caret]]] = {
    ContinueList: _continue_list,
    ExitList: _exit_list,
    Indent: _indent,
    Outdent: _outdent,
    MergeWithPrevious: _merge_with_previous,
    MergeWithNext: _merge_with_next,
    RemoveListFormatting: _remove_list_formatting,
    InsertLineBreak: _insert_line_break,
    ToggleList: _toggle_list,
    ToggleEmphasis: _toggle_emphasis,
}


# -- key dispatch ----------------------------------------------------------


def command_for_key(doc: Document, key: Key | str, position: Position) -> Command | None:
    """Map a key press at ``position`` to a command, or None when lists do not care."""
    key = Key(key)
    try:
        block = resolve_block(doc, position)
    except TreeError:
        return None
    if key is Key.SHIFT_ENTER:
        return InsertLineBreak() if isinstance(block, Paragraph) else None
    context = _item_context(doc, block)
    if context is None:
        return None
    item, list_block = context
    text = text_of(block)
    if key is Key.ENTER:
        return ContinueList() if text.strip() else ExitList()
    if key is Key.TAB:
        return Indent()
    if key is Key.SHIFT_TAB:
        return Outdent()
    if key is Key.BACKSPACE:
        if position.offset != 0:
            return None
        if index_of(list_block.items, item) > 0:
            return MergeWithPrevious()
        if nesting_level(doc, list_block) > 1:
            return Outdent()
        return RemoveListFormatting()
    if key is Key.DELETE:
        if text[max(position.offset, 0) :].strip():
            return None
        return MergeWithNext()
    return None


def press_key(doc: Document, key: Key | str, position: Position, tolerance: int = CARET_TOLERANCE) -> CommandResult:
    try:
        key = Key(key)
    except ValueError:
        logger.warning("Unknown key %r", key)
        return CommandResult(False, doc, position, f"unknown key {key!r}")
    command = command_for_key(doc, key, position)
    if command is None:
        return CommandResult(False, doc, position, f"{key.value} not handled")
    return apply_command(doc, command, position, tolerance)
