"""Serialize a :class:`~NoteTree.model.Document` back to markdown.

The output is the dialect :func:`NoteTree.markdown_parser.parse_markdown`
reads: two spaces per list level, concrete markers (``a.``, ``iv.``, ``○``)
and ``<!-- nm:... -->`` comments for layout.
"""

from __future__ import annotations

import logging
import re
import string
from typing import List

from .inlines import Run, build, flatten, normalize_inlines, text_of
from .list_styles import (
    GLYPH_KINDS,
    MAX_HEADING_LEVEL,
    NESTED_INDENT_SPACES,
    effective_marker,
    format_marker,
)
from .metadata import format_metadata_comment, metadata_tokens
from .model import Block, Document, Heading, ListBlock, ListItem, Paragraph

logger = logging.getLogger(__name__)

_INLINE_SPECIAL = set("\\`*_[]<>&")
_ASCII_PUNCTUATION = set(string.punctuation)
# ASCII glyphs are covered by the bullet check and by escaping.
_ENTITY_GLYPHS = {glyph for glyph in GLYPH_KINDS if not glyph.isascii()}
_AUTOLINK_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*$")
_BULLET_START_RE = re.compile(r"^[-+](?: |$)")
_RULE_RE = re.compile(r"^[-=+ ]+$")
_NUMBER_START_RE = re.compile(r"^(\d{1,9})([.)])(?: |$)")
_LETTER_START_RE = re.compile(r"^([A-Za-z]|[ivxlcdm]+|[IVXLCDM]+)([.)])(?: |$)")


def render_markdown(doc: Document) -> str:
    lines: List[str] = []
    previous: Block | None = None
    for block in doc.blocks:
        if _is_blank_paragraph(block):
            lines.append("")
            continue
        if previous is not None:
            lines.append("")
        tokens = metadata_tokens(block)
        if tokens or (isinstance(block, ListBlock) and isinstance(previous, ListBlock)):
            lines.append(format_metadata_comment(tokens))
        lines.extend(_render_top_level(block))
        previous = block
    return "\n".join(lines) + "\n" if lines else ""


def _is_blank_paragraph(block: Block) -> bool:
    return isinstance(block, Paragraph) and not text_of(block)


def _render_top_level(block: Block) -> List[str]:
    try:
        return _render_block(block)
    except Exception:
        logger.exception("Failed to render %s; writing plain text instead", type(block).__name__)
        return _plain_lines(block)


def _render_block(block: Block) -> List[str]:
    if isinstance(block, Heading):
        return [_render_heading(block)]
    if isinstance(block, Paragraph):
        return _text_lines(block)
    if isinstance(block, ListBlock):
        return _render_list(block, level=1, indent=0)
    raise TypeError(f"Unsupported block type: {type(block).__name__}")


def _render_heading(heading: Heading) -> str:
    hashes = "#" * max(1, min(heading.level, MAX_HEADING_LEVEL))
    runs = [Run(run.text.replace("\n", " "), run.bold, run.italic, run.url) for run in flatten(heading.inline)]
    runs = flatten(build(runs))
    text = _protect_edges(render_inline(runs))
    if text.endswith("#"):
        text = text[:-1] + "\\#"
    return f"{hashes} {text}" if text else hashes


def _text_lines(block: Block) -> List[str]:
    """Lines of a paragraph (or a heading nested where headings cannot go)."""
    rendered = render_inline(flatten(normalize_inlines(block.inline)))
    if not rendered:
        return []
    return [_protect_line(line) for line in rendered.split("\n")]


def _render_list(list_block: ListBlock, level: int, indent: int) -> List[str]:
    kind = effective_marker(list_block.kind, level)
    lines: List[str] = []
    for number, item in enumerate(list_block.items, start=1):
        prefix = " " * indent + format_marker(kind, number)
        lines.extend(_render_item(item, prefix, level, indent))
    return lines


def _render_item(item: ListItem, prefix: str, level: int, indent: int) -> List[str]:
    pad = " " * (len(prefix) + 1)
    blocks = item.blocks or [Paragraph()]
    first_lines = _text_lines(blocks[0]) if isinstance(blocks[0], (Paragraph, Heading)) else []
    if first_lines:
        lines = [f"{prefix} {first_lines[0]}"]
        lines.extend(pad + line for line in first_lines[1:])
    else:
        lines = [prefix]
    for block in blocks[1:]:
        if isinstance(block, ListBlock):
            lines.extend(_render_list(block, level + 1, indent + NESTED_INDENT_SPACES))
            continue
        extra = _text_lines(block)
        if not extra:
            continue
        lines.append("")
        lines.extend(pad + line for line in extra)
    return lines


def _plain_lines(block: Block) -> List[str]:
    if isinstance(block, (Paragraph, Heading)):
        texts = [text_of(block)]
    elif isinstance(block, ListBlock):
        texts = [
            text_of(child)
            for item in block.items
            for child in item.blocks
            if isinstance(child, (Paragraph, Heading))
        ]
    else:
        texts = []
    lines: List[str] = []
    for text in texts:
        lines.extend(_protect_line(_escape(part)) for part in text.split("\n") if part)
    return lines or [""]


def _escape(text: str) -> str:
    return "".join("\\" + ch if ch in _INLINE_SPECIAL else ch for ch in text)


def _entity(ch: str) -> str:
    return f"&#{ord(ch)};"


def _escape_breaks(text: str, start: int, plain: str) -> str:
    """Escape ``text`` found at ``plain[start:]``, keeping real line breaks.

    A break next to another break (or at either end) is written as ``&#10;``
    so no blank line or empty leading/trailing line reaches the output.
    """
    parts: List[str] = []
    for offset, ch in enumerate(text):
        if ch != "\n":
            parts.append("\\" + ch if ch in _INLINE_SPECIAL else ch)
            continue
        pos = start + offset
        before_ok = pos > 0 and plain[pos - 1] != "\n"
        after_ok = pos + 1 < len(plain) and plain[pos + 1] != "\n"
        parts.append("\n" if before_ok and after_ok else _entity("\n"))
    return "".join(parts)


def _link_destination(url: str) -> str:
    if not url or any(ch in url for ch in " ()<>\n"):
        return "<" + url.replace("<", "\\<").replace(">", "\\>").replace("\n", "") + ">"
    return url


def _render_link(text: str, url: str) -> str:
    if text and _escape(url) == text and _AUTOLINK_RE.match(url):
        return f"<{url}>"
    return f"[{text}]({_link_destination(url)})"


# Delimiters per emphasis; the second is used when a span reopens right after a close.
_DELIMITERS = {"bold": ("**", "__"), "italic": ("*", "_")}


def _is_word_char(ch: str) -> bool:
    return bool(ch) and not ch.isspace() and ch not in _ASCII_PUNCTUATION


def render_inline(runs: List[Run]) -> str:
    """Emphasis markers around formatted runs, opened outermost first (bold, then italic).

    A span that has to reopen right where others close is written with
    ``_``/``__`` so the two delimiter runs stay apart. A letter next to a
    delimiter that would not count as left or right flanking is written as a
    character reference.
    """
    plain = "".join(run.text for run in runs)
    parts: List[str] = []
    stack: List[tuple[str, str]] = []
    pos = 0
    for run in runs:
        needed = [name for name in ("bold", "italic") if getattr(run, name)]
        keep = 0
        while keep < len(stack) and stack[keep][0] in needed:
            keep += 1
        closing = [delimiter for _, delimiter in reversed(stack[keep:])]
        del stack[keep:]
        opening: List[str] = []
        for name in needed:
            if all(name != open_name for open_name, _ in stack):
                plain_form, alternate = _DELIMITERS[name]
                delimiter = alternate if closing and closing[-1][0] == plain_form[0] else plain_form
                stack.append((name, delimiter))
                opening.append(delimiter)
        text = _escape_breaks(run.text, pos, plain)
        chunk = _render_link(text, run.url) if run.url is not None else text
        parts.extend(_delimit(parts, closing, opening, chunk))
        pos += len(run.text)
    closing = [delimiter for _, delimiter in reversed(stack)]
    parts.extend(_delimit(parts, closing, [], ""))
    return "".join(parts)


def _delimit(parts: List[str], closing: List[str], opening: List[str], chunk: str) -> List[str]:
    before = parts[-1][-1:] if parts else ""
    after = chunk[:1]
    if closing and not opening and _is_word_char(after):
        if not before.isalnum() or any(delimiter[0] == "_" for delimiter in closing):
            chunk = _entity(after) + chunk[1:]
    elif opening and not closing and _is_word_char(before):
        if after and not after.isalnum() and not after.isspace():
            parts[-1] = parts[-1][:-1] + _entity(before)
    return closing + opening + ([chunk] if chunk else [])


def _protect_edges(line: str) -> str:
    if line[:1] in (" ", "\t"):
        line = _entity(line[0]) + line[1:]
    if line[-1:] in (" ", "\t"):
        line = line[:-1] + _entity(line[-1])
    return line


def _protect_line(line: str) -> str:
    """Keep a line of paragraph text from being read as a block construct."""
    line = _protect_edges(line)
    if not line:
        return line
    first = line[0]
    if first == "#" or _BULLET_START_RE.match(line) or _RULE_RE.match(line) or line.startswith("~~~"):
        return "\\" + line
    if first in _ENTITY_GLYPHS:
        return _entity(first) + line[1:]
    match = _NUMBER_START_RE.match(line) or _LETTER_START_RE.match(line)
    if match:
        cut = match.end(1)
        return line[:cut] + "\\" + line[cut:]
    return line
