from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from markdown_it import MarkdownIt

from .inlines import Run, build
from .list_styles import (
    FONT_NAME,
    FONT_SIZE_PT,
    GLYPH_KINDS,
    MAX_HEADING_LEVEL,
    MAX_LIST_DEPTH,
    NESTED_INDENT_SPACES,
    MarkerKind,
    effective_marker,
    from_roman,
    is_numbered,
)
from .metadata import apply_metadata, extract_metadata_comments
from .model import Document, Heading, InlineElement, InlineText, ListBlock, ListItem, Paragraph, normalize

logger = logging.getLogger(__name__)

# Stands in for the text of an empty list item so "-" is never read as a setext underline.
PLACEHOLDER = "\ue000"

_GLYPHS = "".join(re.escape(glyph) for glyph in GLYPH_KINDS)
_MARKER_RE = re.compile(rf"^(?P<indent> *)(?P<marker>[{_GLYPHS}]|\d{{1,9}}[.)]|[A-Za-z]+[.)])(?: (?P<rest>.*))?$")
_FENCE_RE = re.compile(r"^ {0,3}(```|~~~)")
# Two tokens per list level, plus room for quotes and inline nesting.
_MAX_NESTING = 4 * MAX_LIST_DEPTH + 20

Span = Tuple[int, int]


@dataclass
class _Frame:
    src_indent: int
    src_content: int
    out_indent: int
    out_content: int
    kind: MarkerKind
    alternate: bool


def parse_markdown(text: str, font_family: str | None = None, font_size: float | None = None) -> Document:
    text = text.replace("\r\n", "\n")
    lines, metadata_map = extract_metadata_comments(text)
    if text.endswith("\n") and lines and lines[-1] == "":
        lines.pop()
    rewritten, hints = _rewrite_list_markers(lines, metadata_map)

    md = MarkdownIt("commonmark", {"maxNesting": _MAX_NESTING})
    tokens = md.parse("\n".join(rewritten))
    spans: List[Span] = []
    blocks, _ = _parse_blocks(tokens, 0, stop_types=set(), hints=hints, level=0, spans=spans)
    logger.debug("Parsed %d top-level block(s) from %d line(s)", len(blocks), len(lines))

    document = Document(
        blocks=_materialize_gaps(blocks, spans, lines, metadata_map),
        font_family=font_family or FONT_NAME,
        font_size=font_size or FONT_SIZE_PT,
    )
    normalize(document)
    return document


def _line_ordinals(lines: List[str]) -> Dict[int, int]:
    ordinals: Dict[int, int] = {}
    for idx, line in enumerate(lines):
        if line.strip():
            ordinals[idx] = len(ordinals) + 1
    return ordinals


def _classify_marker(marker: str, sibling: _Frame | None) -> MarkerKind | None:
    if marker in GLYPH_KINDS:
        return GLYPH_KINDS[marker]
    body = marker[:-1]
    if body.isdigit():
        return MarkerKind.DECIMAL
    if not (body.islower() or body.isupper()):
        return None
    upper = body.isupper()
    latin = MarkerKind.UPPER_LATIN if upper else MarkerKind.LOWER_LATIN
    roman = MarkerKind.UPPER_ROMAN if upper else MarkerKind.LOWER_ROMAN
    sibling_kind = sibling.kind if sibling is not None else None
    if len(body) == 1:
        if sibling_kind in (MarkerKind.LOWER_LATIN, MarkerKind.UPPER_LATIN):
            return latin
        if body in "iI":
            return roman
        if sibling_kind in (MarkerKind.LOWER_ROMAN, MarkerKind.UPPER_ROMAN) and from_roman(body) is not None:
            return roman
        return latin
    if from_roman(body) is not None:
        return roman
    return None


def _rewrite_list_markers(lines: List[str], metadata_map: Dict[int, dict]) -> tuple[List[str], Dict[int, MarkerKind]]:
    """Rewrite list lines, one for one, into markers CommonMark understands.

    Nested items are recognised by an indent of at least two spaces past their
    parent's marker and re-indented onto the parent's content column. A list
    that starts where a sibling list of another kind ends gets the other
    delimiter (``1)`` or ``*``) so the two stay separate. Returns the new lines
    and the source marker kind of every item line.
    """
    ordinals = _line_ordinals(lines)
    out = list(lines)
    hints: Dict[int, MarkerKind] = {}
    frames: List[_Frame] = []
    prev_blank = True
    in_fence = False

    for idx, line in enumerate(lines):
        if not line.strip():
            prev_blank = True
            continue
        if not frames and _FENCE_RE.match(line):
            in_fence = not in_fence
            prev_blank = False
            continue
        if in_fence:
            continue

        indent = len(line) - len(line.lstrip(" "))
        match = _MARKER_RE.match(line)
        if match and (frames or prev_blank):
            keep = len(frames)
            while keep and frames[keep - 1].src_indent > indent:
                keep -= 1
            sibling = frames[keep - 1] if keep and indent < frames[keep - 1].src_indent + NESTED_INDENT_SPACES else None
            marker = match.group("marker")
            top_level = keep == 0 or (sibling is not None and keep == 1)
            forced = top_level and ordinals.get(idx) in metadata_map
            # A comment starts a new list, so the previous one says nothing about "i." or "v.".
            kind = _classify_marker(marker, None if forced else sibling)
            if kind is not None:
                if sibling is not None:
                    same_list = sibling.kind == kind and not forced
                    alternate = sibling.alternate if same_list else not sibling.alternate
                    out_indent = sibling.out_indent
                    del frames[keep - 1 :]
                else:
                    alternate = False
                    out_indent = frames[keep - 1].out_content if keep else 0
                    del frames[keep:]
                if is_numbered(kind):
                    new_marker = "1)" if alternate else "1."
                else:
                    new_marker = "*" if alternate else "-"
                rest = match.group("rest")
                if rest is None or not rest.strip():
                    rest = PLACEHOLDER
                out[idx] = f"{' ' * out_indent}{new_marker} {rest}"
                hints[idx] = kind
                frames.append(
                    _Frame(
                        src_indent=indent,
                        src_content=indent + len(marker) + 1,
                        out_indent=out_indent,
                        out_content=out_indent + len(new_marker) + 1,
                        kind=kind,
                        alternate=alternate,
                    )
                )
                prev_blank = False
                continue

        if frames and prev_blank:
            while frames and frames[-1].src_content > indent:
                frames.pop()
        if frames:
            owner = frames[-1]
            shift = max(indent - owner.src_content, 0)
            out[idx] = " " * (owner.out_content + shift) + line.lstrip(" ")
        prev_blank = False
    return out, hints


def _parse_blocks(
    tokens,
    index: int,
    stop_types: set[str],
    hints: Dict[int, MarkerKind],
    level: int,
    spans: List[Span] | None = None,
) -> tuple[list, int]:
    blocks: List = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type in stop_types:
            break
        start = len(blocks)
        if tok.type == "heading_open":
            inline = _parse_inline(tokens[i + 1].children or [])
            if level:
                blocks.append(Paragraph(inline=inline))
            else:
                blocks.append(Heading(level=min(int(tok.tag[1:]), MAX_HEADING_LEVEL), inline=inline))
            i += 3
        elif tok.type == "paragraph_open":
            blocks.append(Paragraph(inline=_parse_inline(tokens[i + 1].children or [])))
            i += 3
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            ordered = tok.type == "ordered_list_open"
            fallback = MarkerKind.DECIMAL if ordered else MarkerKind.BULLET
            hint = hints.get(tok.map[0], fallback) if tok.map else fallback
            close_type = "ordered_list_close" if ordered else "bullet_list_close"
            i += 1
            items: list[ListItem] = []
            while i < len(tokens) and tokens[i].type != close_type:
                if tokens[i].type == "list_item_open":
                    i += 1
                    item_blocks, i = _parse_blocks(tokens, i, {"list_item_close"}, hints, level + 1)
                    items.append(ListItem(blocks=item_blocks))
                    i += 1  # skip list_item_close
                else:
                    i += 1
            blocks.append(ListBlock(kind=effective_marker(hint, level + 1), items=items))
            i += 1  # skip list close
        elif tok.type in ("fence", "code_block", "html_block"):
            blocks.append(_literal_paragraph(tok.content))
            i += 1
        elif tok.type == "hr":
            blocks.append(Paragraph())
            i += 1
        elif tok.type == "blockquote_open":
            inner, i = _parse_blocks(tokens, i + 1, {"blockquote_close"}, hints, level, spans)
            blocks.extend(inner)
            i += 1  # skip blockquote_close
            continue
        else:
            i += 1
        if spans is not None and len(blocks) > start:
            spans.append(tuple(tok.map) if tok.map else (0, 0))
    return blocks, i


def _literal_paragraph(content: str) -> Paragraph:
    text = content.rstrip("\n")
    return Paragraph(inline=[InlineText(text)] if text else [])


def _parse_inline(children: Iterable) -> List[InlineElement]:
    runs: List[Run] = []
    bold = 0
    italic = 0
    url: str | None = None
    for tok in children:
        if tok.type in ("text", "text_special", "code_inline", "html_inline"):
            text = tok.content.replace(PLACEHOLDER, "")
            runs.append(Run(text, bold=bold > 0, italic=italic > 0, url=url))
        elif tok.type in ("softbreak", "hardbreak"):
            runs.append(Run("\n", bold=bold > 0, italic=italic > 0, url=url))
        elif tok.type == "strong_open":
            bold += 1
        elif tok.type == "strong_close":
            bold = max(bold - 1, 0)
        elif tok.type == "em_open":
            italic += 1
        elif tok.type == "em_close":
            italic = max(italic - 1, 0)
        elif tok.type == "link_open":
            url = tok.attrGet("href") or ""
        elif tok.type == "link_close":
            url = None
        elif tok.type == "image":
            runs.append(Run(tok.content or "", bold=bold > 0, italic=italic > 0, url=url))
    return build(runs)


def _materialize_gaps(blocks: list, spans: List[Span], lines: List[str], metadata_map: Dict[int, dict]) -> list:
    """Turn blank lines beyond the single block separator into empty paragraphs."""
    ordinals = _line_ordinals(lines)
    result: list = []
    previous_end: int | None = None
    for block, (start, end) in zip(blocks, spans):
        gap_start = 0 if previous_end is None else previous_end + 1
        blanks = sum(1 for line in lines[gap_start:start] if not line.strip())
        if previous_end is not None:
            blanks = max(blanks - 1, 0)
        result.extend(Paragraph() for _ in range(blanks))

        metadata = metadata_map.get(ordinals.get(start, -1))
        if metadata:
            apply_metadata(block, metadata)
        result.append(block)

        last = max(end - 1, start)
        while last > start and not lines[last].strip():
            last -= 1
        previous_end = last

    if previous_end is None:
        result.extend(Paragraph() for _ in range(max(1, sum(1 for line in lines if not line.strip()))))
    else:
        result.extend(Paragraph() for line in lines[previous_end + 1 :] if not line.strip())
    return result
