"""``<!-- nm:... -->`` comments carrying layout that markdown cannot express.

A comment sits on its own line directly before the block it describes::

    <!-- nm:space-before:20 indent:12 -->
    Paragraph text

    <!-- nm:list-spacing:4,8 hanging -->
    - item

Values are space separated ``key:value`` pairs; a token without a colon is a
flag whose value is ``"true"``. Keys this module does not know are kept in
``BlockLayout.extra`` and written back unchanged.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from .model import Block, BlockLayout, Heading, ListBlock, Paragraph

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "<!-- nm:"
COMMENT_SUFFIX = "-->"

PARAGRAPH_KEYS = ("space-before", "space-after", "indent")
LIST_KEYS = ("list-spacing", "list-indent", "hanging")


class MetadataError(ValueError):
    """Raised for a metadata comment that cannot be parsed."""


def is_metadata_comment(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(COMMENT_PREFIX) and stripped.endswith(COMMENT_SUFFIX)


def parse_metadata(content: str) -> Dict[str, str]:
    metadata: Dict[str, str] = {}
    for part in content.split():
        key, sep, value = part.partition(":")
        key = key.strip()
        if not key:
            raise MetadataError(f"metadata token {part!r} has no key")
        metadata[key] = value.strip() if sep else "true"
    return metadata


def extract_metadata_comments(markdown: str) -> Tuple[List[str], Dict[int, Dict[str, str]]]:
    """Drop metadata comment lines and index their contents.

    Returns the remaining lines and a map from the 1-based ordinal of the next
    non-blank line (counted over the remaining lines) to the parsed metadata.
    A comment with no tokens still gets an (empty) entry.
    """
    clean_lines: List[str] = []
    metadata_map: Dict[int, Dict[str, str]] = {}
    ordinal = 0
    for number, line in enumerate(markdown.split("\n"), start=1):
        if is_metadata_comment(line):
            stripped = line.strip()
            content = stripped[len(COMMENT_PREFIX) : -len(COMMENT_SUFFIX)]
            try:
                metadata_map[ordinal + 1] = parse_metadata(content)
            except MetadataError as exc:
                logger.warning("Skipping metadata comment on line %d: %s", number, exc)
            continue
        clean_lines.append(line)
        if line.strip():
            ordinal += 1
    return clean_lines, metadata_map


def _number(key: str, value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring metadata %s:%s (not a number)", key, value)
        return None


def apply_metadata(block: Block, metadata: Dict[str, str]) -> None:
    layout: BlockLayout | None = getattr(block, "layout", None)
    if layout is None:
        return
    is_text = isinstance(block, (Paragraph, Heading))
    is_list = isinstance(block, ListBlock)
    for key, value in metadata.items():
        if is_text and key in PARAGRAPH_KEYS:
            number = _number(key, value)
            if number is not None:
                setattr(layout, key.replace("-", "_"), number)
        elif is_list and key == "list-spacing":
            top, _, bottom = value.partition(",")
            top_value, bottom_value = _number(key, top), _number(key, bottom)
            if top_value is not None and bottom_value is not None:
                layout.list_spacing = (top_value, bottom_value)
        elif is_list and key == "list-indent":
            number = _number(key, value)
            if number is not None:
                layout.list_indent = number
        elif is_list and key == "hanging":
            layout.hanging = value.lower() != "false"
        else:
            layout.extra[key] = value


def _format_number(value: float) -> str:
    return f"{value:g}"


def metadata_tokens(block: Block) -> List[str]:
    layout: BlockLayout | None = getattr(block, "layout", None)
    if layout is None:
        return []
    tokens: List[str] = []
    if layout.space_before is not None:
        tokens.append(f"space-before:{_format_number(layout.space_before)}")
    if layout.space_after is not None:
        tokens.append(f"space-after:{_format_number(layout.space_after)}")
    if layout.indent is not None:
        tokens.append(f"indent:{_format_number(layout.indent)}")
    if layout.list_spacing is not None:
        top, bottom = layout.list_spacing
        tokens.append(f"list-spacing:{_format_number(top)},{_format_number(bottom)}")
    if layout.list_indent is not None:
        tokens.append(f"list-indent:{_format_number(layout.list_indent)}")
    for key, value in layout.extra.items():
        tokens.append(key if value == "true" else f"{key}:{value}")
    if layout.hanging:
        tokens.append("hanging")
    return tokens


def format_metadata_comment(tokens: List[str]) -> str:
    if not tokens:
        return f"{COMMENT_PREFIX} {COMMENT_SUFFIX}"
    return f"{COMMENT_PREFIX}{' '.join(tokens)} {COMMENT_SUFFIX}"
