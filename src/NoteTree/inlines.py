"""Inline span operations.

Inline content is edited through flat formatting runs: a paragraph's spans
are flattened into :class:`Run` objects, cut or restyled, and rebuilt into
the canonical span tree (bold outside italic, links innermost, adjacent
equal spans merged, no emphasis on leading or trailing whitespace). Two
paragraphs with the same runs therefore always have the same span tree.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from itertools import groupby
from typing import Iterable, List

from .model import Bold, Heading, InlineElement, InlineLink, InlineText, Italic, Paragraph


class Emphasis(str, Enum):
    BOLD = "bold"
    ITALIC = "italic"


@dataclass(frozen=True)
class Run:
    text: str
    bold: bool = False
    italic: bool = False
    url: str | None = None

    def same_format(self, other: "Run") -> bool:
        return (self.bold, self.italic, self.url) == (other.bold, other.italic, other.url)


def flatten(inlines: Iterable[InlineElement], bold: bool = False, italic: bool = False) -> List[Run]:
    runs: List[Run] = []
    for inline in inlines:
        if isinstance(inline, InlineText):
            runs.append(Run(inline.text, bold=bold, italic=italic))
        elif isinstance(inline, Bold):
            runs.extend(flatten(inline.children, bold=True, italic=italic))
        elif isinstance(inline, Italic):
            runs.extend(flatten(inline.children, bold=bold, italic=True))
        elif isinstance(inline, InlineLink):
            runs.append(Run(inline.text, bold=bold, italic=italic, url=inline.url))
    return [run for run in runs if run.text]


def merge_runs(runs: Iterable[Run]) -> List[Run]:
    merged: List[Run] = []
    for run in runs:
        if not run.text:
            continue
        if merged and merged[-1].same_format(run):
            merged[-1] = replace(merged[-1], text=merged[-1].text + run.text)
        else:
            merged.append(run)
    return merged


def _trim_emphasis(runs: List[Run]) -> List[Run]:
    # Emphasis never starts or ends on whitespace; markdown cannot express it.
    chars = [replace(run, text=ch) for run in runs for ch in run.text]
    for attr in ("bold", "italic"):
        idx = 0
        while idx < len(chars):
            if not getattr(chars[idx], attr):
                idx += 1
                continue
            end = idx
            while end < len(chars) and getattr(chars[end], attr):
                end += 1
            lo, hi = idx, end
            while lo < hi and chars[lo].text.isspace():
                chars[lo] = replace(chars[lo], **{attr: False})
                lo += 1
            while hi > lo and chars[hi - 1].text.isspace():
                chars[hi - 1] = replace(chars[hi - 1], **{attr: False})
                hi -= 1
            idx = end
    return chars


def build(runs: Iterable[Run]) -> List[InlineElement]:
    return _build_bold(merge_runs(_trim_emphasis(merge_runs(runs))))


def _build_bold(runs: List[Run]) -> List[InlineElement]:
    nodes: List[InlineElement] = []
    for is_bold, group in groupby(runs, key=lambda run: run.bold):
        children = _build_italic(list(group))
        if is_bold:
            nodes.append(Bold(children))
        else:
            nodes.extend(children)
    return nodes


def _build_italic(runs: List[Run]) -> List[InlineElement]:
    nodes: List[InlineElement] = []
    for is_italic, group in groupby(runs, key=lambda run: run.italic):
        children: List[InlineElement] = [
            InlineLink(run.text, run.url) if run.url is not None else InlineText(run.text) for run in group
        ]
        if is_italic:
            nodes.append(Italic(children))
        else:
            nodes.extend(children)
    return nodes


def normalize_inlines(inlines: Iterable[InlineElement]) -> List[InlineElement]:
    return build(flatten(inlines))


def inline_text(inlines: Iterable[InlineElement]) -> str:
    return "".join(run.text for run in flatten(inlines))


def text_of(block: Paragraph | Heading) -> str:
    return inline_text(block.inline)


def _cut(runs: List[Run], offset: int) -> tuple[List[Run], List[Run]]:
    left: List[Run] = []
    right: List[Run] = []
    consumed = 0
    for run in runs:
        end = consumed + len(run.text)
        if end <= offset:
            left.append(run)
        elif consumed >= offset:
            right.append(run)
        else:
            cut = offset - consumed
            left.append(replace(run, text=run.text[:cut]))
            right.append(replace(run, text=run.text[cut:]))
        consumed = end
    return left, right


def split_inlines(inlines: Iterable[InlineElement], offset: int) -> tuple[List[InlineElement], List[InlineElement]]:
    """Split content at a character offset, keeping formatting on both halves."""
    left, right = _cut(flatten(inlines), max(offset, 0))
    return build(left), build(right)


def join_inlines(*parts: Iterable[InlineElement]) -> List[InlineElement]:
    runs: List[Run] = []
    for part in parts:
        runs.extend(flatten(part))
    return build(runs)


def insert_text(inlines: Iterable[InlineElement], offset: int, text: str) -> List[InlineElement]:
    """Insert plain characters at ``offset``, inheriting the formatting to their left."""
    left, right = _cut(flatten(inlines), max(offset, 0))
    template = left[-1] if left else (right[0] if right else Run(""))
    return build(left + [replace(template, text=text, url=None)] + right)


def has_emphasis(inlines: Iterable[InlineElement], start: int, end: int, emphasis: Emphasis) -> bool:
    _, tail = _cut(flatten(inlines), start)
    middle, _ = _cut(tail, end - start)
    visible = [run for run in middle if not run.text.isspace()]
    return bool(visible) and all(getattr(run, emphasis.value) for run in visible)


def set_emphasis(
    inlines: Iterable[InlineElement], start: int, end: int, emphasis: Emphasis, enabled: bool
) -> List[InlineElement]:
    head, tail = _cut(flatten(inlines), start)
    middle, rest = _cut(tail, end - start)
    styled = [replace(run, **{emphasis.value: enabled}) for run in middle]
    return build(head + styled + rest)
