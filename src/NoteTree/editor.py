"""Public entry points: load/save a note and edit it through commands."""

from __future__ import annotations

import logging
import time
from typing import Callable, List

from . import list_editing
from .list_editing import Command, CommandResult, Key
from .markdown_parser import parse_markdown
from .markdown_writer import render_markdown
from .model import Document, Paragraph, TreeError
from .positions import Position, character_index, position_at
from .settings import EditorSettings

logger = logging.getLogger(__name__)

Listener = Callable[["Editor"], None]


def load(markdown: str, settings: EditorSettings | None = None) -> Document:
    """Parse ``markdown``; any failure yields a document with one empty paragraph."""
    settings = settings or EditorSettings()
    try:
        document = parse_markdown(markdown, font_family=settings.font_family, font_size=settings.font_size)
    except Exception:
        logger.exception("Could not load markdown (%d chars); starting empty", len(markdown or ""))
        return Document(blocks=[Paragraph()], font_family=settings.font_family, font_size=settings.font_size)
    document.last_markdown = markdown
    return document


def save(doc: Document) -> str:
    """Export ``doc``; on failure return the last markdown that was loaded or saved."""
    try:
        markdown = render_markdown(doc)
    except Exception:
        logger.exception("Could not save document; returning last known markdown")
        return doc.last_markdown or ""
    doc.last_markdown = markdown
    return markdown


def apply_command(doc: Document, command: Command, position: Position) -> CommandResult:
    return list_editing.apply_command(doc, command, position)


class Editor:
    """One open note: document, caret, change listeners and a cached preview."""

    def __init__(
        self,
        markdown: str = "",
        settings: EditorSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or EditorSettings()
        self._clock = clock
        self._listeners: List[Listener] = []
        self._preview: str | None = None
        self._preview_at = 0.0
        self.document = load(markdown, self.settings)
        self.position = position_at(self.document, 0)

    def load(self, markdown: str) -> None:
        self.document = load(markdown, self.settings)
        self.position = position_at(self.document, 0)
        self._changed()

    def reload(self, markdown: str) -> None:
        """Replace the content but keep the caret at the same absolute character."""
        try:
            index = character_index(self.document, self.position)
        except TreeError:
            index = 0
        self.document = load(markdown, self.settings)
        self.position = position_at(self.document, index)
        self._changed()

    def save(self) -> str:
        return save(self.document)

    def preview(self) -> str:
        now = self._clock()
        if self._preview is None or now - self._preview_at >= self.settings.preview_cache_seconds:
            self._preview = save(self.document)
            self._preview_at = now
        return self._preview

    def move_to(self, position: Position) -> None:
        self.position = position

    def apply(self, command: Command) -> CommandResult:
        result = list_editing.apply_command(self.document, command, self.position, self.settings.caret_tolerance)
        self._finish(result)
        return result

    def press(self, key: Key | str) -> CommandResult:
        result = list_editing.press_key(self.document, key, self.position, self.settings.caret_tolerance)
        self._finish(result)
        return result

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _finish(self, result: CommandResult) -> None:
        if not result.handled:
            return
        self.position = result.position
        self._changed()

    def _changed(self) -> None:
        self._preview = None
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("State listener %r failed", listener)
