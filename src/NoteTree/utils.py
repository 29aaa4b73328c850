from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .positions import Position


def configure_logging(verbose: bool = False) -> None:
    """Configure a simple console logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )


def resolve_output_path(input_path: Path, output: Optional[str]) -> Path:
    if output:
        out_path = Path(output)
        if out_path.is_dir():
            out_path = out_path / input_path.name
        return out_path
    return input_path


def read_markdown(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_markdown(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def parse_position(text: str) -> Position:
    """Parse ``"0.1.0:4"`` (dot separated path, colon, offset) into a Position."""
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)*)(?::(\d+))?\s*", text)
    if not match:
        raise ValueError(f"Invalid position {text!r}; expected PATH[:OFFSET] such as 0.1.0:4")
    path = tuple(int(part) for part in match.group(1).split("."))
    return Position(path, int(match.group(2) or 0))
