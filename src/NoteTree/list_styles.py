from __future__ import annotations

from enum import Enum

FONT_NAME = "Calibri"
FONT_SIZE_PT = 14.0

NESTED_INDENT_SPACES = 2
MAX_HEADING_LEVEL = 4
# Deepest list level Indent will create.
MAX_LIST_DEPTH = 32


class MarkerKind(str, Enum):
    BULLET = "bullet"
    DECIMAL = "decimal"
    LOWER_LATIN = "lowerLatin"
    UPPER_LATIN = "upperLatin"
    LOWER_ROMAN = "lowerRoman"
    UPPER_ROMAN = "upperRoman"
    CIRCLE = "circle"
    SQUARE = "square"


NUMBERED_KINDS = frozenset(
    {
        MarkerKind.DECIMAL,
        MarkerKind.LOWER_LATIN,
        MarkerKind.UPPER_LATIN,
        MarkerKind.LOWER_ROMAN,
        MarkerKind.UPPER_ROMAN,
    }
)

GLYPHS = {
    MarkerKind.BULLET: "-",
    MarkerKind.CIRCLE: "○",
    MarkerKind.SQUARE: "▪",
}

# Glyphs accepted on import; the first three are the ones written on export.
GLYPH_KINDS = {
    "-": MarkerKind.BULLET,
    "*": MarkerKind.BULLET,
    "+": MarkerKind.BULLET,
    "•": MarkerKind.BULLET,
    "○": MarkerKind.CIRCLE,
    "◦": MarkerKind.CIRCLE,
    "▪": MarkerKind.SQUARE,
    "■": MarkerKind.SQUARE,
}

_LEVEL_TABLE = {
    MarkerKind.DECIMAL: (MarkerKind.DECIMAL, MarkerKind.LOWER_LATIN, MarkerKind.LOWER_ROMAN),
    MarkerKind.BULLET: (MarkerKind.BULLET, MarkerKind.CIRCLE, MarkerKind.SQUARE),
}

_ROMAN_NUMERALS = (
    (1000, "M"),
    (900, "CM"),
    (500, "D"),
    (400, "CD"),
    (100, "C"),
    (90, "XC"),
    (50, "L"),
    (40, "XL"),
    (10, "X"),
    (9, "IX"),
    (5, "V"),
    (4, "IV"),
    (1, "I"),
)


def is_numbered(kind: MarkerKind) -> bool:
    return kind in NUMBERED_KINDS


def marker_family(kind: MarkerKind) -> MarkerKind:
    """Collapse a concrete marker kind to the kind a user asks for (decimal or bullet)."""
    return MarkerKind.DECIMAL if is_numbered(kind) else MarkerKind.BULLET


def effective_marker(kind: MarkerKind, level: int) -> MarkerKind:
    """Marker actually used for a list of ``kind`` at nesting ``level`` (1 = outermost).

    Only the two requestable kinds are re-leveled; explicit kinds such as
    ``upperRoman`` are already concrete and are returned unchanged.
    """
    table = _LEVEL_TABLE.get(kind)
    if table is None:
        return kind
    if level <= len(table):
        return table[max(level, 1) - 1]
    return MarkerKind.BULLET


def to_roman(number: int) -> str:
    if number <= 0 or number > 3999:
        return str(number)
    parts: list[str] = []
    for value, numeral in _ROMAN_NUMERALS:
        count, number = divmod(number, value)
        parts.append(numeral * count)
    return "".join(parts)


def from_roman(text: str) -> int | None:
    """Inverse of :func:`to_roman`; returns None for anything that is not canonical."""
    upper = text.upper()
    if not upper or any(ch not in "IVXLCDM" for ch in upper):
        return None
    total = 0
    index = 0
    for value, numeral in _ROMAN_NUMERALS:
        while upper.startswith(numeral, index):
            total += value
            index += len(numeral)
    if index != len(upper) or to_roman(total) != upper:
        return None
    return total


def to_latin(number: int) -> str:
    # Wrapping past 26 is not supported; clamp to "z".
    return chr(ord("a") + min(max(number, 1), 26) - 1)


def format_marker(kind: MarkerKind, number: int) -> str:
    """Marker text for item ``number`` (1-based), without the trailing space."""
    if kind is MarkerKind.DECIMAL:
        return f"{number}."
    if kind is MarkerKind.LOWER_LATIN:
        return f"{to_latin(number)}."
    if kind is MarkerKind.UPPER_LATIN:
        return f"{to_latin(number).upper()}."
    if kind is MarkerKind.LOWER_ROMAN:
        return f"{to_roman(number).lower()}."
    if kind is MarkerKind.UPPER_ROMAN:
        return f"{to_roman(number)}."
    return GLYPHS.get(kind, "-")
