from NoteTree.list_styles import (
    MarkerKind,
    effective_marker,
    format_marker,
    from_roman,
    marker_family,
    to_roman,
)


def test_effective_marker_table():
    assert [effective_marker(MarkerKind.DECIMAL, level) for level in (1, 2, 3, 4, 7)] == [
        MarkerKind.DECIMAL,
        MarkerKind.LOWER_LATIN,
        MarkerKind.LOWER_ROMAN,
        MarkerKind.BULLET,
        MarkerKind.BULLET,
    ]
    assert [effective_marker(MarkerKind.BULLET, level) for level in (1, 2, 3, 4)] == [
        MarkerKind.BULLET,
        MarkerKind.CIRCLE,
        MarkerKind.SQUARE,
        MarkerKind.BULLET,
    ]
    assert effective_marker(MarkerKind.UPPER_ROMAN, 3) == MarkerKind.UPPER_ROMAN


def test_marker_family():
    assert marker_family(MarkerKind.LOWER_ROMAN) == MarkerKind.DECIMAL
    assert marker_family(MarkerKind.SQUARE) == MarkerKind.BULLET


def test_format_marker():
    assert format_marker(MarkerKind.DECIMAL, 12) == "12."
    assert format_marker(MarkerKind.LOWER_LATIN, 3) == "c."
    assert format_marker(MarkerKind.UPPER_LATIN, 2) == "B."
    assert format_marker(MarkerKind.LOWER_ROMAN, 4) == "iv."
    assert format_marker(MarkerKind.UPPER_ROMAN, 9) == "IX."
    assert format_marker(MarkerKind.BULLET, 5) == "-"
    assert format_marker(MarkerKind.CIRCLE, 1) == "○"
    assert format_marker(MarkerKind.SQUARE, 1) == "▪"


def test_roman_numerals():
    assert to_roman(1994) == "MCMXCIV"
    assert from_roman("mcmxciv") == 1994
    assert from_roman("IIII") is None
    assert from_roman("abc") is None
