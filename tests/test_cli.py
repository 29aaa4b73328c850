import pytest

from NoteTree.cli import build_parser, main
from NoteTree.positions import Position
from NoteTree.utils import parse_position, resolve_output_path


def test_normalize_rewrites_markers(tmp_path):
    source = tmp_path / "note.md"
    source.write_text("1) one\n2) two\n", encoding="utf-8")
    output = tmp_path / "out" / "note.md"
    main(["normalize", str(source), "-o", str(output)])
    assert output.read_text(encoding="utf-8") == "1. one\n2. two\n"
    assert source.read_text(encoding="utf-8") == "1) one\n2) two\n"


def test_keys_command_edits_in_place(tmp_path):
    source = tmp_path / "note.md"
    source.write_text("- a\n- b\n", encoding="utf-8")
    main(["keys", str(source), "--at", "0.1.0:0", "tab"])
    assert source.read_text(encoding="utf-8") == "- a\n  ○ b\n"


def test_keys_command_uses_config(tmp_path):
    config = tmp_path / "settings.yaml"
    config.write_text("caret_tolerance: 0\n", encoding="utf-8")
    source = tmp_path / "note.md"
    source.write_text("- hello world\n", encoding="utf-8")
    main(["keys", str(source), "--config", str(config), "--at", "0.0.0:5", "enter", "tab"])
    assert source.read_text(encoding="utf-8") == "- hello\n  ○ &#32;world\n"


def test_missing_input_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        main(["normalize", str(tmp_path / "missing.md")])


def test_parser_rejects_unknown_keys():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["keys", "note.md", "--at", "0:0", "escape"])


def test_parse_position():
    assert parse_position("0.1.0:4") == Position((0, 1, 0), 4)
    assert parse_position("2") == Position((2,), 0)
    with pytest.raises(ValueError):
        parse_position("a:b")


def test_output_directory_keeps_file_name(tmp_path):
    assert resolve_output_path(tmp_path / "note.md", str(tmp_path)) == tmp_path / "note.md"
    assert resolve_output_path(tmp_path / "note.md", None) == tmp_path / "note.md"
