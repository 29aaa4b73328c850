import logging
import textwrap

import pytest

from NoteTree.settings import EditorSettings, load_settings, parse_settings


def test_parse_settings_coerces_values(caplog):
    yaml_text = textwrap.dedent(
        """\
        font-family: Arial
        font_size: "12"
        preview-cache-seconds: 0.5
        caret_tolerance: 3
        colour: blue
        """
    )
    with caplog.at_level(logging.WARNING):
        settings = parse_settings(yaml_text)
    assert settings == EditorSettings(font_family="Arial", font_size=12.0, preview_cache_seconds=0.5, caret_tolerance=3)
    assert "Ignoring unknown setting 'colour'" in caplog.text


def test_empty_settings_use_defaults():
    assert parse_settings("") == EditorSettings()
    assert parse_settings("font_family:\n") == EditorSettings()


def test_settings_root_must_be_mapping():
    with pytest.raises(ValueError, match="must be a mapping"):
        parse_settings("- a\n- b\n")


def test_load_settings_from_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("font_size: 11\n", encoding="utf-8")
    assert load_settings(path).font_size == 11.0
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")
