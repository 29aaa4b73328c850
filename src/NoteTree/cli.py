from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import editor
from .list_editing import Key, press_key
from .settings import EditorSettings, load_settings
from .utils import configure_logging, parse_position, read_markdown, resolve_output_path, write_markdown


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="NoteTree",
        description="Normalize markdown notes and apply list editing keys to them.",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-o", "--output", type=str, help="Output Markdown path (defaults to INPUT)")
    common.add_argument("--config", type=str, help="YAML settings file")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    normalize = commands.add_parser(
        "normalize", parents=[common], help="Load and save a note through the document tree"
    )
    normalize.add_argument("input", type=str, help="Path to Markdown file")

    keys = commands.add_parser("keys", parents=[common], help="Press editing keys at a position and save the result")
    keys.add_argument("input", type=str, help="Path to Markdown file")
    keys.add_argument("--at", required=True, type=str, help="Caret as PATH:OFFSET, e.g. 0.1.0:4")
    keys.add_argument("keys", nargs="+", choices=[key.value for key in Key], help="Keys to press in order")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    input_path = Path(args.input).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    output_path = resolve_output_path(input_path, args.output)
    settings = load_settings(args.config) if args.config else EditorSettings()

    logging.info("Reading %s", input_path)
    markdown_text = read_markdown(input_path)
    logging.debug("Markdown length: %d chars", len(markdown_text))

    document = editor.load(markdown_text, settings)
    if args.command == "keys":
        position = parse_position(args.at)
        for key in args.keys:
            result = press_key(document, key, position, settings.caret_tolerance)
            if result.handled:
                position = result.position
            logging.info("%s: %s", key, "applied" if result.handled else result.message)
        logging.info("Caret now at %s:%d", ".".join(str(step) for step in position.path), position.offset)

    logging.info("Writing %s", output_path)
    write_markdown(output_path, editor.save(document))
    logging.info("Done. Saved to %s", output_path)


if __name__ == "__main__":
    main()
