"""Command-line interface for note2docs."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .version import __version__

FORMATS = ("html", "docx", "both")

EXIT_UNKNOWN_ARGS = 2
EXIT_INVALID_ARGS = 6
EXIT_OUTPUT_DIR = 7
EXIT_CONVERSION = 8


def _get_usage() -> str:
    return (
        f"note2docs {__version__}\n"
        "Usage:\n"
        "  note2docs [--help] [--version|--ver] [--list-themes]\n"
        "  note2docs NOTE.md --to-dir TO_DIR [options]\n\n"
        "Options:\n"
        "  --vault DIR                  Vault root used to resolve embeds (default: note folder)\n"
        "  --format html|docx|both      Output format (default: html)\n"
        "  --image-mode upload|embed    HTML images as files under TO_DIR/assets or data URIs\n"
        "  --theme NAME                 Theme name (fallback: NOTE2DOCS_THEME, then default)\n"
        "  --toc                        Insert a table of contents\n"
        "  --header TEXT                Header line above the title\n"
        "  --footer TEXT                Footer line below the content\n"
        "  --list-themes                Print available themes and exit\n"
        "  --verbose                    Verbose progress logs\n"
        "  --debug                      Debug logs"
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("note", nargs="?", help="Markdown note to convert")
    parser.add_argument("--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--ver", action="store_true")
    parser.add_argument("--list-themes", action="store_true", help="Print available themes and exit")
    parser.add_argument("--to-dir", help="Output directory")
    parser.add_argument("--vault", help="Vault root directory (default: the note's folder)")
    parser.add_argument("--format", default="html", help="html, docx or both")
    parser.add_argument("--image-mode", default="upload", help="upload or embed (HTML output only)")
    parser.add_argument("--theme", default=None, help="Theme name")
    parser.add_argument("--toc", action="store_true", help="Insert a table of contents")
    parser.add_argument("--header", default=None, help="Header text")
    parser.add_argument("--footer", default=None, help="Footer text")
    parser.add_argument("--verbose", action="store_true", help="Verbose progress logs")
    parser.add_argument("--debug", action="store_true", help="Debug logs")
    return parser


def _validate_choice_args(args: argparse.Namespace) -> str | None:
    if args.format not in FORMATS:
        return f"Invalid value for --format: {args.format} (expected html, docx or both)"
    if args.image_mode not in ("upload", "embed"):
        return f"Invalid value for --image-mode: {args.image_mode} (expected upload or embed)"
    return None


def _print_themes() -> None:
    from .themes import theme_options

    for option in theme_options():
        print(f"{option['value']:<10} {option['label']} - {option['description']}")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(_get_usage())
        return EXIT_UNKNOWN_ARGS

    if not argv or args.help:
        print(_get_usage())
        return 0

    if args.version or args.ver:
        print(__version__)
        return 0

    if args.list_themes:
        _print_themes()
        return 0

    choice_error = _validate_choice_args(args)
    if choice_error:
        print(choice_error, file=sys.stderr)
        return EXIT_INVALID_ARGS

    if not args.note or not args.to_dir:
        print(_get_usage())
        print("A note path and --to-dir are required unless --list-themes or --version/--ver is used", file=sys.stderr)
        return EXIT_INVALID_ARGS

    note_path = Path(args.note).expanduser().resolve()
    if not note_path.exists() or not note_path.is_file():
        print(f"Note not found: {note_path}", file=sys.stderr)
        return EXIT_INVALID_ARGS

    vault_root = Path(args.vault).expanduser().resolve() if args.vault else note_path.parent
    if not vault_root.exists() or not vault_root.is_dir():
        print(f"Vault directory not found: {vault_root}", file=sys.stderr)
        return EXIT_INVALID_ARGS
    try:
        note_rel = note_path.relative_to(vault_root).as_posix()
    except ValueError:
        print(f"Note {note_path} is not inside vault {vault_root}", file=sys.stderr)
        return EXIT_INVALID_ARGS

    to_dir = Path(args.to_dir).expanduser().resolve()
    if to_dir.exists() and not to_dir.is_dir():
        print(f"Output path is not a directory: {to_dir}", file=sys.stderr)
        return EXIT_OUTPUT_DIR
    try:
        to_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f"Unable to create output directory {to_dir}: {exc}", file=sys.stderr)
        return EXIT_OUTPUT_DIR

    try:
        from note2docs import core
        from note2docs.vault import DirectoryAssetStore, FileVault, slugify_filename
    except Exception as exc:
        print(f"Unable to import note2docs core: {exc}", file=sys.stderr)
        return EXIT_INVALID_ARGS

    core.setup_logging(args.verbose, args.debug)

    options = core.ConvertOptions(
        image_mode=args.image_mode,
        theme=core.theme_from_env(args.theme),
        include_toc=bool(args.toc),
        header_text=args.header,
        footer_text=args.footer,
    )
    vault = FileVault(vault_root)
    base = slugify_filename(note_path.stem)

    try:
        if args.format in ("html", "both"):
            store = DirectoryAssetStore(to_dir / "assets", base_dir=to_dir) if options.image_mode == "upload" else None
            html_text = asyncio.run(core.convert_note_file(note_rel, vault, store_asset=store, options=options))
            html_out = to_dir / f"{base}.html"
            core.safe_write_text(html_out, html_text)
            core.LOG.info("HTML written: %s", html_out)
        if args.format in ("docx", "both"):
            asyncio.run(core.export_docx(note_rel, vault, to_dir / f"{base}.docx", options=options))
    except (RuntimeError, OSError) as exc:
        print(f"Conversion failed: {exc}", file=sys.stderr)
        return EXIT_CONVERSION

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
