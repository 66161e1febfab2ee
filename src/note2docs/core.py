"""Core pipeline for note2docs."""

from __future__ import annotations

import asyncio
import html
import inspect
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Callable, List, Optional

from .cleanup import clean_html
from .docx_writer import write_docx
from .document import Document
from .errors import RenderError
from .extract import (
    extract_code_spans,
    extract_image_embeds,
    extract_math,
    restore_math,
    restore_nested,
    strip_frontmatter,
)
from .images import IMAGE_MODE_EMBED, IMAGE_MODE_UPLOAD, IMAGE_MODES, StoreAsset, resolve_images
from .placeholders import ImageExtraction, MathExtraction, restore
from .rasterize import RasterBackend
from .themes import DEFAULT_THEME_NAME, THEMES, Theme, get_theme
from .toc import add_table_of_contents
from .walker import ImageFetcher, LatexRenderer, html_to_document

LOG = logging.getLogger("note2docs")

THEME_ENV = "NOTE2DOCS_THEME"

Renderer = Callable[[str, str], Any]


@dataclass
class ConvertOptions:
    image_mode: str = IMAGE_MODE_UPLOAD
    theme: str = DEFAULT_THEME_NAME
    include_toc: bool = False
    header_text: Optional[str] = None
    footer_text: Optional[str] = None

    def validate(self) -> None:
        if self.image_mode not in IMAGE_MODES:
            raise ValueError(f"Unknown image mode: {self.image_mode}")
        if self.theme.strip().lower() not in THEMES:
            LOG.warning("Unknown theme %r, falling back to %s", self.theme, DEFAULT_THEME_NAME)


@dataclass
class PreparedNote:
    """Markdown ready for the renderer plus what was lifted out of it."""

    markdown: str
    math: List[MathExtraction] = field(default_factory=list)
    images: List[ImageExtraction] = field(default_factory=list)


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_note2docs_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_note2docs_logger(level)


def theme_from_env(explicit: Optional[str]) -> str:
    return explicit or os.environ.get(THEME_ENV) or DEFAULT_THEME_NAME


def default_renderer() -> Renderer:
    from .render import MarkdownRenderer

    return MarkdownRenderer()


def prepare_markdown(raw_markdown: str) -> PreparedNote:
    """Strip frontmatter and lift math and image embeds out of the note.

    Code spans are hidden while math and images are extracted, then put back
    so the renderer still sees (and highlights) them.
    """
    markdown = strip_frontmatter(raw_markdown)
    markdown, code = extract_code_spans(markdown)
    markdown, math = extract_math(markdown)
    markdown, images = extract_image_embeds(markdown)
    restore_nested(math, images, code)
    markdown = restore(markdown, code)
    LOG.debug("Extracted %d code span(s), %d math span(s), %d image(s)", len(code), len(math), len(images))
    return PreparedNote(markdown=markdown, math=math, images=images)


async def render_markdown(renderer: Renderer, markdown: str, source_path: str) -> str:
    try:
        result = renderer(markdown, source_path)
        if inspect.isawaitable(result):
            result = await result
    except RenderError:
        raise
    except Exception as exc:
        raise RenderError(f"Markdown rendering failed for {source_path or '<note>'}: {exc}") from exc
    if not isinstance(result, str):
        raise RenderError(f"Renderer returned {type(result).__name__}, expected str")
    return result


def build_html_document(
    body_html: str,
    title: str,
    theme: Theme,
    header_text: Optional[str] = None,
    footer_text: Optional[str] = None,
) -> str:
    header_html = (
        f'<p style="color:#888;font-size:12px;margin-bottom:4px;">{html.escape(header_text)}</p>'
        if header_text
        else ""
    )
    footer_html = (
        '<hr style="border:none;border-top:1px solid #ddd;margin-top:40px;">'
        f'<p style="color:#888;font-size:12px;">{html.escape(footer_text)}</p>'
        if footer_text
        else ""
    )
    safe_title = html.escape(title)
    t = theme
    return (
        "<!DOCTYPE html>\n"
        "<html>\n"
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{safe_title}</title>\n"
        "</head>\n"
        f'<body style="font-family:{t.font_family};max-width:{t.max_width};margin:auto;'
        f'line-height:{t.line_height};font-size:{t.font_size};color:{t.text_color};">\n'
        f"{header_html}\n"
        f'<h1 style="font-family:{t.heading_font_family};color:{t.heading_color};font-size:{t.h1_size};">'
        f"{safe_title}</h1>\n"
        f"{body_html}\n"
        f"{footer_html}\n"
        "</body>\n"
        "</html>"
    )


async def convert_note_to_html(
    markdown_text: str,
    *,
    title: str,
    source_path: str,
    renderer: Renderer,
    vault: Any,
    store_asset: Optional[StoreAsset] = None,
    options: Optional[ConvertOptions] = None,
    rasterizer: Optional[RasterBackend] = None,
) -> str:
    """Convert one note into a complete, themed HTML document.

    ``vault`` supplies ``resolve_asset`` and ``read_binary``; ``store_asset``
    is only consulted in upload mode. Rendering failures raise ``RenderError``;
    per-image failures become inline markers.
    """
    opts = options or ConvertOptions()
    opts.validate()
    theme = get_theme(opts.theme)

    prepared = prepare_markdown(markdown_text)
    LOG.info("Converting %s: %d math, %d image(s)", source_path or title, len(prepared.math), len(prepared.images))

    body = await render_markdown(renderer, prepared.markdown, source_path)
    body = restore_math(body, prepared.math)
    body = await resolve_images(
        body,
        prepared.images,
        vault,
        source_path,
        image_mode=opts.image_mode,
        store_asset=store_asset,
        rasterizer=rasterizer,
    )
    body = clean_html(body, theme)
    if opts.include_toc:
        body = add_table_of_contents(body)

    return build_html_document(body, title, theme, opts.header_text, opts.footer_text)


def note_title(note_path: str) -> str:
    return PurePosixPath(note_path).stem


async def convert_note_file(
    note_path: str,
    vault: Any,
    *,
    renderer: Optional[Renderer] = None,
    store_asset: Optional[StoreAsset] = None,
    options: Optional[ConvertOptions] = None,
    rasterizer: Optional[RasterBackend] = None,
) -> str:
    """Read ``note_path`` (vault-relative) through the vault and convert it."""
    markdown_text = await vault.read_text(note_path)
    return await convert_note_to_html(
        markdown_text,
        title=note_title(note_path),
        source_path=note_path,
        renderer=renderer or default_renderer(),
        vault=vault,
        store_asset=store_asset,
        options=options,
        rasterizer=rasterizer,
    )


def _embed_options(options: Optional[ConvertOptions]) -> ConvertOptions:
    opts = options or ConvertOptions()
    return ConvertOptions(
        image_mode=IMAGE_MODE_EMBED,
        theme=opts.theme,
        include_toc=opts.include_toc,
        header_text=opts.header_text,
        footer_text=opts.footer_text,
    )


async def build_document(
    note_path: str,
    vault: Any,
    *,
    renderer: Optional[Renderer] = None,
    options: Optional[ConvertOptions] = None,
    rasterizer: Optional[RasterBackend] = None,
    fetch_image: Optional[ImageFetcher] = None,
    render_latex: Optional[LatexRenderer] = None,
) -> Document:
    """Document model of a note, built from its embed-mode HTML."""
    html_text = await convert_note_file(
        note_path,
        vault,
        renderer=renderer,
        options=_embed_options(options),
        rasterizer=rasterizer,
    )
    return await asyncio.to_thread(html_to_document, html_text, note_title(note_path), fetch_image, render_latex)


async def export_docx(
    note_path: str,
    vault: Any,
    target: Path,
    *,
    renderer: Optional[Renderer] = None,
    options: Optional[ConvertOptions] = None,
    rasterizer: Optional[RasterBackend] = None,
    fetch_image: Optional[ImageFetcher] = None,
    render_latex: Optional[LatexRenderer] = None,
) -> Path:
    document = await build_document(
        note_path,
        vault,
        renderer=renderer,
        options=options,
        rasterizer=rasterizer,
        fetch_image=fetch_image,
        render_latex=render_latex,
    )
    theme = get_theme((options or ConvertOptions()).theme)
    return await asyncio.to_thread(write_docx, document, Path(target), theme)


def safe_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
