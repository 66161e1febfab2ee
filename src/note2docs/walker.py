"""Convert cleaned HTML into the document model.

Block elements are dispatched by tag; inline content is walked recursively
with the formatting inherited from ancestor elements. Image bytes are fetched
and LaTeX spans are rasterized while walking, one element at a time.
"""

from __future__ import annotations

import base64
import io
import logging
import re
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote_to_bytes

from .document import (
    Block,
    Blockquote,
    CodeBlock,
    Document,
    Heading,
    HorizontalRule,
    Hyperlink,
    Image,
    ImageRun,
    ListBlock,
    ListItem,
    Paragraph,
    Run,
    Table,
    TableCell,
    TableRow,
    TextRun,
)
from .errors import LatexRenderError

LOG = logging.getLogger("note2docs")

DEFAULT_IMAGE_WIDTH = 500
DEFAULT_IMAGE_HEIGHT = 300
INLINE_IMAGE_MAX_WIDTH = 600
BLOCK_IMAGE_MAX_WIDTH = 550
DISPLAY_MATH_MAX_WIDTH = 500
INLINE_MATH_MAX_WIDTH = 300
DISPLAY_MATH_FONT_SIZE = 20
INLINE_MATH_FONT_SIZE = 16
DISPLAY_MATH_PADDING = 20
INLINE_MATH_PADDING = 4
MATH_MIN_WIDTH = 50
MATH_MIN_HEIGHT = 30
MATH_SCALE = 2
FETCH_TIMEOUT = 30

LATEX_FONT_CANDIDATES = ("DejaVuSerif.ttf", "LiberationSerif-Regular.ttf", "Times New Roman.ttf", "times.ttf")
DOCX_IMAGE_FORMATS = {"PNG", "JPEG", "GIF", "BMP", "TIFF"}

LATEX_SPLIT_RE = re.compile(r"(\\\([\s\S]*?\\\)|\\\[[\s\S]*?\\\])")
DISPLAY_LATEX_RE = re.compile(r"^\\\[([\s\S]*?)\\\]$")
INLINE_LATEX_RE = re.compile(r"^\\\(([\s\S]*?)\\\)$")
WHITESPACE_RE = re.compile(r"\s+")
PIXELS_RE = re.compile(r"^\s*(\d+)(?:px)?\s*$")

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
CONTAINER_TAGS = ("div", "section", "article", "main")
DROPPED_TAGS = ("script", "style", "head", "title", "meta", "link")
# Block tags met inside inline content end with a line break.
NESTED_BLOCK_TAGS = ("p", "div")

ImageFetcher = Callable[[str], Tuple[bytes, int, int]]
LatexRenderer = Callable[[str, bool], Tuple[bytes, int, int]]


@dataclass(frozen=True)
class WalkContext:
    bold: bool = False
    italic: bool = False
    code: bool = False
    hyperlink: Optional[str] = None


def fit_width(width: int, height: int, max_width: int) -> Tuple[int, int]:
    """Downscale proportionally so ``width`` does not exceed ``max_width``."""
    if width <= max_width or width <= 0:
        return width, height
    scale = max_width / width
    return max_width, max(1, round(height * scale))


def decode_data_uri(src: str) -> bytes:
    header, _, payload = src.partition(",")
    if not header.startswith("data:"):
        raise ValueError("Not a data URI")
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return unquote_to_bytes(payload)


def _normalize_image(data: bytes) -> Tuple[bytes, int, int]:
    try:
        from PIL import Image as PILImage  # type: ignore
    except Exception as exc:
        raise RuntimeError(f"Pillow not available: {exc}") from exc

    try:
        with PILImage.open(io.BytesIO(data)) as img:
            width, height = img.size
            if img.format in DOCX_IMAGE_FORMATS:
                return data, width, height
            out = io.BytesIO()
            img.convert("RGBA").save(out, format="PNG")
            return out.getvalue(), width, height
    except Exception as exc:
        LOG.debug("Unable to read image dimensions, using defaults: %s", exc)
        return data, DEFAULT_IMAGE_WIDTH, DEFAULT_IMAGE_HEIGHT


def fetch_image_data(src: str) -> Tuple[bytes, int, int]:
    """Return image bytes plus natural pixel size for a ``src`` attribute.

    Data URIs are decoded in place, ``http(s)`` sources are downloaded.
    Formats a word processor cannot embed are converted to PNG.
    """
    if src.startswith("data:"):
        data = decode_data_uri(src)
    elif src.startswith(("http://", "https://")):
        import requests

        response = requests.get(src, timeout=FETCH_TIMEOUT)
        response.raise_for_status()
        data = response.content
    else:
        raise ValueError(f"Unsupported image source: {src[:80]}")
    return _normalize_image(data)


def _load_font(image_font, size: int):
    for name in LATEX_FONT_CANDIDATES:
        try:
            return image_font.truetype(name, size)
        except OSError:
            continue
    return image_font.load_default(size=size)


def render_latex_png(latex: str, is_display: bool) -> Tuple[bytes, int, int]:
    """Draw the LaTeX source as text on a white canvas.

    Returns PNG bytes and the logical size; the bitmap itself is drawn at
    ``MATH_SCALE`` times that size.
    """
    try:
        from PIL import Image as PILImage, ImageDraw, ImageFont  # type: ignore
    except Exception as exc:
        raise LatexRenderError(f"Pillow not available: {exc}") from exc

    font_size = DISPLAY_MATH_FONT_SIZE if is_display else INLINE_MATH_FONT_SIZE
    padding = DISPLAY_MATH_PADDING if is_display else INLINE_MATH_PADDING
    try:
        probe = ImageDraw.Draw(PILImage.new("RGB", (1, 1)))
        left, top, right, bottom = probe.textbbox((0, 0), latex, font=_load_font(ImageFont, font_size))
        width = max(int(right - left) + padding * 2, MATH_MIN_WIDTH)
        height = max(int(bottom - top) + padding * 2, MATH_MIN_HEIGHT)

        canvas_w, canvas_h = width * MATH_SCALE, height * MATH_SCALE
        canvas = PILImage.new("RGB", (canvas_w, canvas_h), (255, 255, 255))
        draw = ImageDraw.Draw(canvas)
        font = _load_font(ImageFont, font_size * MATH_SCALE)
        left, top, right, bottom = draw.textbbox((0, 0), latex, font=font)
        text_w, text_h = right - left, bottom - top
        y = (canvas_h - text_h) / 2 - top
        x = (canvas_w - text_w) / 2 - left if is_display else padding * MATH_SCALE - left
        draw.text((x, y), latex, fill=(0, 0, 0), font=font)

        out = io.BytesIO()
        canvas.save(out, format="PNG")
    except Exception as exc:
        raise LatexRenderError(f"Unable to render LaTeX {latex!r}: {exc}") from exc
    return out.getvalue(), width, height


def _trim_runs(runs: List[Run]) -> List[Run]:
    """Drop leading/trailing breaks and whitespace around a block's runs."""
    while runs and isinstance(runs[0], TextRun) and (runs[0].line_break or not runs[0].text.strip()):
        runs = runs[1:]
    while runs and isinstance(runs[-1], TextRun) and (runs[-1].line_break or not runs[-1].text.strip()):
        runs = runs[:-1]
    if runs and isinstance(runs[0], TextRun):
        runs = [replace(runs[0], text=runs[0].text.lstrip())] + runs[1:]
    if runs and isinstance(runs[-1], TextRun):
        runs = runs[:-1] + [replace(runs[-1], text=runs[-1].text.rstrip())]
    return runs


def _is_display_math_only(element) -> bool:
    if element.find(["img", "code"]) is not None:
        return False
    parts = LATEX_SPLIT_RE.split(element.get_text().strip())
    return len(parts) == 3 and not parts[0] and not parts[2] and DISPLAY_LATEX_RE.match(parts[1]) is not None


class HtmlDocumentWalker:
    def __init__(
        self,
        fetch_image: Optional[ImageFetcher] = None,
        render_latex: Optional[LatexRenderer] = None,
    ) -> None:
        self.fetch_image = fetch_image or fetch_image_data
        self.render_latex = render_latex or render_latex_png
        self._handlers: Dict[str, Callable[..., List[Block]]] = {
            "p": self._paragraph,
            "pre": self._code_block,
            "blockquote": self._blockquote,
            "table": self._table,
            "ul": self._list,
            "ol": self._list,
            "img": self._standalone_image,
            "hr": self._rule,
        }
        for tag in HEADING_TAGS:
            self._handlers[tag] = self._heading
        for tag in CONTAINER_TAGS:
            self._handlers[tag] = self._container
        for tag in DROPPED_TAGS:
            self._handlers[tag] = self._drop

    # ---- document ----

    def convert(self, html_text: str, title: Optional[str] = None) -> Document:
        try:
            from bs4 import BeautifulSoup  # type: ignore
        except Exception as exc:
            raise RuntimeError(f"beautifulsoup4 not available: {exc}") from exc

        soup = BeautifulSoup(html_text, "html.parser")
        if title is None:
            title = soup.title.get_text(strip=True) if soup.title is not None else ""
        root = soup.body if soup.body is not None else soup

        blocks: List[Block] = []
        for element in root.find_all(recursive=False):
            blocks.extend(self.convert_block(element))
        if not blocks:
            blocks.append(Paragraph([TextRun("(empty document)")]))
        LOG.info("Document model built: %d block(s)", len(blocks))
        return Document(title=title, blocks=blocks)

    def convert_block(self, element) -> List[Block]:
        handler = self._handlers.get(element.name, self._fallback)
        try:
            return handler(element)
        except Exception as exc:
            LOG.warning("Unable to convert <%s> block: %s", element.name, exc)
            LOG.debug("Block conversion failure details", exc_info=exc)
            return [Paragraph([TextRun(f"[Unable to convert <{element.name}> block]", italic=True)])]

    # ---- inline ----

    def walk_inline(self, node, ctx: WalkContext) -> List[Run]:
        from bs4.element import NavigableString, PreformattedString, Tag  # type: ignore

        if isinstance(node, PreformattedString):
            return []
        if isinstance(node, NavigableString):
            return self.text_runs(str(node), ctx)
        if not isinstance(node, Tag):
            return []

        tag = node.name
        if tag in DROPPED_TAGS:
            return []
        if tag == "br":
            return [TextRun(line_break=True)]
        if tag == "img":
            return self._link([self._image_run(node, INLINE_IMAGE_MAX_WIDTH)], ctx)

        if tag in ("strong", "b"):
            ctx = replace(ctx, bold=True)
        elif tag in ("em", "i"):
            ctx = replace(ctx, italic=True)
        elif tag == "code":
            ctx = replace(ctx, code=True)
        elif tag == "a" and node.get("href"):
            ctx = replace(ctx, hyperlink=node.get("href"))

        runs: List[Run] = []
        for child in node.children:
            runs.extend(self.walk_inline(child, ctx))
        if tag in NESTED_BLOCK_TAGS and runs:
            runs.append(TextRun(line_break=True))
        return runs

    def text_runs(self, text: str, ctx: WalkContext) -> List[Run]:
        """Text node to runs; ``\\(..\\)`` and ``\\[..\\]`` spans become images."""
        runs: List[Run] = []
        # Code keeps its delimiters as literal text.
        parts = [text] if ctx.code else LATEX_SPLIT_RE.split(text)
        for part in parts:
            if not part:
                continue
            display = None if ctx.code else DISPLAY_LATEX_RE.match(part)
            inline = None if ctx.code else INLINE_LATEX_RE.match(part)
            if display or inline:
                latex = (display or inline).group(1)
                runs.extend(self._link([self._math_run(latex, display is not None)], ctx))
                continue
            plain = WHITESPACE_RE.sub(" ", part)
            if not plain:
                continue
            leaf = TextRun(text=plain, bold=ctx.bold, italic=ctx.italic, monospace=ctx.code)
            runs.extend(self._link([leaf], ctx))
        return runs

    def _link(self, leaves: List[Run], ctx: WalkContext) -> List[Run]:
        if not ctx.hyperlink:
            return leaves
        return [Hyperlink(runs=[leaf], target=ctx.hyperlink) for leaf in leaves]  # type: ignore[list-item]

    def _math_run(self, latex: str, is_display: bool) -> Run:
        try:
            data, width, height = self.render_latex(latex, is_display)
        except Exception as exc:
            LOG.warning("LaTeX rendering failed, keeping source text: %s", exc)
            return TextRun(text=latex, italic=True)
        max_width = DISPLAY_MATH_MAX_WIDTH if is_display else INLINE_MATH_MAX_WIDTH
        width, height = fit_width(width, height, max_width)
        return ImageRun(data=data, width=width, height=height)

    def _image_run(self, node, max_width: int) -> Run:
        src = node.get("src") or ""
        try:
            data, width, height = self.fetch_image(src)
        except Exception as exc:
            LOG.warning("Failed to embed image %s: %s", src[:80], exc)
            return TextRun(text="[Image]", italic=True)

        requested = PIXELS_RE.match(node.get("width") or "")
        if requested and width > 0:
            target = int(requested.group(1))
            height = max(1, round(height * target / width))
            width = target
        width, height = fit_width(width, height, max_width)
        return ImageRun(data=data, width=width, height=height)

    def _block_runs(self, element, ctx: Optional[WalkContext] = None) -> List[Run]:
        ctx = ctx or WalkContext()
        runs: List[Run] = []
        for child in element.children:
            runs.extend(self.walk_inline(child, ctx))
        return _trim_runs(runs)

    # ---- blocks ----

    def _heading(self, element) -> List[Block]:
        runs = self._block_runs(element)
        if not runs:
            runs = [TextRun(element.get_text())]
        return [Heading(level=int(element.name[1]), runs=runs, anchor=element.get("id"))]

    def _paragraph(self, element) -> List[Block]:
        if not element.get_text().strip() and element.find("img") is None:
            return []
        return [Paragraph(self._block_runs(element), centered=_is_display_math_only(element))]

    def _code_block(self, element) -> List[Block]:
        text = element.get_text()
        if text.endswith("\n"):
            text = text[:-1]
        return [CodeBlock(lines=text.split("\n"))]

    def _blockquote(self, element) -> List[Block]:
        from bs4.element import NavigableString, PreformattedString, Tag  # type: ignore

        blocks: List[Block] = []
        for child in element.children:
            if isinstance(child, Tag):
                blocks.extend(self.convert_block(child))
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                if str(child).strip():
                    blocks.append(Paragraph(_trim_runs(self.text_runs(str(child), WalkContext()))))
        if not blocks:
            text = element.get_text().strip()
            if not text:
                return []
            blocks.append(Paragraph([TextRun(text)]))
        return [Blockquote(blocks=blocks)]

    def _table(self, element) -> List[Block]:
        rows: List[TableRow] = []
        for tr in element.find_all("tr"):
            cells = tr.find_all(["th", "td"], recursive=False)
            if not cells:
                continue
            header = tr.find("th", recursive=False) is not None
            ctx = WalkContext(bold=header)
            rows.append(TableRow(cells=[TableCell(self._block_runs(cell, ctx)) for cell in cells], header=header))
        return [Table(rows=rows)] if rows else []

    def _list(self, element) -> List[Block]:
        return [self._list_block(element)]

    def _list_block(self, element) -> ListBlock:
        from bs4.element import Tag  # type: ignore

        items: List[ListItem] = []
        for li in element.find_all("li", recursive=False):
            runs: List[Run] = []
            children: List[ListBlock] = []
            for child in li.children:
                if isinstance(child, Tag) and child.name in ("ul", "ol"):
                    children.append(self._list_block(child))
                else:
                    runs.extend(self.walk_inline(child, WalkContext()))
            items.append(ListItem(runs=_trim_runs(runs), children=children))
        return ListBlock(items=items, ordered=element.name == "ol")

    def _standalone_image(self, element) -> List[Block]:
        run = self._image_run(element, BLOCK_IMAGE_MAX_WIDTH)
        if isinstance(run, ImageRun):
            return [Image(data=run.data, width=run.width, height=run.height)]
        return [Paragraph([run])]

    def _rule(self, element) -> List[Block]:
        return [HorizontalRule()]

    def _container(self, element) -> List[Block]:
        blocks: List[Block] = []
        for child in element.find_all(recursive=False):
            blocks.extend(self.convert_block(child))
        return blocks

    def _drop(self, element) -> List[Block]:
        return []

    def _fallback(self, element) -> List[Block]:
        text = element.get_text().strip()
        if not text:
            return []
        return [Paragraph([TextRun(WHITESPACE_RE.sub(" ", text))])]


def html_to_document(
    html_text: str,
    title: Optional[str] = None,
    fetch_image: Optional[ImageFetcher] = None,
    render_latex: Optional[LatexRenderer] = None,
) -> Document:
    return HtmlDocumentWalker(fetch_image=fetch_image, render_latex=render_latex).convert(html_text, title)
