"""SVG to PNG rasterization."""

from __future__ import annotations

import io
import logging
import re
from typing import Callable, Optional, Tuple

from .errors import AssetProcessingError, RasterBackendError, SvgDecodeError

LOG = logging.getLogger("note2docs")

DEFAULT_SVG_WIDTH = 800.0
DEFAULT_SVG_HEIGHT = 600.0
SUPERSAMPLE = 2

RasterBackend = Callable[[bytes, int, int], bytes]

SVG_ROOT_RE = re.compile(r"<svg\b[^>]*>", re.IGNORECASE)
VIEWBOX_RE = re.compile(r"""\bviewBox\s*=\s*["']([^"']+)["']""")
WIDTH_ATTR_RE = re.compile(r"""(?<![\w-])width\s*=\s*["'](\d+(?:\.\d+)?)(?:px)?["']""")
HEIGHT_ATTR_RE = re.compile(r"""(?<![\w-])height\s*=\s*["'](\d+(?:\.\d+)?)(?:px)?["']""")


def svg_dimensions(svg_text: str) -> Tuple[float, float]:
    """Return the intrinsic size: explicit attributes > viewBox > 800x600."""
    width, height = DEFAULT_SVG_WIDTH, DEFAULT_SVG_HEIGHT
    root = SVG_ROOT_RE.search(svg_text)
    if root is None:
        return width, height
    tag = root.group(0)

    viewbox = VIEWBOX_RE.search(tag)
    if viewbox:
        parts = [p for p in re.split(r"[\s,]+", viewbox.group(1).strip()) if p]
        if len(parts) >= 4:
            try:
                vb_width, vb_height = float(parts[2]), float(parts[3])
            except ValueError:
                LOG.debug("Ignoring malformed viewBox: %s", viewbox.group(1))
            else:
                if vb_width > 0 and vb_height > 0:
                    width, height = vb_width, vb_height

    width_match = WIDTH_ATTR_RE.search(tag)
    height_match = HEIGHT_ATTR_RE.search(tag)
    if width_match:
        width = float(width_match.group(1))
    if height_match:
        height = float(height_match.group(1))
    return width, height


def cairosvg_backend(svg_bytes: bytes, width: int, height: int) -> bytes:
    """Render with cairosvg and flatten the result onto opaque white."""
    try:
        import cairosvg  # type: ignore
    except Exception as exc:
        raise RasterBackendError(f"cairosvg not available: {exc}") from exc

    try:
        from PIL import Image  # type: ignore
    except Exception as exc:
        raise RasterBackendError(f"Pillow not available: {exc}") from exc

    try:
        rendered = cairosvg.svg2png(bytestring=svg_bytes, output_width=width, output_height=height)
    except Exception as exc:
        raise SvgDecodeError(f"Unable to render SVG: {exc}") from exc

    with Image.open(io.BytesIO(rendered)) as img:
        rgba = img.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, (255, 255, 255))
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        out = io.BytesIO()
        canvas.save(out, format="PNG")
    return out.getvalue()


def rasterize_svg(svg_bytes: bytes, backend: Optional[RasterBackend] = None) -> bytes:
    try:
        svg_text = svg_bytes.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SvgDecodeError(f"SVG is not valid UTF-8: {exc}") from exc
    if SVG_ROOT_RE.search(svg_text) is None:
        raise SvgDecodeError("No <svg> root element found")

    width, height = svg_dimensions(svg_text)
    pixel_width = max(1, round(width * SUPERSAMPLE))
    pixel_height = max(1, round(height * SUPERSAMPLE))
    LOG.debug("Rasterizing SVG at %dx%d px", pixel_width, pixel_height)

    render = backend or cairosvg_backend
    try:
        return render(svg_bytes, pixel_width, pixel_height)
    except AssetProcessingError:
        raise
    except Exception as exc:
        raise AssetProcessingError(f"SVG rasterization failed: {exc}") from exc
