"""Pre-render extraction stages: frontmatter, code spans, math and image embeds."""

from __future__ import annotations

import html
import re
from typing import List, Sequence, Tuple
from urllib.parse import unquote

from .placeholders import (
    KIND_CODE_BLOCK,
    KIND_CODE_INLINE,
    KIND_IMAGE,
    KIND_MATH_DISPLAY,
    KIND_MATH_INLINE,
    Extraction,
    ImageExtraction,
    MathExtraction,
    extract,
    restore,
)

FRONTMATTER_RE = re.compile(r"^---\r?\n[\s\S]*?\r?\n---(?:\r?\n|$)")
FENCED_CODE_RE = re.compile(r"```[\s\S]*?```")
INLINE_CODE_RE = re.compile(r"`[^`\n]+`")
DISPLAY_MATH_RE = re.compile(r"\$\$([\s\S]+?)\$\$")
# Currency guard: "costs $5 or $10" must not match.
INLINE_MATH_RE = re.compile(r"(?<!\$)\$(?!\$|\s)([^$\n]+?)(?<!\s)\$(?!\$)")
WIKILINK_IMAGE_RE = re.compile(r"!\[\[([^\]|]+?)(?:\|([^\]]*))?\]\]")
# Targets with a URL scheme (https:, data:) are not vault assets.
MARKDOWN_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\((?!\s*[a-zA-Z][a-zA-Z0-9+.-]*:)([^)]+)\)")
IMAGE_SIZE_RE = re.compile(r"^\d+(?:x\d+)?$")


def strip_frontmatter(markdown: str) -> str:
    match = FRONTMATTER_RE.match(markdown)
    return markdown[match.end() :] if match else markdown


def extract_code_spans(markdown: str) -> Tuple[str, List[Extraction]]:
    """Hide fenced blocks and inline code so later stages ignore their contents."""
    cleaned, blocks = extract(markdown, FENCED_CODE_RE, KIND_CODE_BLOCK)
    cleaned, inline = extract(cleaned, INLINE_CODE_RE, KIND_CODE_INLINE, start=len(blocks))
    return cleaned, blocks + inline


def _math_builder(is_display: bool):
    def build(match: "re.Match[str]", placeholder: str) -> MathExtraction:
        return MathExtraction(
            placeholder=placeholder,
            original=match.group(0),
            is_display=is_display,
            latex=match.group(1).strip(),
        )

    return build


def extract_math(markdown: str) -> Tuple[str, List[MathExtraction]]:
    # Display first so "$$a$$" is never read as two inline delimiters.
    cleaned, display = extract(markdown, DISPLAY_MATH_RE, KIND_MATH_DISPLAY, build=_math_builder(True))
    cleaned, inline = extract(
        cleaned, INLINE_MATH_RE, KIND_MATH_INLINE, start=len(display), build=_math_builder(False)
    )
    return cleaned, display + inline  # type: ignore[return-value]


def restore_math(html_text: str, math: Sequence[MathExtraction]) -> str:
    """Re-inject LaTeX as escaped ``\\(..\\)`` / ``\\[..\\]`` text."""
    result = html_text
    for record in reversed(math):
        latex_html = html.escape(record.latex, quote=True)
        restored = f"\\[{latex_html}\\]" if record.is_display else f"\\({latex_html}\\)"
        result = result.replace(record.placeholder, restored)
    return result


def _is_svg(path: str) -> bool:
    return path.lower().endswith(".svg")


def _wikilink_image(match: "re.Match[str]", placeholder: str) -> ImageExtraction:
    vault_path = match.group(1).strip()
    suffix = (match.group(2) or "").strip()
    width = None
    alt = ""
    if suffix:
        if IMAGE_SIZE_RE.match(suffix):
            width = suffix.split("x")[0]
        else:
            alt = suffix
    return ImageExtraction(
        placeholder=placeholder,
        original=match.group(0),
        vault_path=vault_path,
        alt=alt,
        width=width,
        is_svg=_is_svg(vault_path),
    )


def _markdown_image(match: "re.Match[str]", placeholder: str) -> ImageExtraction:
    vault_path = unquote(match.group(2).strip())
    return ImageExtraction(
        placeholder=placeholder,
        original=match.group(0),
        vault_path=vault_path,
        alt=match.group(1) or "",
        width=None,
        is_svg=_is_svg(vault_path),
    )


def extract_image_embeds(markdown: str) -> Tuple[str, List[ImageExtraction]]:
    """Pull out ``![[...]]`` embeds, then ``![alt](path)`` images."""
    cleaned, wiki = extract(markdown, WIKILINK_IMAGE_RE, KIND_IMAGE, build=_wikilink_image)
    cleaned, standard = extract(
        cleaned, MARKDOWN_IMAGE_RE, KIND_IMAGE, start=len(wiki), build=_markdown_image
    )
    return cleaned, wiki + standard  # type: ignore[return-value]


def restore_nested(
    math: Sequence[MathExtraction],
    images: Sequence[ImageExtraction],
    code: Sequence[Extraction],
) -> None:
    """Put earlier placeholders back inside records taken by later stages.

    A code span inside math, or code and math inside an image caption, were
    replaced before the enclosing record was built. Records are updated in
    place.
    """
    for record in math:
        record.latex = restore(record.latex, code)
        record.original = restore(record.original, code)
    for img in images:
        img.alt = restore(restore(img.alt, math), code)
        img.original = restore(restore(img.original, math), code)
        img.vault_path = restore(restore(img.vault_path, math), code)
        img.is_svg = _is_svg(img.vault_path)
