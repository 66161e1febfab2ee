"""Style presets substituted into exported HTML and DOCX files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

DEFAULT_THEME_NAME = "default"


@dataclass(frozen=True)
class Theme:
    name: str
    description: str

    font_family: str
    font_size: str
    line_height: str
    max_width: str
    text_color: str

    heading_font_family: str
    heading_color: str
    h1_size: str
    h2_size: str
    h3_size: str

    code_font_family: str
    code_font_size: str
    code_background: str
    code_block_background: str
    code_block_padding: str

    blockquote_border_color: str
    blockquote_text_color: str

    table_border_color: str
    table_header_background: str

    callout_background: str
    link_color: str


THEMES: Dict[str, Theme] = {
    "default": Theme(
        name="Default",
        description="Clean sans-serif",
        font_family="Arial, sans-serif",
        font_size="14px",
        line_height="1.6",
        max_width="800px",
        text_color="#000000",
        heading_font_family="Arial, sans-serif",
        heading_color="#000000",
        h1_size="2em",
        h2_size="1.5em",
        h3_size="1.17em",
        code_font_family="'Courier New', monospace",
        code_font_size="13px",
        code_background="#f5f5f5",
        code_block_background="#f5f5f5",
        code_block_padding="16px",
        blockquote_border_color="#ccc",
        blockquote_text_color="#666",
        table_border_color="#ddd",
        table_header_background="#f5f5f5",
        callout_background="#f8f9fa",
        link_color="#1a73e8",
    ),
    "academic": Theme(
        name="Academic",
        description="Serif fonts, conservative styling for papers",
        font_family="'Times New Roman', Georgia, serif",
        font_size="12pt",
        line_height="1.8",
        max_width="750px",
        text_color="#1a1a1a",
        heading_font_family="'Times New Roman', Georgia, serif",
        heading_color="#1a1a1a",
        h1_size="18pt",
        h2_size="14pt",
        h3_size="12pt",
        code_font_family="'Courier New', monospace",
        code_font_size="10pt",
        code_background="#f0f0f0",
        code_block_background="#f0f0f0",
        code_block_padding="12px",
        blockquote_border_color="#999",
        blockquote_text_color="#333",
        table_border_color="#000",
        table_header_background="#e8e8e8",
        callout_background="#f5f5f5",
        link_color="#0000cc",
    ),
    "business": Theme(
        name="Business",
        description="Professional, clean, blue accents",
        font_family="'Segoe UI', Calibri, Arial, sans-serif",
        font_size="11pt",
        line_height="1.5",
        max_width="800px",
        text_color="#333333",
        heading_font_family="'Segoe UI', Calibri, Arial, sans-serif",
        heading_color="#1b3a5c",
        h1_size="22pt",
        h2_size="16pt",
        h3_size="13pt",
        code_font_family="Consolas, 'Courier New', monospace",
        code_font_size="10pt",
        code_background="#eef2f7",
        code_block_background="#eef2f7",
        code_block_padding="14px",
        blockquote_border_color="#1b3a5c",
        blockquote_text_color="#555",
        table_border_color="#b0c4de",
        table_header_background="#1b3a5c",
        callout_background="#f0f4f8",
        link_color="#1b3a5c",
    ),
    "minimal": Theme(
        name="Minimal",
        description="Sparse, lots of whitespace, subtle styling",
        font_family="'Helvetica Neue', Helvetica, Arial, sans-serif",
        font_size="15px",
        line_height="1.75",
        max_width="680px",
        text_color="#222",
        heading_font_family="'Helvetica Neue', Helvetica, Arial, sans-serif",
        heading_color="#222",
        h1_size="1.8em",
        h2_size="1.3em",
        h3_size="1.1em",
        code_font_family="'SF Mono', Menlo, monospace",
        code_font_size="13px",
        code_background="#fafafa",
        code_block_background="#fafafa",
        code_block_padding="20px",
        blockquote_border_color="#e0e0e0",
        blockquote_text_color="#888",
        table_border_color="#eee",
        table_header_background="#fafafa",
        callout_background="#fafafa",
        link_color="#555",
    ),
    "colorful": Theme(
        name="Colorful",
        description="Vibrant colors, playful feel",
        font_family="'Inter', 'Segoe UI', sans-serif",
        font_size="14px",
        line_height="1.65",
        max_width="800px",
        text_color="#2d3436",
        heading_font_family="'Inter', 'Segoe UI', sans-serif",
        heading_color="#6c5ce7",
        h1_size="2em",
        h2_size="1.5em",
        h3_size="1.2em",
        code_font_family="'Fira Code', 'Courier New', monospace",
        code_font_size="13px",
        code_background="#ffeaa7",
        code_block_background="#2d3436",
        code_block_padding="16px",
        blockquote_border_color="#00cec9",
        blockquote_text_color="#636e72",
        table_border_color="#dfe6e9",
        table_header_background="#6c5ce7",
        callout_background="#f8f9fa",
        link_color="#e17055",
    ),
}


def get_theme(name: Optional[str]) -> Theme:
    return THEMES.get((name or "").strip().lower(), THEMES[DEFAULT_THEME_NAME])


def theme_options() -> List[Dict[str, str]]:
    return [
        {"value": key, "label": theme.name, "description": theme.description}
        for key, theme in THEMES.items()
    ]


def primary_font(family: str) -> str:
    """First family of a CSS font stack, unquoted."""
    first = family.split(",")[0].strip()
    return first.strip("'\"") or "Arial"
