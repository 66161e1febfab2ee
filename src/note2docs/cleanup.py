"""Rewrite rendered HTML into portable markup with inline, themed styles."""

from __future__ import annotations

import re
from typing import Optional

from .themes import Theme, get_theme

DEFAULT_CALLOUT_COLOR = "#448aff"

CALLOUT_COLORS = {
    "note": "#448aff",
    "abstract": "#00bcd4",
    "summary": "#00bcd4",
    "info": "#2196f3",
    "tip": "#00bfa5",
    "hint": "#00bfa5",
    "success": "#00c853",
    "check": "#00c853",
    "question": "#ff9800",
    "help": "#ff9800",
    "warning": "#ff9100",
    "caution": "#ff9100",
    "failure": "#ff5252",
    "danger": "#ff5252",
    "error": "#ff5252",
    "bug": "#ff5252",
    "example": "#7c4dff",
    "quote": "#9e9e9e",
    "cite": "#9e9e9e",
}

CALLOUT_RE = re.compile(
    r"<div[^>]*\bdata-callout=\"([^\"]*)\"[^>]*>\s*"
    r"<div[^>]*class=\"[^\"]*callout-title[^\"]*\"[^>]*>([\s\S]*?)</div>\s*"
    r"<div[^>]*class=\"[^\"]*callout-content[^\"]*\"[^>]*>([\s\S]*?)</div>\s*"
    r"</div>",
    re.IGNORECASE,
)
INTERNAL_LINK_RE = re.compile(r"<a[^>]*class=\"[^\"]*internal-link[^\"]*\"[^>]*>(.*?)</a>", re.IGNORECASE)
PRE_RE = re.compile(r"<pre>", re.IGNORECASE)
CODE_RE = re.compile(r"<code(?![^>]*\bstyle=)([^>]*)>", re.IGNORECASE)
BLOCKQUOTE_RE = re.compile(r"<blockquote>", re.IGNORECASE)
TABLE_RE = re.compile(r"<table(?![^>]*\bstyle=)", re.IGNORECASE)
TH_RE = re.compile(r"<th(?![^>]*\bstyle=)(?=[\s>])", re.IGNORECASE)
TD_RE = re.compile(r"<td(?![^>]*\bstyle=)(?=[\s>])", re.IGNORECASE)
CLASS_ATTR_RE = re.compile(r"\s+class=\"[^\"]*\"", re.IGNORECASE)
DATA_ATTR_RE = re.compile(r"\s+data-[a-z-]+=\"[^\"]*\"", re.IGNORECASE)
EMPTY_P_RE = re.compile(r"<p>\s*</p>", re.IGNORECASE)
MJX_RE = re.compile(r"<mjx-container[^>]*>[\s\S]*?</mjx-container>", re.IGNORECASE)


def callout_color(callout_type: str) -> str:
    return CALLOUT_COLORS.get(callout_type.strip().lower(), DEFAULT_CALLOUT_COLOR)


def _callout_table(match: "re.Match[str]", theme: Theme) -> str:
    color = callout_color(match.group(1))
    title = match.group(2).strip()
    content = match.group(3).strip()
    heading = f"<b>{title}</b><br/>" if title else ""
    return (
        f'<table style="border-left:4px solid {color};background:{theme.callout_background};'
        f'width:100%;margin:12px 0;">'
        f'<tr><td style="padding:12px;">{heading}{content}</td></tr></table>'
    )


def clean_html(html_text: str, theme: Optional[Theme] = None) -> str:
    """Apply the themed rewrites; running it twice yields the same markup."""
    t = theme or get_theme(None)
    result = html_text

    result = CALLOUT_RE.sub(lambda m: _callout_table(m, t), result)
    result = INTERNAL_LINK_RE.sub(r"<b>\1</b>", result)

    result = PRE_RE.sub(
        f'<pre style="background:{t.code_block_background};padding:{t.code_block_padding};'
        f"border-radius:4px;font-family:{t.code_font_family};white-space:pre;overflow-x:auto;"
        f'font-size:{t.code_font_size};">',
        result,
    )
    code_style = (
        f' style="background:{t.code_background};padding:2px 4px;border-radius:3px;'
        f'font-family:{t.code_font_family};font-size:{t.code_font_size};"'
    )
    result = CODE_RE.sub(lambda m: f"<code{m.group(1)}{code_style}>", result)
    result = BLOCKQUOTE_RE.sub(
        f'<blockquote style="border-left:4px solid {t.blockquote_border_color};padding-left:16px;'
        f'margin-left:0;color:{t.blockquote_text_color};">',
        result,
    )
    result = TABLE_RE.sub('<table style="border-collapse:collapse;width:100%;margin:12px 0;"', result)
    result = TH_RE.sub(
        f'<th style="border:1px solid {t.table_border_color};padding:8px;'
        f'background:{t.table_header_background};text-align:left;"',
        result,
    )
    result = TD_RE.sub(f'<td style="border:1px solid {t.table_border_color};padding:8px;"', result)

    result = CLASS_ATTR_RE.sub("", result)
    result = DATA_ATTR_RE.sub("", result)
    result = MJX_RE.sub("", result)
    result = EMPTY_P_RE.sub("", result)
    return result
