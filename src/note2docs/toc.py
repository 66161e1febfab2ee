"""Table of contents built from the headings of cleaned HTML."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

HEADING_RE = re.compile(r"<h([1-6])(?:[^>]*)>([\s\S]*?)</h\1>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]*>")
SLUG_MAX_LEN = 50
TOC_INDENT_PX = 20


@dataclass
class TocEntry:
    level: int
    text: str
    id: str


def _heading_text(content: str) -> str:
    return TAG_RE.sub("", content).strip()


def heading_slug(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:SLUG_MAX_LEN]


def parse_headings(html_text: str) -> List[TocEntry]:
    entries: List[TocEntry] = []
    counter = 0
    for match in HEADING_RE.finditer(html_text):
        text = _heading_text(match.group(2))
        if not text:
            continue
        counter += 1
        entries.append(TocEntry(level=int(match.group(1)), text=text, id=f"toc-{counter}-{heading_slug(text)}"))
    return entries


def build_toc_html(entries: List[TocEntry]) -> str:
    if not entries:
        return ""

    min_level = min(entry.level for entry in entries)
    lines = [
        '<div style="margin:20px 0;padding:16px;background:#f8f9fa;border-radius:4px;">',
        '<p style="margin:0 0 8px 0;font-weight:bold;">Table of Contents</p>',
        '<ul style="list-style-type:none;padding-left:0;margin:0;">',
    ]
    for entry in entries:
        indent = (entry.level - min_level) * TOC_INDENT_PX
        lines.append(
            f'<li style="padding-left:{indent}px;margin:4px 0;">'
            f'<a href="#{entry.id}" style="text-decoration:none;color:#1a73e8;">{entry.text}</a></li>'
        )
    lines.append("</ul>")
    lines.append("</div>")
    return "\n".join(lines)


def add_table_of_contents(html_text: str) -> str:
    """Give every non-empty heading an id and insert a linked outline.

    The outline goes right after the first ``</h1>``, or at the very top when
    there is no level-1 heading. Input without headings is returned unchanged.
    """
    entries = parse_headings(html_text)
    if not entries:
        return html_text

    position = 0

    def repl(match: "re.Match[str]") -> str:
        nonlocal position
        level, content = match.group(1), match.group(2)
        if not _heading_text(content) or position >= len(entries):
            return match.group(0)
        entry = entries[position]
        position += 1
        return f'<h{level} id="{entry.id}">{content}</h{level}>'

    result = HEADING_RE.sub(repl, html_text)
    toc_html = build_toc_html(entries)

    h1_end = result.lower().find("</h1>")
    if h1_end != -1:
        insert_at = h1_end + len("</h1>")
        return result[:insert_at] + "\n" + toc_html + "\n" + result[insert_at:]
    return toc_html + "\n" + result
